"""Tests for the imaging back-end."""

import asyncio
import types
from unittest import mock

import numpy as np
import pytest

from tamperlens import imaging
from tamperlens.errors import ImageDecodeError, InvalidImageError
from tamperlens.types import DenoiseCapability


class TestDecodeImage:
    def test_jpeg(self, sample_jpeg_bytes):
        pixels = imaging.decode_image(sample_jpeg_bytes)
        assert (pixels.width, pixels.height) == (64, 64)
        assert pixels.rgba.shape == (64, 64, 4)
        assert np.all(pixels.rgba[:, :, 3] == 255)

    def test_png(self, sample_png_bytes):
        pixels = imaging.decode_image(sample_png_bytes)
        assert tuple(pixels.rgba[0, 0]) == (100, 150, 200, 255)

    def test_invalid_buffer(self):
        with pytest.raises(ImageDecodeError):
            imaging.decode_image(b"\x00" * 100)

    def test_empty_buffer(self):
        with pytest.raises(ImageDecodeError):
            imaging.decode_image(b"")

    def test_truncated_jpeg(self, sample_jpeg_bytes):
        with pytest.raises(ImageDecodeError):
            imaging.decode_image(sample_jpeg_bytes[:40])


class TestPixelBufferFromArray:
    def test_gray(self):
        pixels = imaging.pixel_buffer_from_array(np.full((5, 7), 9, dtype=np.uint8))
        assert (pixels.width, pixels.height) == (7, 5)
        assert tuple(pixels.rgba[0, 0]) == (9, 9, 9, 255)

    def test_rgb(self):
        arr = np.zeros((4, 4, 3), dtype=np.uint8)
        arr[:, :, 0] = 200
        pixels = imaging.pixel_buffer_from_array(arr)
        assert tuple(pixels.rgba[1, 1]) == (200, 0, 0, 255)

    def test_rejects_float(self):
        with pytest.raises(InvalidImageError):
            imaging.pixel_buffer_from_array(np.zeros((4, 4, 3), dtype=np.float32))

    def test_rejects_two_channels(self):
        with pytest.raises(InvalidImageError):
            imaging.pixel_buffer_from_array(np.zeros((4, 4, 2), dtype=np.uint8))


class TestGrayscale:
    def test_uniform(self, uniform_pixels):
        gray = imaging.to_grayscale(uniform_pixels)
        assert gray.shape == (128, 128)
        assert gray.dtype == np.uint8
        assert np.all(gray == 128)

    def test_green_is_brighter_than_blue(self):
        arr = np.zeros((1, 2, 3), dtype=np.uint8)
        arr[0, 0] = (0, 255, 0)
        arr[0, 1] = (0, 0, 255)
        gray = imaging.to_grayscale(imaging.pixel_buffer_from_array(arr))
        assert gray[0, 0] > gray[0, 1]


class TestRegionStatistics:
    def test_moments(self):
        mean, mean_sq = imaging.region_moments(np.array([[0, 2], [4, 6]], dtype=np.uint8))
        assert mean == pytest.approx(3.0)
        assert mean_sq == pytest.approx(14.0)

    def test_mean_abs_diff(self):
        a = np.array([10, 20, 30], dtype=np.uint8)
        b = np.array([20, 10, 30], dtype=np.uint8)
        assert imaging.mean_abs_diff(a, b) == pytest.approx(20 / 3)

    def test_mean_abs_diff_shape_mismatch(self):
        with pytest.raises(ValueError):
            imaging.mean_abs_diff(np.zeros(3), np.zeros(4))


class TestDenoise:
    def _fake_cv(self, with_nl_means: bool):
        fake = types.SimpleNamespace(
            GaussianBlur=mock.Mock(return_value="blurred"),
            BORDER_DEFAULT=4,
        )
        if with_nl_means:
            fake.fastNlMeansDenoising = mock.Mock(return_value="nl")
        return fake

    def test_probe_prefers_nl_means(self):
        fake = self._fake_cv(with_nl_means=True)
        assert imaging.probe_denoise_capability(fake) is DenoiseCapability.NL_MEANS

    def test_probe_falls_back_to_blur(self):
        fake = self._fake_cv(with_nl_means=False)
        assert imaging.probe_denoise_capability(fake) is DenoiseCapability.GAUSSIAN_BLUR

    def test_probe_real_opencv(self):
        assert imaging.probe_denoise_capability() in set(DenoiseCapability)

    def test_uses_nl_means_parameters(self):
        fake = self._fake_cv(with_nl_means=True)
        gray = np.zeros((8, 8), dtype=np.uint8)
        assert imaging.denoise(gray, DenoiseCapability.NL_MEANS, fake) == "nl"
        fake.fastNlMeansDenoising.assert_called_once_with(gray, None, 10, 7, 21)
        fake.GaussianBlur.assert_not_called()

    def test_blur_fallback(self):
        fake = self._fake_cv(with_nl_means=False)
        gray = np.zeros((8, 8), dtype=np.uint8)
        assert imaging.denoise(gray, DenoiseCapability.GAUSSIAN_BLUR, fake) == "blurred"
        fake.GaussianBlur.assert_called_once_with(gray, (3, 3), 0, borderType=4)

    def test_real_blur_keeps_shape(self):
        gray = np.random.default_rng(1).integers(0, 256, (20, 30), dtype=np.uint8)
        out = imaging.denoise(gray, DenoiseCapability.GAUSSIAN_BLUR)
        assert out.shape == gray.shape


class TestRecompress:
    def test_same_dimensions_and_opaque(self, odd_size_pixels):
        recompressed = imaging.recompress(odd_size_pixels)
        assert recompressed.shape == (50, 100, 4)
        assert recompressed.dtype == np.uint8
        assert np.all(recompressed[:, :, 3] == 255)

    def test_close_to_original(self, odd_size_pixels):
        recompressed = imaging.recompress(odd_size_pixels, quality=90)
        diff = np.abs(recompressed[:, :, 0].astype(int) - odd_size_pixels.rgba[:, :, 0].astype(int))
        assert diff.mean() < 5

    def test_async_matches_sync(self, odd_size_pixels):
        expected = imaging.recompress(odd_size_pixels)
        result = asyncio.run(imaging.recompress_async(odd_size_pixels))
        assert np.array_equal(result, expected)
