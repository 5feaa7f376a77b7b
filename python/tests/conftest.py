"""Shared pytest fixtures for Tamperlens tests."""

import io

import numpy as np
import pytest
from PIL import Image

from tamperlens import AnalysisOptions, ForensicsAnalyzer, pixel_buffer_from_array


def make_rgba(h: int, w: int, value: int = 128) -> np.ndarray:
    """Opaque uniform gray RGBA array."""
    arr = np.full((h, w, 4), value, dtype=np.uint8)
    arr[:, :, 3] = 255
    return arr


# ---------------------------------------------------------------------------
# Pixel buffer fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def uniform_pixels():
    """128x128 constant mid-gray image."""
    return pixel_buffer_from_array(make_rgba(128, 128))


@pytest.fixture()
def noise_patch_pixels():
    """128x128 flat image with block (row 1, col 2) replaced by random noise."""
    rng = np.random.default_rng(7)
    gray = np.full((128, 128), 128, dtype=np.uint8)
    gray[32:64, 64:96] = rng.integers(0, 256, (32, 32), dtype=np.uint8)
    return pixel_buffer_from_array(gray)


@pytest.fixture()
def odd_size_pixels():
    """100x50 gradient image, not a multiple of the default block size."""
    arr = np.zeros((50, 100, 3), dtype=np.uint8)
    arr[:, :, 0] = np.linspace(0, 255, 100, dtype=np.uint8)[None, :]
    arr[:, :, 1] = np.linspace(0, 255, 50, dtype=np.uint8)[:, None]
    arr[:, :, 2] = 90
    return pixel_buffer_from_array(arr)


# ---------------------------------------------------------------------------
# Encoded content fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_jpeg_bytes():
    """Minimal synthetic JPEG buffer (gradient image)."""
    img = Image.new("RGB", (64, 64))
    pixels = img.load()
    for y in range(64):
        for x in range(64):
            pixels[x, y] = (x * 4, y * 4, 128)
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=90)
    return buf.getvalue()


@pytest.fixture()
def sample_png_bytes():
    """Minimal synthetic PNG buffer."""
    img = Image.new("RGB", (64, 64), color=(100, 150, 200))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def analyzer():
    """Fresh analyzer with default options."""
    return ForensicsAnalyzer(AnalysisOptions())
