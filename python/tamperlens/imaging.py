"""
Imaging back-end for the forensic detectors.

Wraps the OpenCV and Pillow calls the pipeline depends on: decoding,
RGBA to luminance conversion, per-region statistics, the denoising filter
with its blur fallback, and the lossy JPEG round trip used by error level
analysis.
"""
import asyncio
import io
import logging
from typing import Tuple

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import ImageDecodeError, InvalidImageError
from .types import DenoiseCapability, PixelBuffer

logger = logging.getLogger(__name__)

# fastNlMeansDenoising(h, templateWindowSize, searchWindowSize)
NL_MEANS_PARAMS = (10, 7, 21)
FALLBACK_BLUR_KSIZE = (3, 3)
ELA_QUALITY = 90


def decode_image(data: bytes) -> PixelBuffer:
    """Decode encoded image bytes (JPEG, PNG, ...) into an RGBA PixelBuffer."""
    if not data:
        raise ImageDecodeError("Empty image data")
    try:
        with Image.open(io.BytesIO(data)) as img:
            rgba = np.array(img.convert("RGBA"), dtype=np.uint8)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.error("Failed to decode image data")
        raise ImageDecodeError(f"Invalid image data: {e}") from e

    return pixel_buffer_from_array(rgba)


def pixel_buffer_from_array(arr: np.ndarray) -> PixelBuffer:
    """Build a PixelBuffer from an HxW gray, HxWx3 RGB or HxWx4 RGBA array."""
    arr = np.asarray(arr)
    if arr.dtype != np.uint8:
        raise InvalidImageError(f"Expected uint8 samples, got {arr.dtype}")

    if arr.ndim == 2:
        rgba = cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
    elif arr.ndim == 3 and arr.shape[2] == 3:
        rgba = cv2.cvtColor(arr, cv2.COLOR_RGB2RGBA)
    elif arr.ndim == 3 and arr.shape[2] == 4:
        rgba = arr
    else:
        raise InvalidImageError(f"Unsupported pixel array shape {arr.shape}")

    h, w = rgba.shape[:2]
    return PixelBuffer(width=w, height=h, rgba=rgba)


def to_grayscale(pixels: PixelBuffer) -> np.ndarray:
    """Reduce the RGBA samples to single-channel uint8 luminance."""
    return cv2.cvtColor(np.ascontiguousarray(pixels.rgba), cv2.COLOR_RGBA2GRAY)


def region_moments(region: np.ndarray) -> Tuple[float, float]:
    """Return (mean, mean of squares) of a region in float64."""
    values = region.astype(np.float64)
    return float(np.mean(values)), float(np.mean(values * values))


def mean_abs_diff(a: np.ndarray, b: np.ndarray) -> float:
    """Mean absolute difference of two equally shaped regions."""
    if a.shape != b.shape:
        raise ValueError(f"Region shapes differ: {a.shape} vs {b.shape}")
    return float(np.mean(np.abs(a.astype(np.float64) - b.astype(np.float64))))


def probe_denoise_capability(module=cv2) -> DenoiseCapability:
    """Resolve which denoising filter the given OpenCV module provides."""
    if callable(getattr(module, "fastNlMeansDenoising", None)):
        return DenoiseCapability.NL_MEANS
    return DenoiseCapability.GAUSSIAN_BLUR


def denoise(gray: np.ndarray, capability: DenoiseCapability, module=cv2) -> np.ndarray:
    """Denoise a grayscale buffer with the resolved filter."""
    if capability is DenoiseCapability.NL_MEANS:
        h, template_window, search_window = NL_MEANS_PARAMS
        return module.fastNlMeansDenoising(gray, None, h, template_window, search_window)

    return module.GaussianBlur(gray, FALLBACK_BLUR_KSIZE, 0, borderType=module.BORDER_DEFAULT)


def recompress(pixels: PixelBuffer, quality: int = ELA_QUALITY) -> np.ndarray:
    """JPEG-encode the frame at the given quality and decode it back to RGBA.

    JPEG carries no alpha, so only the RGB planes are encoded; the decoded
    buffer comes back fully opaque with the same dimensions.
    """
    buffer = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(pixels.rgba)).convert("RGB").save(
        buffer, "JPEG", quality=quality
    )
    buffer.seek(0)
    with Image.open(buffer) as decoded:
        recompressed = np.array(decoded.convert("RGBA"), dtype=np.uint8)

    if recompressed.shape != pixels.rgba.shape:
        raise InvalidImageError(
            f"Recompressed frame shape {recompressed.shape} != {pixels.rgba.shape}"
        )
    return recompressed


async def recompress_async(pixels: PixelBuffer, quality: int = ELA_QUALITY) -> np.ndarray:
    """Run the JPEG round trip in the loop's default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, recompress, pixels, quality)
