"""
Per-block forensic detectors.

Each detector maps a buffer onto the block grid and returns a raw
(by_count, bx_count) float64 score map. Edge blocks are clipped to the
image bounds, never dropped.

- Variance: population variance of luminance. Smoothing from edits lowers it.
- Grid artifacts: discontinuity across the 8-pixel JPEG grid. Local edits
  and re-saves weaken the periodic pattern.
- Residual noise: variance of (image - denoised), a PRNU-like proxy.
  Flattened residual suggests local smoothing.
- ELA: red-channel difference after a JPEG round trip. Pasted content
  with a different compression history stands out.
"""
import logging

import numpy as np

from . import imaging
from .types import BlockGrid, DenoiseCapability

logger = logging.getLogger(__name__)

SUBCELL_SIZE = 8
ELA_CHANNEL = 0  # red


def _empty_map(grid: BlockGrid) -> np.ndarray:
    return np.zeros(grid.shape, dtype=np.float64)


def block_variance_map(buffer: np.ndarray, grid: BlockGrid) -> np.ndarray:
    """Per-block mean(x^2) - mean(x)^2 over any single-channel buffer."""
    scores = _empty_map(grid)
    for by, bx, y0, y1, x0, x1 in grid.blocks():
        mean, mean_sq = imaging.region_moments(buffer[y0:y1, x0:x1])
        scores[by, bx] = mean_sq - mean * mean
    return scores


def variance_map(gray: np.ndarray, grid: BlockGrid) -> np.ndarray:
    """Luminance variance per block."""
    return block_variance_map(gray, grid)


def grid_artifact_map(gray: np.ndarray, grid: BlockGrid) -> np.ndarray:
    """Mean boundary discontinuity of the 8x8 sub-cells in each block.

    Sub-cells start at 8-pixel offsets from the block origin and are
    skipped unless they lie fully inside the image. A sub-cell contributes
    its right boundary when a column exists past it and its bottom boundary
    when a row exists below it.
    """
    h, w = gray.shape
    g = SUBCELL_SIZE
    scores = _empty_map(grid)

    for by, bx, y_start, _, x_start, _ in grid.blocks():
        diffs = []
        for y_off in range(0, grid.block_size, g):
            for x_off in range(0, grid.block_size, g):
                y0 = y_start + y_off
                x0 = x_start + x_off
                if y0 + g > h or x0 + g > w:
                    continue
                if x0 + g < w:
                    diffs.append(imaging.mean_abs_diff(
                        gray[y0:y0 + g, x0 + g - 1],
                        gray[y0:y0 + g, x0 + g],
                    ))
                if y0 + g < h:
                    diffs.append(imaging.mean_abs_diff(
                        gray[y0 + g - 1, x0:x0 + g],
                        gray[y0 + g, x0:x0 + g],
                    ))
        scores[by, bx] = float(np.mean(diffs)) if diffs else 0.0

    return scores


def noise_residual(gray: np.ndarray, denoised: np.ndarray) -> np.ndarray:
    """Signed residual gray - denoised as float32."""
    return gray.astype(np.float32) - denoised.astype(np.float32)


def residual_noise_map(gray: np.ndarray, grid: BlockGrid,
                       capability: DenoiseCapability,
                       arena=None) -> np.ndarray:
    """Variance of the denoising residual per block.

    When an arena is given, the denoised and residual buffers are
    registered with it so they live exactly as long as the run.
    """
    denoised = imaging.denoise(gray, capability)
    residual = noise_residual(gray, denoised)
    if arena is not None:
        arena.own("denoised", denoised)
        arena.own("residual", residual)
    return block_variance_map(residual, grid)


def ela_map(original_rgba: np.ndarray, recompressed_rgba: np.ndarray,
            grid: BlockGrid) -> np.ndarray:
    """Red-channel error level per block.

    The per-block sum is divided by the nominal block area, so clipped
    edge blocks are scaled down along with their pixel count.
    """
    if original_rgba.shape != recompressed_rgba.shape:
        raise ValueError(
            f"Frame shapes differ: {original_rgba.shape} vs {recompressed_rgba.shape}"
        )
    diff = np.abs(
        original_rgba[:, :, ELA_CHANNEL].astype(np.int32)
        - recompressed_rgba[:, :, ELA_CHANNEL].astype(np.int32)
    )
    area = float(grid.block_size * grid.block_size)
    scores = _empty_map(grid)
    for by, bx, y0, y1, x0, x1 in grid.blocks():
        scores[by, bx] = float(diff[y0:y1, x0:x1].sum()) / area
    return scores
