"""Normalization, fusion and thresholding of detector maps."""
import math

import numpy as np

from .errors import AnalysisError, InvalidOptionsError

EPSILON = 1e-8
FUSION_WEIGHTS = (0.25, 0.25, 0.25, 0.25)


def normalize(score_map: np.ndarray) -> np.ndarray:
    """Min-max scale to [0, 1]; a constant map comes out all zeros."""
    values = np.asarray(score_map, dtype=np.float64)
    lo = float(values.min())
    hi = float(values.max())
    return (values - lo) / (hi - lo + EPSILON)


def invert(normalized: np.ndarray) -> np.ndarray:
    """Turn a higher-is-natural map into a higher-is-suspicious one."""
    return 1.0 - np.asarray(normalized, dtype=np.float64)


def fuse(variance_n: np.ndarray, grid_n: np.ndarray,
         residual_n: np.ndarray, ela_n: np.ndarray) -> np.ndarray:
    """Equal-weight average of the four prepared maps."""
    maps = (variance_n, grid_n, residual_n, ela_n)
    shapes = {np.shape(m) for m in maps}
    if len(shapes) != 1:
        raise AnalysisError(f"Score maps disagree on shape: {sorted(shapes)}")

    composite = np.zeros(np.shape(variance_n), dtype=np.float64)
    for weight, score_map in zip(FUSION_WEIGHTS, maps):
        composite += weight * np.asarray(score_map, dtype=np.float64)
    return composite


def select_threshold(composite: np.ndarray, threshold_percent: float = 80) -> float:
    """Nearest-rank percentile of the composite map.

    Sorts ascending and takes index floor(N * p / 100), without
    interpolation. p = 100 selects the largest value.
    """
    if not 0 <= threshold_percent <= 100:
        raise InvalidOptionsError(
            f"threshold_percent must lie in [0, 100], got {threshold_percent!r}"
        )
    ordered = np.sort(np.asarray(composite, dtype=np.float64), axis=None)
    if ordered.size == 0:
        raise AnalysisError("Cannot threshold an empty composite map")
    index = min(int(math.floor(ordered.size * threshold_percent / 100)), ordered.size - 1)
    return float(ordered[index])


def highlight_mask(composite: np.ndarray, threshold: float) -> np.ndarray:
    """Blocks whose composite score reaches the threshold."""
    return np.asarray(composite) >= threshold
