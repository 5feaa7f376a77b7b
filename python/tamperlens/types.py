"""Type definitions for Tamperlens."""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Any, Iterator, Optional, Tuple

import numpy as np

from .errors import InvalidImageError, InvalidOptionsError


class DenoiseCapability(Enum):
    """Denoising filter available to the residual noise detector."""
    NL_MEANS = "nl_means"
    GAUSSIAN_BLUR = "gaussian_blur"


class RunStatus(Enum):
    """How an analysis run ended."""
    COMPLETED = "completed"
    FAILED = "failed"
    STALE = "stale"


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """Immutable decoded image: width, height and 8-bit RGBA samples."""
    width: int
    height: int
    rgba: np.ndarray

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise InvalidImageError(
                f"Image dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.rgba.dtype != np.uint8:
            raise InvalidImageError(f"Expected uint8 samples, got {self.rgba.dtype}")
        if self.rgba.shape != (self.height, self.width, 4):
            raise InvalidImageError(
                f"Expected RGBA shape {(self.height, self.width, 4)}, got {self.rgba.shape}"
            )
        # Snapshot so later writes by the caller cannot reach the run
        snapshot = np.array(self.rgba, copy=True)
        snapshot.setflags(write=False)
        object.__setattr__(self, "rgba", snapshot)


@dataclass(frozen=True)
class BlockGrid:
    """Partition of an image into block_size x block_size cells.

    Counts use a ceiling policy so trailing partial rows and columns are
    kept as smaller edge blocks.
    """
    width: int
    height: int
    block_size: int
    by_count: int
    bx_count: int

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.by_count, self.bx_count)

    def block_bounds(self, by: int, bx: int) -> Tuple[int, int, int, int]:
        """Return (y0, y1, x0, x1) of block (by, bx), clipped to the image."""
        y0 = by * self.block_size
        x0 = bx * self.block_size
        return (
            y0,
            min(y0 + self.block_size, self.height),
            x0,
            min(x0 + self.block_size, self.width),
        )

    def blocks(self) -> Iterator[Tuple[int, int, int, int, int, int]]:
        """Yield (by, bx, y0, y1, x0, x1) for every block in row-major order."""
        for by in range(self.by_count):
            for bx in range(self.bx_count):
                yield (by, bx) + self.block_bounds(by, bx)


@dataclass
class AnalysisOptions:
    """Options for an analysis run."""
    block_size: int = 32
    threshold_percent: float = 80.0
    jpeg_quality: int = 90

    def __post_init__(self):
        if isinstance(self.block_size, bool) or not isinstance(self.block_size, int) \
                or self.block_size <= 0:
            raise InvalidOptionsError(
                f"block_size must be a positive integer, got {self.block_size!r}"
            )
        if not 0 <= self.threshold_percent <= 100:
            raise InvalidOptionsError(
                f"threshold_percent must lie in [0, 100], got {self.threshold_percent!r}"
            )
        if not 1 <= self.jpeg_quality <= 100:
            raise InvalidOptionsError(
                f"jpeg_quality must lie in [1, 100], got {self.jpeg_quality!r}"
            )


@dataclass
class AnalysisResult:
    """Outcome of one completed analysis run."""
    grid: BlockGrid
    mask: np.ndarray
    composite: np.ndarray
    threshold: float
    variance: np.ndarray
    grid_artifacts: np.ndarray
    residual_noise: np.ndarray
    ela: np.ndarray
    denoise_capability: DenoiseCapability
    generation: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def suspicious_count(self) -> int:
        return int(np.count_nonzero(self.mask))

    def highlight_rects(self) -> List[Tuple[int, int, int, int]]:
        """Clipped (x, y, w, h) pixel rectangles of every suspicious block."""
        rects = []
        for by, bx, y0, y1, x0, x1 in self.grid.blocks():
            if self.mask[by, bx]:
                rects.append((x0, y0, x1 - x0, y1 - y0))
        return rects

    def to_dict(self, include_maps: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "width": self.grid.width,
            "height": self.grid.height,
            "block_size": self.grid.block_size,
            "rows": self.grid.by_count,
            "cols": self.grid.bx_count,
            "threshold": float(self.threshold),
            "suspicious_blocks": self.suspicious_count,
            "mask": self.mask.astype(int).tolist(),
            "composite": [[round(float(v), 6) for v in row] for row in self.composite],
            "denoise_capability": self.denoise_capability.value,
            "warnings": list(self.warnings),
        }
        if include_maps:
            data["maps"] = {
                "variance": self.variance.tolist(),
                "grid_artifacts": self.grid_artifacts.tolist(),
                "residual_noise": self.residual_noise.tolist(),
                "ela": self.ela.tolist(),
            }
        return data


@dataclass
class RunRecord:
    """Bookkeeping for a finished run, kept by the analyzer for diagnostics."""
    generation: int
    status: RunStatus
    released_buffers: int = 0
    error: Optional[str] = None
