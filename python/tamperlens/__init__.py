"""
Tamperlens - Python Implementation

Block-level tamper suspicion maps for a single photograph.
Fuses variance, JPEG grid, residual noise and error level analysis.
"""

from .analyzer import ForensicsAnalyzer
from .types import (
    AnalysisOptions,
    AnalysisResult,
    BlockGrid,
    DenoiseCapability,
    PixelBuffer,
    RunRecord,
    RunStatus,
)
from .errors import (
    TamperlensError,
    InvalidImageError,
    ImageDecodeError,
    InvalidOptionsError,
    AnalysisError,
    BackendUnavailableError,
)
from .arena import RunArena
from .backend import BACKEND_GATE, ReadinessGate
from .grid import build_grid
from .imaging import decode_image, pixel_buffer_from_array

__version__ = "0.0.1"
__all__ = [
    "ForensicsAnalyzer",
    "AnalysisOptions",
    "AnalysisResult",
    "BlockGrid",
    "DenoiseCapability",
    "PixelBuffer",
    "RunRecord",
    "RunStatus",
    "TamperlensError",
    "InvalidImageError",
    "ImageDecodeError",
    "InvalidOptionsError",
    "AnalysisError",
    "BackendUnavailableError",
    "RunArena",
    "BACKEND_GATE",
    "ReadinessGate",
    "build_grid",
    "decode_image",
    "pixel_buffer_from_array",
]
