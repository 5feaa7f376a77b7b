"""Block grid construction."""
from .errors import InvalidImageError, InvalidOptionsError
from .types import BlockGrid


def build_grid(width: int, height: int, block_size: int = 32) -> BlockGrid:
    """Partition a width x height image into blocks of block_size pixels.

    Uses ceiling division, so a 100x50 image with 32-pixel blocks gives
    2 rows and 4 columns; the last row and column are clipped edge blocks.
    """
    if block_size <= 0:
        raise InvalidOptionsError(f"block_size must be positive, got {block_size}")
    if width <= 0 or height <= 0:
        raise InvalidImageError(f"Image dimensions must be positive, got {width}x{height}")

    return BlockGrid(
        width=width,
        height=height,
        block_size=block_size,
        by_count=-(-height // block_size),
        bx_count=-(-width // block_size),
    )
