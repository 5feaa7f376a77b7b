"""Run-scoped ownership of intermediate buffers."""
import logging
from typing import Dict, Iterator

import numpy as np

logger = logging.getLogger(__name__)


class RunArena:
    """Owns every scratch buffer allocated during one analysis run.

    Use as a context manager; all buffers are dropped together on exit,
    whether the run completed, raised or was cancelled.
    """

    def __init__(self, generation: int = 0):
        self.generation = generation
        self._buffers: Dict[str, np.ndarray] = {}
        self._released = False
        self.released_count = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def __contains__(self, name: str) -> bool:
        return name in self._buffers

    def __iter__(self) -> Iterator[str]:
        return iter(self._buffers)

    def __len__(self) -> int:
        return len(self._buffers)

    @property
    def released(self) -> bool:
        return self._released

    def own(self, name: str, buffer: np.ndarray) -> np.ndarray:
        """Register a buffer under name and hand it back."""
        if self._released:
            raise RuntimeError(f"Arena for run {self.generation} already released")
        if name in self._buffers:
            raise KeyError(f"Buffer {name!r} already allocated in run {self.generation}")
        self._buffers[name] = buffer
        return buffer

    def get(self, name: str) -> np.ndarray:
        return self._buffers[name]

    def release(self):
        """Drop every owned buffer. Safe to call more than once."""
        if self._released:
            return
        self.released_count = len(self._buffers)
        self._buffers.clear()
        self._released = True
        logger.debug(f"Run {self.generation}: released {self.released_count} buffer(s)")
