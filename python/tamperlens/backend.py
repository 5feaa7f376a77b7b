"""Readiness gate for the imaging back-end.

The analysis entry points wait on a one-shot gate before touching OpenCV.
Without an explicit readiness signal the gate polls a probe with bounded
exponential backoff.
"""
import asyncio
import logging
import threading
import time
from typing import Callable

import cv2

from .errors import BackendUnavailableError

logger = logging.getLogger(__name__)

REQUIRED_CV_FUNCTIONS = ("cvtColor", "GaussianBlur")


def opencv_ready() -> bool:
    """True once OpenCV exposes every function the pipeline cannot do without."""
    return all(callable(getattr(cv2, name, None)) for name in REQUIRED_CV_FUNCTIONS)


class ReadinessGate:
    """One-shot readiness signal with a polling fallback."""

    def __init__(self, probe: Callable[[], bool], attempts: int = 5, backoff: float = 0.05):
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self._probe = probe
        self._attempts = attempts
        self._backoff = backoff
        self._ready = threading.Event()

    @property
    def is_open(self) -> bool:
        return self._ready.is_set()

    def open(self):
        """Signal readiness explicitly."""
        self._ready.set()

    def _poll_once(self) -> bool:
        if self._probe():
            self._ready.set()
            return True
        return False

    def wait(self):
        """Block until the back-end is ready or the retry budget runs out."""
        if self._ready.is_set():
            return
        delay = self._backoff
        for attempt in range(1, self._attempts + 1):
            if self._poll_once():
                logger.debug(f"Imaging back-end ready after {attempt} probe(s)")
                return
            if attempt < self._attempts:
                time.sleep(delay)
                delay *= 2
        raise BackendUnavailableError(
            f"Imaging back-end not ready after {self._attempts} attempts"
        )

    async def wait_async(self):
        """Like wait(), but sleeps without blocking the event loop."""
        if self._ready.is_set():
            return
        delay = self._backoff
        for attempt in range(1, self._attempts + 1):
            if self._poll_once():
                logger.debug(f"Imaging back-end ready after {attempt} probe(s)")
                return
            if attempt < self._attempts:
                await asyncio.sleep(delay)
                delay *= 2
        raise BackendUnavailableError(
            f"Imaging back-end not ready after {self._attempts} attempts"
        )


BACKEND_GATE = ReadinessGate(opencv_ready)
