"""Tests for the imaging back-end readiness gate."""

import asyncio

import pytest

from tamperlens.backend import BACKEND_GATE, ReadinessGate, opencv_ready
from tamperlens.errors import BackendUnavailableError


class _FlakyProbe:
    """Reports ready after a fixed number of failed probes."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    def __call__(self) -> bool:
        self.calls += 1
        return self.calls > self.failures


class TestReadinessGate:
    def test_opens_on_first_success(self):
        probe = _FlakyProbe(failures=0)
        gate = ReadinessGate(probe, attempts=3, backoff=0)
        gate.wait()
        assert gate.is_open
        gate.wait()
        assert probe.calls == 1

    def test_retries_until_ready(self):
        probe = _FlakyProbe(failures=2)
        gate = ReadinessGate(probe, attempts=5, backoff=0)
        gate.wait()
        assert probe.calls == 3
        assert gate.is_open

    def test_gives_up(self):
        probe = _FlakyProbe(failures=10)
        gate = ReadinessGate(probe, attempts=3, backoff=0)
        with pytest.raises(BackendUnavailableError):
            gate.wait()
        assert probe.calls == 3
        assert not gate.is_open

    def test_explicit_open_skips_probe(self):
        probe = _FlakyProbe(failures=10)
        gate = ReadinessGate(probe, attempts=1, backoff=0)
        gate.open()
        gate.wait()
        assert probe.calls == 0

    def test_wait_async(self):
        probe = _FlakyProbe(failures=1)
        gate = ReadinessGate(probe, attempts=3, backoff=0)
        asyncio.run(gate.wait_async())
        assert gate.is_open
        assert probe.calls == 2

    def test_wait_async_gives_up(self):
        gate = ReadinessGate(_FlakyProbe(failures=10), attempts=2, backoff=0)
        with pytest.raises(BackendUnavailableError):
            asyncio.run(gate.wait_async())

    def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            ReadinessGate(lambda: True, attempts=0)


class TestProcessGate:
    def test_opencv_ready(self):
        assert opencv_ready() is True

    def test_process_gate_opens(self):
        BACKEND_GATE.wait()
        assert BACKEND_GATE.is_open
