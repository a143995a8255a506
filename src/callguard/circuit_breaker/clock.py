"""Time sources for circuit breakers.

Breakers never sleep; recovery timing is a comparison of clock readings, so
tests can drive time with ``ManualClock`` instead of waiting.
"""

import threading
import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic time source measured in seconds."""

    def now(self) -> float:
        """Return the current reading."""


class MonotonicClock:
    """Clock backed by ``time.monotonic``."""

    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> None:
        """Move the clock forward by ``seconds``."""
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        with self._lock:
            self._now += seconds

    def set(self, value: float) -> None:
        """Jump to an absolute reading, which may not go backwards."""
        with self._lock:
            if value < self._now:
                raise ValueError("clock cannot move backwards")
            self._now = value
