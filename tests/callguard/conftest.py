from __future__ import annotations

import pytest

from callguard.circuit_breaker import ManualClock
from tests.callguard.support.fakes import FakeLogger, RecordingListener


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def clock() -> ManualClock:
    """Provide a manually driven clock starting at ``t=100``."""
    return ManualClock(start=100.0)


@pytest.fixture
def listener() -> RecordingListener:
    """Provide a fresh recording breaker listener per test."""
    return RecordingListener()
