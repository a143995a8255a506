"""Framework-agnostic async call guard built on a failure-rate circuit breaker.

This package implements the circuit breaker pattern from *Release It!*.

Key behavior notes:
  - The breaker opens when, within a rolling window, at least
    ``minimum_volume`` calls were made and the failure rate reached
    ``failure_rate_threshold``. Timeouts count as failures; fast-failed calls
    do not.
  - After ``open_duration`` exactly one trial call is admitted. Its success
    closes the circuit with a fresh window; its failure or timeout reopens
    the circuit and restarts the open period.
  - Only admission is gated. A call already running when the circuit opens
    finishes normally.
  - Breaker state is process-local and never persisted.
"""

from callguard.circuit_breaker.breaker import Admission, CircuitBreaker
from callguard.circuit_breaker.clock import Clock, ManualClock, MonotonicClock
from callguard.circuit_breaker.config import CircuitBreakerConfig
from callguard.circuit_breaker.exceptions import (
    CircuitBreakerError,
    CircuitOpenError,
    GuardedCallError,
)
from callguard.circuit_breaker.guard import CallGuard
from callguard.circuit_breaker.metrics import BreakerListener
from callguard.circuit_breaker.registry import CallGuardRegistry
from callguard.circuit_breaker.state import (
    CircuitState,
    MetricsSnapshot,
    Outcome,
    OutcomeKind,
    Transition,
)
from callguard.circuit_breaker.window import OutcomeWindow, WindowCounts

__all__ = [
    "Admission",
    "BreakerListener",
    "CallGuard",
    "CallGuardRegistry",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitOpenError",
    "CircuitState",
    "Clock",
    "GuardedCallError",
    "ManualClock",
    "MetricsSnapshot",
    "MonotonicClock",
    "Outcome",
    "OutcomeKind",
    "OutcomeWindow",
    "Transition",
    "WindowCounts",
]
