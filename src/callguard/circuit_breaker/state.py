"""Circuit breaker state primitives."""

from dataclasses import dataclass
from enum import StrEnum


class CircuitState(StrEnum):
    """Circuit breaker state values."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class OutcomeKind(StrEnum):
    """Result categories recorded for guarded calls."""

    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"
    REJECTED = "rejected"

    @property
    def is_failure(self) -> bool:
        """Whether the outcome counts toward the failure ratio."""
        return self in (OutcomeKind.FAILURE, OutcomeKind.TIMEOUT)


@dataclass(frozen=True, slots=True)
class Outcome:
    """A single recorded call result.

    Attributes:
        kind: Outcome category.
        timestamp: Clock reading when the outcome was recorded.
    """

    kind: OutcomeKind
    timestamp: float


@dataclass(frozen=True, slots=True)
class Transition:
    """A state change applied by the breaker."""

    old: CircuitState
    new: CircuitState
    at: float


@dataclass(frozen=True, slots=True)
class MetricsSnapshot:
    """Point-in-time view of breaker internals useful for metrics/logging.

    Attributes:
        name: Guard name.
        state: Current breaker state.
        total_calls: Successes, failures and timeouts inside the rolling window.
        failure_count: Failures and timeouts inside the rolling window.
        timeout_count: Timeouts inside the rolling window.
        rejected_count: Fast-failed calls inside the rolling window.
        last_transition_at: Clock reading of the last state change.
        opened_at: Clock reading when the breaker entered ``OPEN``, if open.
    """

    name: str
    state: CircuitState
    total_calls: int
    failure_count: int
    timeout_count: int
    rejected_count: int
    last_transition_at: float
    opened_at: float | None

    @property
    def failure_rate(self) -> float:
        """Failure percentage over the window, ``0.0`` when empty."""
        if self.total_calls == 0:
            return 0.0
        return self.failure_count * 100.0 / self.total_calls
