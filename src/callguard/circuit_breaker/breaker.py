"""Circuit breaker state machine.

All state lives behind one ``threading.Lock`` per breaker. Critical sections
are short, never await and never do I/O, so the breaker is safe to share
between asyncio tasks and between threads running their own event loops.
The machine itself never raises: it answers admission questions and applies
recorded outcomes, returning any resulting ``Transition`` for the caller to
report.
"""

import threading
from dataclasses import dataclass

from callguard.circuit_breaker.clock import Clock, MonotonicClock
from callguard.circuit_breaker.config import CircuitBreakerConfig
from callguard.circuit_breaker.state import (
    CircuitState,
    MetricsSnapshot,
    Outcome,
    OutcomeKind,
    Transition,
)
from callguard.circuit_breaker.window import OutcomeWindow


@dataclass(frozen=True, slots=True)
class Admission:
    """Answer to one admission request.

    Attributes:
        admitted: Whether the call may run.
        trial: Whether the call is the single half-open trial.
        retry_after: Seconds until a trial may be attempted, when rejected.
        transition: ``OPEN -> HALF_OPEN`` transition applied while deciding.
        trial_epoch: Token identifying the trial episode, for trials only.
    """

    admitted: bool
    trial: bool = False
    retry_after: float = 0.0
    transition: Transition | None = None
    trial_epoch: int | None = None

    def __bool__(self) -> bool:
        return self.admitted


class CircuitBreaker:
    """Failure-rate breaker with timed single-trial recovery."""

    def __init__(
        self,
        name: str,
        *,
        config: CircuitBreakerConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Build a breaker in the ``CLOSED`` state.

        Args:
            name: Breaker name used in snapshots.
            config: Thresholds and timings. Defaults to
                ``CircuitBreakerConfig()``.
            clock: Time source. Defaults to ``MonotonicClock()``.
        """
        self.name = name
        self.config = CircuitBreakerConfig() if config is None else config
        self._clock = MonotonicClock() if clock is None else clock
        self._lock = threading.Lock()
        self._window = OutcomeWindow(
            window_duration=self.config.window_duration,
            bucket_width=self.config.bucket_width,
        )
        self._state = CircuitState.CLOSED
        self._opened_at: float | None = None
        self._half_open_in_flight = False
        self._trial_epoch = 0
        self._last_transition_at = self._clock.now()

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    def _transition(self, new: CircuitState, now: float) -> Transition:
        transition = Transition(old=self._state, new=new, at=now)
        self._state = new
        self._last_transition_at = now
        if new == CircuitState.OPEN:
            self._opened_at = now
            self._window.clear()
        elif new == CircuitState.CLOSED:
            self._opened_at = None
            self._window.clear()
        if new != CircuitState.HALF_OPEN:
            self._half_open_in_flight = False
            self._trial_epoch += 1
        return transition

    def _retry_after(self, now: float) -> float:
        opened_at = now if self._opened_at is None else self._opened_at
        return max(self.config.open_duration - (now - opened_at), 0.0)

    def admit(self) -> Admission:
        """Decide whether one call may run right now."""
        with self._lock:
            now = self._clock.now()
            if self._state == CircuitState.CLOSED:
                return Admission(admitted=True)

            transition = None
            if self._state == CircuitState.OPEN:
                retry_after = self._retry_after(now)
                if retry_after > 0:
                    return Admission(admitted=False, retry_after=retry_after)
                transition = self._transition(CircuitState.HALF_OPEN, now)

            if self._half_open_in_flight:
                return Admission(admitted=False, transition=transition)
            self._half_open_in_flight = True
            return Admission(
                admitted=True,
                trial=True,
                transition=transition,
                trial_epoch=self._trial_epoch,
            )

    def record(
        self,
        kind: OutcomeKind,
        *,
        trial: bool = False,
        trial_epoch: int | None = None,
    ) -> Transition | None:
        """Record the outcome of an admitted call.

        Args:
            kind: ``SUCCESS``, ``FAILURE`` or ``TIMEOUT``.
            trial: Whether the call was admitted as the half-open trial.
            trial_epoch: Epoch from the trial's ``Admission``.

        Returns:
            The transition this outcome caused, if any.
        """
        with self._lock:
            now = self._clock.now()
            self._window.record(Outcome(kind, now))

            if trial:
                if (
                    self._state != CircuitState.HALF_OPEN
                    or trial_epoch != self._trial_epoch
                ):
                    return None
                if kind.is_failure:
                    return self._transition(CircuitState.OPEN, now)
                return self._transition(CircuitState.CLOSED, now)

            if self._state != CircuitState.CLOSED:
                return None
            counts = self._window.snapshot(now)
            if counts.total_calls < self.config.minimum_volume:
                return None
            threshold = self.config.failure_rate_threshold
            if counts.failure_count * 100 < threshold * counts.total_calls:
                return None
            return self._transition(CircuitState.OPEN, now)

    def record_rejected(self) -> None:
        """Count a fast-failed call for observability only."""
        with self._lock:
            self._window.record(Outcome(OutcomeKind.REJECTED, self._clock.now()))

    def force_open(self) -> Transition | None:
        """Open the breaker and restart the open period."""
        with self._lock:
            now = self._clock.now()
            if self._state == CircuitState.OPEN:
                self._opened_at = now
                return None
            return self._transition(CircuitState.OPEN, now)

    def reset(self) -> Transition | None:
        """Return the breaker to a healthy ``CLOSED`` state."""
        with self._lock:
            now = self._clock.now()
            if self._state == CircuitState.CLOSED:
                self._window.clear()
                return None
            return self._transition(CircuitState.CLOSED, now)

    def snapshot(self) -> MetricsSnapshot:
        """Return a consistent view of state and window counts."""
        with self._lock:
            now = self._clock.now()
            counts = self._window.snapshot(now)
            return MetricsSnapshot(
                name=self.name,
                state=self._state,
                total_calls=counts.total_calls,
                failure_count=counts.failure_count,
                timeout_count=counts.timeout_count,
                rejected_count=counts.rejected_count,
                last_transition_at=self._last_transition_at,
                opened_at=self._opened_at,
            )
