"""Immutable configuration for call guards."""

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Durations are seconds on the guard's clock.

    Attributes:
        failure_rate_threshold: Failure percentage (``0 < x <= 100``) at or
            above which a ``CLOSED`` breaker opens.
        minimum_volume: Calls required inside the window before the failure
            rate is evaluated.
        window_duration: Length of the rolling outcome window.
        bucket_width: Granularity of the rolling window buckets.
        open_duration: Time spent ``OPEN`` before a trial call is allowed.
        half_open_timeout: Longest a trial call may run before it counts as a
            timeout.
        call_timeout: Default bound on a regular guarded call.
        fallback_timeout: Optional bound on awaitable fallbacks.
        ignored_exceptions: Exceptions that count as success and propagate
            unwrapped, for errors that say nothing about dependency health.
    """

    failure_rate_threshold: float = 50.0
    minimum_volume: int = 20
    window_duration: float = 10.0
    bucket_width: float = 1.0
    open_duration: float = 5.0
    half_open_timeout: float = 5.0
    call_timeout: float = 10.0
    fallback_timeout: float | None = None
    ignored_exceptions: tuple[type[Exception], ...] = ()

    def __post_init__(self) -> None:
        if not 0 < self.failure_rate_threshold <= 100:
            raise ValueError("failure_rate_threshold must be > 0 and <= 100")
        if self.minimum_volume < 1:
            raise ValueError("minimum_volume must be >= 1")
        if self.window_duration <= 0:
            raise ValueError("window_duration must be > 0")
        if self.bucket_width <= 0:
            raise ValueError("bucket_width must be > 0")
        if self.bucket_width > self.window_duration:
            raise ValueError("bucket_width must be <= window_duration")
        if self.open_duration < 0:
            raise ValueError("open_duration must be >= 0")
        if self.half_open_timeout <= 0:
            raise ValueError("half_open_timeout must be > 0")
        if self.call_timeout <= 0:
            raise ValueError("call_timeout must be > 0")
        if self.fallback_timeout is not None and self.fallback_timeout <= 0:
            raise ValueError("fallback_timeout must be > 0 when provided")

    @property
    def bucket_count(self) -> int:
        """Number of buckets the rolling window is split into."""
        return math.ceil(self.window_duration / self.bucket_width)
