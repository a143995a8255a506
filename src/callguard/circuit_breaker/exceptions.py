"""Circuit breaker exceptions.

Callers can distinguish between:
  - A call being rejected because the circuit is open.
  - A call that was attempted and failed or timed out with no fallback.
"""

from callguard.circuit_breaker.state import OutcomeKind


class CircuitBreakerError(Exception):
    """Base exception for the circuit breaker package."""


class CircuitOpenError(CircuitBreakerError):
    """Raised when a call is rejected because the circuit is open.

    Attributes:
        guard_name: Name of the guard rejecting the call.
        retry_after: Seconds until a half-open trial may be attempted.
    """

    def __init__(self, guard_name: str, retry_after: float) -> None:
        """Initialize a circuit-open exception payload.

        Args:
            guard_name: Guard rejecting the call.
            retry_after: Seconds until the next trial may run.
        """
        self.guard_name = guard_name
        self.retry_after = retry_after
        super().__init__(f"circuit_open: {guard_name} retry_after={retry_after:g}s")


class GuardedCallError(CircuitBreakerError):
    """Raised when an admitted call fails and no fallback is available.

    The original exception is available as ``cause`` and ``__cause__``.

    Attributes:
        guard_name: Name of the guard that ran the call.
        cause: Exception raised by the protected operation.
        kind: ``OutcomeKind.FAILURE`` or ``OutcomeKind.TIMEOUT``.
    """

    def __init__(
        self, guard_name: str, cause: BaseException, kind: OutcomeKind
    ) -> None:
        self.guard_name = guard_name
        self.cause = cause
        self.kind = kind
        super().__init__(
            f"guarded_call_{kind.value}: {guard_name} "
            f"{cause.__class__.__name__}: {cause}"
        )
