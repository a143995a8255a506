"""Observability hooks for call guards."""

from typing import Protocol

from callguard.circuit_breaker.state import CircuitState


class BreakerListener(Protocol):
    """Listener protocol for circuit breaker events.

    Notes:
        Listener failures are logged by the guard and never affect the
        guarded call or other listeners.
    """

    async def on_state_change(
        self, name: str, old: CircuitState, new: CircuitState
    ) -> None:
        """Handle circuit state transitions."""

    async def on_call_rejected(self, name: str) -> None:
        """Handle call rejection while the circuit is open or probing."""

    async def on_call_succeeded(self, name: str, elapsed: float) -> None:
        """Handle successful protected call completion."""

    async def on_call_failed(
        self, name: str, exc: BaseException, elapsed: float
    ) -> None:
        """Handle failed or timed out protected calls.

        Cancelled calls are recorded as timeouts but not reported here.
        """
