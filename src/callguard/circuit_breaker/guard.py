"""Call guard: admission, bounded execution, outcome recording and fallback."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from functools import partial
from typing import TypeVar, cast

import structlog

from callguard.circuit_breaker.breaker import Admission, CircuitBreaker
from callguard.circuit_breaker.clock import Clock
from callguard.circuit_breaker.config import CircuitBreakerConfig
from callguard.circuit_breaker.exceptions import CircuitOpenError, GuardedCallError
from callguard.circuit_breaker.metrics import BreakerListener
from callguard.circuit_breaker.state import (
    CircuitState,
    MetricsSnapshot,
    OutcomeKind,
    Transition,
)
from callguard.logging import AnyLogger, log_exception, log_info, log_warning

T = TypeVar("T")

Fallback = Callable[[BaseException], T | Awaitable[T]]

_logger = logging.getLogger(__name__)


class CallGuard:
    """Stateful proxy around a dangerous async operation."""

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig | None = None,
        *,
        clock: Clock | None = None,
        listeners: Sequence[BreakerListener] | None = None,
        logger: AnyLogger | None = None,
    ) -> None:
        """Build a guard with optional custom dependencies.

        Args:
            name: Dependency name used for logging and metrics.
            config: Guard configuration. Defaults to ``CircuitBreakerConfig()``.
            clock: Time source for window expiry and recovery timing.
            listeners: Optional listener hooks for breaker events.
            logger: Structured or stdlib logger. Defaults to this module's
                stdlib logger.
        """
        self.name = name
        self._breaker = CircuitBreaker(name, config=config, clock=clock)
        self.config = self._breaker.config
        self._listeners = tuple(listeners) if listeners is not None else ()
        self._logger = _logger if logger is None else logger
        self._clock = self._breaker.clock

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def current_state(self) -> CircuitState:
        """Return the breaker state without side effects."""
        return self._breaker.state

    def metrics_snapshot(self) -> MetricsSnapshot:
        """Return window counts, state and last transition time."""
        return self._breaker.snapshot()

    async def force_open(self) -> None:
        """Open the circuit manually, restarting the open period."""
        await self._report_transition(self._breaker.force_open())

    async def reset(self) -> None:
        """Close the circuit manually and forget recorded outcomes."""
        await self._report_transition(self._breaker.reset())

    async def _notify(self, hook: str, *args: object) -> None:
        for listener in self._listeners:
            try:
                await getattr(listener, hook)(self.name, *args)
            except Exception:
                log_exception(
                    self._logger,
                    "circuit_breaker.listener_failed",
                    guard=self.name,
                    hook=hook,
                )

    def _log_transition(self, transition: Transition) -> None:
        log = log_warning if transition.new == CircuitState.OPEN else log_info
        log(
            self._logger,
            "circuit_breaker.state_changed",
            guard=self.name,
            old_state=transition.old.value,
            new_state=transition.new.value,
        )

    async def _report_transition(self, transition: Transition | None) -> None:
        if transition is None:
            return
        self._log_transition(transition)
        await self._notify("on_state_change", transition.old, transition.new)

    def _settle(self, admission: Admission, kind: OutcomeKind) -> Transition | None:
        return self._breaker.record(
            kind,
            trial=admission.trial,
            trial_epoch=admission.trial_epoch,
        )

    def _abandon(self, admission: Admission) -> None:
        # Cancellation never counts as success and must release a trial.
        transition = self._settle(admission, OutcomeKind.TIMEOUT)
        if transition is not None:
            self._log_transition(transition)

    async def _call_fallback(self, fallback: Fallback[T], error: BaseException) -> T:
        result = fallback(error)
        if not inspect.isawaitable(result):
            return cast(T, result)
        if self.config.fallback_timeout is None:
            return cast(T, await result)
        return cast(
            T, await asyncio.wait_for(result, timeout=self.config.fallback_timeout)
        )

    async def _reject(self, admission: Admission, fallback: Fallback[T] | None) -> T:
        self._breaker.record_rejected()
        error = CircuitOpenError(self.name, retry_after=admission.retry_after)
        log_info(
            self._logger,
            "circuit_breaker.call_rejected",
            guard=self.name,
            retry_after=admission.retry_after,
        )
        await self._notify("on_call_rejected")
        if fallback is None:
            raise error
        return await self._call_fallback(fallback, error)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        fallback: Fallback[T] | None = None,
        *,
        timeout: float | None = None,
    ) -> T:
        """Run ``operation`` under circuit breaker protection.

        Args:
            operation: Zero-argument async callable to protect.
            fallback: Called with the ``CircuitOpenError``, the operation's
                exception or the ``TimeoutError`` when the operation is not
                run or does not succeed. May return a value or an awaitable.
            timeout: Per-call bound overriding ``config.call_timeout``. Trial
                calls never run longer than ``config.half_open_timeout``.
                Elapsed time is measured with the guard's clock.

        Returns:
            The operation's result, or the fallback's result.

        Raises:
            CircuitOpenError: When the call is rejected and no fallback exists.
            GuardedCallError: When the operation fails or times out and no
                fallback exists.
            Exception: Errors raised by ``fallback`` and errors listed in
                ``config.ignored_exceptions``, unmodified.
        """
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0")

        admission = self._breaker.admit()
        if not admission:
            return await self._reject(admission, fallback)

        if admission.trial:
            bound = self.config.half_open_timeout
            if timeout is not None:
                bound = min(timeout, bound)
        else:
            bound = self.config.call_timeout if timeout is None else timeout

        try:
            await self._report_transition(admission.transition)
        except BaseException:
            self._abandon(admission)
            raise

        # The deadline starts only once listeners have seen the transition.
        deadline = asyncio.timeout(bound)
        start = self._clock.now()
        try:
            with structlog.contextvars.bound_contextvars(guard=self.name):
                async with deadline:
                    result = await operation()
        except self.config.ignored_exceptions:
            transition = self._settle(admission, OutcomeKind.SUCCESS)
            await self._report_transition(transition)
            raise
        except Exception as exc:
            elapsed = max(self._clock.now() - start, 0.0)
            if isinstance(exc, TimeoutError) and deadline.expired():
                kind = OutcomeKind.TIMEOUT
            else:
                kind = OutcomeKind.FAILURE
            transition = self._settle(admission, kind)
            log_warning(
                self._logger,
                "circuit_breaker.call_failed",
                guard=self.name,
                outcome=kind.value,
                trial=admission.trial,
                error_type=exc.__class__.__name__,
                elapsed=elapsed,
            )
            await self._notify("on_call_failed", exc, elapsed)
            await self._report_transition(transition)
            if fallback is None:
                raise GuardedCallError(self.name, exc, kind) from exc
            return await self._call_fallback(fallback, exc)
        except BaseException:
            self._abandon(admission)
            raise

        elapsed = max(self._clock.now() - start, 0.0)
        transition = self._settle(admission, OutcomeKind.SUCCESS)
        await self._notify("on_call_succeeded", elapsed)
        await self._report_transition(transition)
        return result

    async def execute_blocking(
        self,
        func: Callable[[], T],
        fallback: Fallback[T] | None = None,
        *,
        timeout: float | None = None,
    ) -> T:
        """Run a blocking callable in a worker thread under protection.

        A worker that outlives its timeout is abandoned, not interrupted.
        """
        return await self.execute(
            partial(asyncio.to_thread, func), fallback, timeout=timeout
        )
