"""Explicit registry owning one guard per dependency name."""

import threading
from collections.abc import Iterator, Sequence

from callguard.circuit_breaker.clock import Clock
from callguard.circuit_breaker.config import CircuitBreakerConfig
from callguard.circuit_breaker.guard import CallGuard
from callguard.circuit_breaker.metrics import BreakerListener
from callguard.circuit_breaker.state import MetricsSnapshot
from callguard.logging import AnyLogger


class CallGuardRegistry:
    """Create, own and look up guards by dependency name.

    The registry is a plain object; pass it to the code that needs guards
    rather than reaching for a module-level instance. Guards built here share
    the registry's clock, listeners and logger.
    """

    def __init__(
        self,
        *,
        default_config: CircuitBreakerConfig | None = None,
        clock: Clock | None = None,
        listeners: Sequence[BreakerListener] | None = None,
        logger: AnyLogger | None = None,
    ) -> None:
        self.default_config = (
            CircuitBreakerConfig() if default_config is None else default_config
        )
        self._clock = clock
        self._listeners = tuple(listeners) if listeners is not None else ()
        self._logger = logger
        self._guards: dict[str, CallGuard] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self, name: str, config: CircuitBreakerConfig | None = None
    ) -> CallGuard:
        """Return the guard for ``name``, building it on first use.

        ``config`` only applies when the guard is created; an existing guard
        keeps the configuration it was built with.
        """
        with self._lock:
            guard = self._guards.get(name)
            if guard is None:
                guard = CallGuard(
                    name,
                    self.default_config if config is None else config,
                    clock=self._clock,
                    listeners=self._listeners,
                    logger=self._logger,
                )
                self._guards[name] = guard
            return guard

    def register(self, guard: CallGuard) -> None:
        """Take ownership of an externally built guard."""
        with self._lock:
            if guard.name in self._guards:
                raise ValueError(f"guard already registered: {guard.name}")
            self._guards[guard.name] = guard

    def get(self, name: str) -> CallGuard:
        """Return the guard for ``name``.

        Raises:
            KeyError: When no guard is registered under ``name``.
        """
        with self._lock:
            return self._guards[name]

    def remove(self, name: str) -> CallGuard | None:
        """Drop the guard for ``name`` and return it, if present."""
        with self._lock:
            return self._guards.pop(name, None)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._guards

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(sorted(self._guards))

    def __len__(self) -> int:
        with self._lock:
            return len(self._guards)

    def snapshots(self) -> dict[str, MetricsSnapshot]:
        """Return a metrics snapshot for every registered guard."""
        with self._lock:
            guards = list(self._guards.values())
        return {guard.name: guard.metrics_snapshot() for guard in guards}
