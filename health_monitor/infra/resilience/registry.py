"""Registry of circuit breakers keyed by dependency name.

Breakers are created lazily on first use with the defaults (and per-name
overrides) from ``CircuitBreakerSettings``, then live as long as the registry.
The registry is an explicit object owned by whoever builds the service, so
tests get a fresh one instead of sharing module state.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, TypeVar

from health_monitor.core.settings.resilience import CircuitBreakerSettings
from health_monitor.infra.resilience.circuit_breaker import CircuitBreaker, utc_now

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitBreakerRegistry:
    """Lookup-or-create store for named circuit breakers.

    Example:
        >>> registry = CircuitBreakerRegistry(CircuitBreakerSettings(failure_threshold=3))
        >>> result = await registry.call("api-v1-geocoding", lambda: fetch(url))
        >>> registry.snapshot()
        [{'name': 'api-v1-geocoding', 'state': 'closed', 'failure_count': 0}]
    """

    def __init__(
        self,
        settings: CircuitBreakerSettings | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings or CircuitBreakerSettings()
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}
        # Creation may happen from sync code paths, so a thread lock guards the map
        self._lock = threading.Lock()

    def get(self, name: str) -> CircuitBreaker:
        """Return the breaker for ``name``, creating it on first use."""
        breaker = self._breakers.get(name)
        if breaker is not None:
            return breaker

        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(
                    name=name,
                    clock=self._clock,
                    **self.settings.breaker_kwargs(name),
                )
                self._breakers[name] = breaker
                logger.info(
                    f"Registered circuit breaker '{name}'",
                    extra={
                        "circuit_breaker": name,
                        "failure_threshold": breaker.failure_threshold,
                        "recovery_timeout": breaker.recovery_timeout,
                    },
                )
            return breaker

    def peek(self, name: str) -> CircuitBreaker | None:
        """Return an existing breaker without creating one."""
        return self._breakers.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._breakers

    def __len__(self) -> int:
        return len(self._breakers)

    @property
    def names(self) -> list[str]:
        return list(self._breakers)

    async def call(self, name: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Run a zero-argument async operation through the breaker for ``name``."""
        return await self.get(name).call(operation)

    def is_available(self, name: str) -> bool:
        """Return whether a call for ``name`` would be attempted right now.

        Unknown names are available; no breaker is created.
        """
        breaker = self._breakers.get(name)
        return breaker is None or breaker.would_admit()

    def is_healthy(self, name: str) -> bool:
        """Return whether the breaker for ``name`` is closed (or does not exist yet)."""
        breaker = self._breakers.get(name)
        return breaker is None or breaker.is_closed

    def snapshot(self) -> list[dict[str, Any]]:
        """Return ``name``/``state``/``failure_count`` for every breaker, sorted by name."""
        return [self._breakers[name].snapshot() for name in sorted(self._breakers)]

    def metrics(self) -> dict[str, dict[str, Any]]:
        return {name: breaker.get_metrics() for name, breaker in sorted(self._breakers.items())}

    async def reset(self, name: str | None = None) -> None:
        """Reset one breaker, or every breaker when ``name`` is None.

        Resetting an unknown name is a no-op.
        """
        if name is not None:
            breaker = self._breakers.get(name)
            if breaker is not None:
                await breaker.reset()
            return

        for breaker in list(self._breakers.values()):
            await breaker.reset()

    def clear(self) -> None:
        """Drop every breaker; the next lookup recreates them from settings."""
        with self._lock:
            self._breakers.clear()
