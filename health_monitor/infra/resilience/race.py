"""First-success race across interchangeable breaker-guarded providers.

Providers whose breaker is open are skipped. When no provider is eligible the
race fails with ``AllProvidersUnavailableError`` before any operation runs.
Losing calls keep running by default; their outcome is still recorded by their
own breaker but never affects the returned value. Pass ``cancel_losers=True``
to cancel them as soon as a winner is known.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, TypeVar

from health_monitor.infra.resilience.circuit_breaker import CircuitOpenError

if TYPE_CHECKING:
    from health_monitor.infra.resilience.registry import CircuitBreakerRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

Provider = tuple[str, Callable[[], Awaitable[T]]]


class AllProvidersUnavailableError(Exception):
    """Raised when no provider in a race produced a result.

    Attributes:
        errors: Mapping of provider name to the error it failed with. Providers
            skipped because their breaker was open map to a ``CircuitOpenError``.
    """

    def __init__(
        self,
        message: str = "All providers unavailable",
        errors: dict[str, BaseException] | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or {}


def _consume_result(task: asyncio.Task[object]) -> None:
    # Abandoned losers must not log "exception was never retrieved"
    if not task.cancelled():
        task.exception()


async def race_providers(
    registry: CircuitBreakerRegistry,
    providers: Sequence[Provider[T]],
    *,
    cancel_losers: bool = False,
) -> T:
    """Run eligible providers concurrently and return the first success.

    Args:
        registry: Breaker registry; each provider is guarded by the breaker
            named after it.
        providers: ``(name, operation)`` pairs in preference order.
        cancel_losers: Cancel still-running providers once a winner is found.

    Returns:
        The result of the first provider to succeed.

    Raises:
        AllProvidersUnavailableError: Every breaker is open, or every
            eligible provider failed.
    """
    errors: dict[str, BaseException] = {}
    eligible: list[Provider[T]] = []

    for name, operation in providers:
        if registry.is_available(name):
            eligible.append((name, operation))
        else:
            breaker = registry.get(name)
            errors[name] = CircuitOpenError(
                f"Circuit breaker '{name}' is open",
                name=name,
                retry_after=breaker.retry_after,
            )

    if not eligible:
        logger.warning(
            "All providers unavailable, every circuit breaker is open",
            extra={"providers": [name for name, _ in providers]},
        )
        raise AllProvidersUnavailableError(errors=errors)

    tasks: dict[asyncio.Task[T], str] = {
        asyncio.create_task(registry.call(name, operation), name=f"race:{name}"): name
        for name, operation in eligible
    }
    pending: set[asyncio.Task[T]] = set(tasks)

    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            winner: asyncio.Task[T] | None = None
            for task in done:
                if task.cancelled():
                    errors[tasks[task]] = asyncio.CancelledError()
                elif task.exception() is not None:
                    errors[tasks[task]] = task.exception()  # type: ignore[assignment]
                elif winner is None:
                    winner = task

            if winner is not None:
                logger.debug(
                    f"Provider '{tasks[winner]}' won the race",
                    extra={"provider": tasks[winner], "pending": len(pending)},
                )
                return winner.result()
    finally:
        for task in pending:
            if cancel_losers:
                task.cancel()
            task.add_done_callback(_consume_result)

    logger.warning(
        "All providers failed",
        extra={"providers": list(errors), "errors": {k: str(v) for k, v in errors.items()}},
    )
    raise AllProvidersUnavailableError(errors=errors)
