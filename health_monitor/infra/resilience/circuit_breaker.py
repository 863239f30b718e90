"""Circuit breaker for calls to unreliable downstream dependencies.

States:
    - CLOSED: Normal operation, calls pass through
    - OPEN: Failure threshold reached, calls are rejected without being invoked
    - HALF_OPEN: Reset timeout elapsed, a limited number of trial calls pass

Transitions:
    CLOSED -> OPEN: ``failure_threshold`` consecutive failures
    OPEN -> HALF_OPEN: ``recovery_timeout`` seconds elapsed since the last failure
    HALF_OPEN -> CLOSED: ``success_threshold`` trial successes (failure count reset to 0)
    HALF_OPEN -> OPEN: any trial failure (failure timer restarts)

The consecutive failure count is kept while half-open, so an open breaker always
reports ``failure_count >= failure_threshold``. Only calls admitted as trials
move a half-open breaker, and an open breaker ignores late successes from calls
admitted before it opened.

Example:
    >>> breaker = CircuitBreaker(name="api-v1-geocoding", failure_threshold=3)
    >>> try:
    ...     result = await breaker.call(lambda: client.get(url))
    ... except CircuitOpenError as e:
    ...     logger.warning(f"Geocoding unavailable, retry in {e.retry_after:.0f}s")
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ParamSpec, Self, TypeVar

from health_monitor.infra.metrics.tracking import (
    track_circuit_breaker_failure,
    track_circuit_breaker_rejected,
    track_circuit_breaker_state_change,
    track_circuit_breaker_success,
    update_circuit_breaker_state,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(UTC)


class CircuitState(StrEnum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised when a breaker rejects a call without invoking the operation.

    For HTTP APIs the exception handlers translate this into a 503 problem
    response carrying ``retry_after``.

    Args:
        message: Human-readable error message.
        name: Dependency name of the rejecting breaker.
        retry_after: Seconds until a trial call will be admitted, if known.
    """

    def __init__(
        self,
        message: str = "Circuit breaker is open",
        *,
        name: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.name = name
        self.retry_after = retry_after


@dataclass(frozen=True, slots=True)
class DependencyState:
    """Point-in-time view of the failure accounting for one dependency."""

    failure_count: int
    last_failure_time: datetime | None
    is_open: bool


class CircuitBreaker:
    """Circuit breaker guarding one named dependency.

    All read-modify-write sections on the failure accounting run under an
    ``asyncio.Lock``; the guarded operation itself runs outside the lock.

    Attributes:
        name: Dependency name this breaker guards.
        failure_threshold: Consecutive failures before opening the circuit.
        recovery_timeout: Seconds after the last failure before a trial call.
        success_threshold: Trial successes needed to close a half-open circuit.
        half_open_max_calls: Trial calls admitted concurrently while half-open.
        expected_exception: Exception type(s) that count as failures.
        total_failures: Failures recorded since creation or the last reset.
        total_successes: Successes recorded since creation or the last reset.
        total_rejections: Calls rejected while open.
    """

    def __init__(
        self,
        *,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        success_threshold: int = 1,
        half_open_max_calls: int = 1,
        expected_exception: type[Exception] | tuple[type[Exception], ...] = Exception,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize circuit breaker.

        Args:
            name: Unique identifier for this breaker, usually the dependency name.
            failure_threshold: Consecutive failures before opening. Must be > 0.
            recovery_timeout: Seconds to stay OPEN before a trial call. Must be > 0.
            success_threshold: Trial successes needed to close. Must be > 0.
            half_open_max_calls: Concurrent trial calls while HALF_OPEN. Must be > 0.
            expected_exception: Exception type(s) recorded as failures. Other
                exceptions propagate without touching the failure count.
            clock: Returns the current aware datetime.

        Raises:
            ValueError: If any threshold or timeout value is invalid.
        """
        if failure_threshold <= 0:
            msg = "failure_threshold must be greater than 0"
            raise ValueError(msg)
        if recovery_timeout <= 0:
            msg = "recovery_timeout must be greater than 0"
            raise ValueError(msg)
        if success_threshold <= 0:
            msg = "success_threshold must be greater than 0"
            raise ValueError(msg)
        if half_open_max_calls <= 0:
            msg = "half_open_max_calls must be greater than 0"
            raise ValueError(msg)

        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold
        self.half_open_max_calls = half_open_max_calls
        self.expected_exception = expected_exception
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._half_open_calls = 0
        self._half_open_generation = 0
        self._context_trials: dict[asyncio.Task[Any] | None, int | None] = {}
        self._last_failure_time: datetime | None = None
        self._lock = asyncio.Lock()

        self.total_failures = 0
        self.total_successes = 0
        self.total_rejections = 0

        update_circuit_breaker_state(self.name, self._state.value)

        logger.debug(
            f"Circuit breaker '{name}' initialized",
            extra={
                "circuit_breaker": name,
                "failure_threshold": failure_threshold,
                "recovery_timeout": recovery_timeout,
            },
        )

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == CircuitState.OPEN

    @property
    def is_closed(self) -> bool:
        return self._state == CircuitState.CLOSED

    @property
    def is_half_open(self) -> bool:
        return self._state == CircuitState.HALF_OPEN

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def last_failure_time(self) -> datetime | None:
        return self._last_failure_time

    @property
    def dependency_state(self) -> DependencyState:
        return DependencyState(
            failure_count=self._failure_count,
            last_failure_time=self._last_failure_time,
            is_open=self.is_open,
        )

    @property
    def retry_after(self) -> float:
        """Seconds until an open breaker admits a trial call (0 when not open)."""
        if not self.is_open or self._last_failure_time is None:
            return 0.0
        elapsed = (self._clock() - self._last_failure_time).total_seconds()
        return max(0.0, self.recovery_timeout - elapsed)

    def would_admit(self) -> bool:
        """Return whether a call made now would be attempted.

        Does not transition state; an open breaker whose reset timeout has
        elapsed counts as admitting.
        """
        if self.is_open:
            return self.retry_after <= 0
        if self.is_half_open:
            return self._half_open_calls < self.half_open_max_calls
        return True

    async def call(self, func: Callable[P, Awaitable[T]], *args: P.args, **kwargs: P.kwargs) -> T:
        """Execute an async operation with circuit breaker protection.

        Args:
            func: Async callable to execute, usually a zero-argument operation.
            *args: Positional arguments to pass to the callable.
            **kwargs: Keyword arguments to pass to the callable.

        Returns:
            Result returned by the callable.

        Raises:
            CircuitOpenError: If the circuit is open or the half-open trial
                slots are taken. The callable is not invoked.
            Exception: Any exception raised by the callable (after recording it).
        """
        trial = await self._acquire()

        try:
            result = await func(*args, **kwargs)
        except self.expected_exception as e:
            await self._on_failure(e, trial)
            raise
        except BaseException:
            # Cancellation and unexpected errors free the trial slot only
            await self._release_trial_slot(trial)
            raise

        await self._on_success(trial)
        return result

    async def _acquire(self) -> int | None:
        """Admit a call or raise CircuitOpenError.

        Returns:
            The half-open generation when the call is admitted as a trial,
            otherwise None.
        """
        async with self._lock:
            self._check_state()

            if self.is_open:
                self.total_rejections += 1
                track_circuit_breaker_rejected(self.name)
                retry_after = self.retry_after
                msg = f"Circuit breaker '{self.name}' is open"
                logger.warning(
                    msg,
                    extra={
                        "circuit_breaker": self.name,
                        "state": "open",
                        "retry_after": round(retry_after, 3),
                        "total_rejections": self.total_rejections,
                    },
                )
                raise CircuitOpenError(msg, name=self.name, retry_after=retry_after)

            if self.is_half_open:
                if self._half_open_calls >= self.half_open_max_calls:
                    self.total_rejections += 1
                    track_circuit_breaker_rejected(self.name)
                    msg = f"Circuit breaker '{self.name}' half-open call limit reached"
                    logger.warning(
                        msg,
                        extra={
                            "circuit_breaker": self.name,
                            "state": "half_open",
                            "half_open_calls": self._half_open_calls,
                            "max_calls": self.half_open_max_calls,
                        },
                    )
                    raise CircuitOpenError(msg, name=self.name, retry_after=0.0)
                self._half_open_calls += 1
                return self._half_open_generation

            return None

    def _check_state(self) -> None:
        """Move OPEN to HALF_OPEN once the reset timeout has elapsed. Caller holds the lock."""
        if self.is_open and self._last_failure_time:
            elapsed = self._clock() - self._last_failure_time
            if elapsed >= timedelta(seconds=self.recovery_timeout):
                self._transition_to_half_open()

    def _is_current_trial(self, trial: int | None) -> bool:
        return self.is_half_open and trial == self._half_open_generation

    async def _release_trial_slot(self, trial: int | None) -> None:
        async with self._lock:
            if self._is_current_trial(trial) and self._half_open_calls > 0:
                self._half_open_calls -= 1

    async def _on_success(self, trial: int | None) -> None:
        async with self._lock:
            self.total_successes += 1
            track_circuit_breaker_success(self.name)

            if self.is_open:
                logger.debug(
                    f"Circuit breaker '{self.name}' ignoring success while open",
                    extra={"circuit_breaker": self.name, "failure_count": self._failure_count},
                )
                return

            if self.is_half_open:
                if not self._is_current_trial(trial):
                    return
                self._half_open_calls = max(0, self._half_open_calls - 1)
                self._success_count += 1
                logger.info(
                    f"Circuit breaker '{self.name}' trial call succeeded",
                    extra={
                        "circuit_breaker": self.name,
                        "state": "half_open",
                        "success_count": self._success_count,
                        "success_threshold": self.success_threshold,
                    },
                )
                if self._success_count >= self.success_threshold:
                    self._transition_to_closed()
            elif self._failure_count > 0:
                logger.debug(
                    f"Circuit breaker '{self.name}' resetting failure count",
                    extra={
                        "circuit_breaker": self.name,
                        "previous_failures": self._failure_count,
                    },
                )
                self._failure_count = 0

    async def _on_failure(self, exception: BaseException, trial: int | None) -> None:
        async with self._lock:
            self.total_failures += 1
            self._failure_count += 1
            self._last_failure_time = self._clock()

            track_circuit_breaker_failure(self.name)

            logger.warning(
                f"Circuit breaker '{self.name}' recorded failure",
                extra={
                    "circuit_breaker": self.name,
                    "failure_count": self._failure_count,
                    "failure_threshold": self.failure_threshold,
                    "exception_type": type(exception).__name__,
                    "exception_message": str(exception),
                },
            )

            if self._is_current_trial(trial):
                # Any trial failure reopens the circuit and restarts the timer
                self._failure_count = max(self._failure_count, self.failure_threshold)
                self._transition_to_open()
            elif self.is_closed and self._failure_count >= self.failure_threshold:
                self._transition_to_open()

    def _transition_to_open(self) -> None:
        old_state = self._state.value
        self._state = CircuitState.OPEN
        self._success_count = 0
        self._half_open_calls = 0

        track_circuit_breaker_state_change(self.name, old_state, self._state.value)

        logger.error(
            f"Circuit breaker '{self.name}' opened",
            extra={
                "circuit_breaker": self.name,
                "old_state": old_state,
                "new_state": self._state.value,
                "failure_count": self._failure_count,
                "recovery_timeout": self.recovery_timeout,
            },
        )

    def _transition_to_half_open(self) -> None:
        old_state = self._state.value
        self._state = CircuitState.HALF_OPEN
        self._success_count = 0
        self._half_open_calls = 0
        self._half_open_generation += 1

        track_circuit_breaker_state_change(self.name, old_state, self._state.value)

        logger.info(
            f"Circuit breaker '{self.name}' transitioned to HALF_OPEN",
            extra={
                "circuit_breaker": self.name,
                "old_state": old_state,
                "new_state": self._state.value,
            },
        )

    def _transition_to_closed(self) -> None:
        old_state = self._state.value
        self._state = CircuitState.CLOSED
        self._success_count = 0
        self._failure_count = 0
        self._half_open_calls = 0
        self._last_failure_time = None

        if old_state != self._state.value:
            track_circuit_breaker_state_change(self.name, old_state, self._state.value)

        logger.info(
            f"Circuit breaker '{self.name}' closed",
            extra={
                "circuit_breaker": self.name,
                "old_state": old_state,
                "new_state": self._state.value,
            },
        )

    def protected(self, func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        """Decorator form of :meth:`call`.

        Example:
            >>> @breaker.protected
            ... async def translate(text: str) -> str:
            ...     return await provider.translate(text)
        """

        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return await self.call(func, *args, **kwargs)

        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        wrapper.__module__ = func.__module__
        wrapper.__qualname__ = func.__qualname__

        return wrapper

    async def __aenter__(self) -> Self:
        trial = await self._acquire()
        self._context_trials[asyncio.current_task()] = trial
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,  # noqa: ANN401
    ) -> None:
        trial = self._context_trials.pop(asyncio.current_task(), None)
        if exc_type is None:
            await self._on_success(trial)
        elif exc_val is not None and isinstance(exc_val, self.expected_exception):
            await self._on_failure(exc_val, trial)
        else:
            await self._release_trial_slot(trial)

    def get_metrics(self) -> dict[str, Any]:
        """Get counters and derived statistics for this breaker.

        Returns:
            Dictionary with state, current and lifetime counters, the ISO 8601
            time of the last failure and the lifetime failure rate (0.0-1.0).
        """
        total_calls = self.total_failures + self.total_successes
        failure_rate = self.total_failures / total_calls if total_calls > 0 else 0.0

        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "success_count": self._success_count,
            "total_failures": self.total_failures,
            "total_successes": self.total_successes,
            "total_rejections": self.total_rejections,
            "last_failure_time": (
                self._last_failure_time.isoformat() if self._last_failure_time else None
            ),
            "failure_rate": failure_rate,
            "retry_after": self.retry_after,
        }

    def snapshot(self) -> dict[str, Any]:
        """Short status record used by health summaries."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
        }

    async def reset(self) -> None:
        """Manually reset the breaker to CLOSED and clear every counter."""
        async with self._lock:
            self._transition_to_closed()
            self.total_failures = 0
            self.total_successes = 0
            self.total_rejections = 0
            update_circuit_breaker_state(self.name, self._state.value)
            logger.info(
                f"Circuit breaker '{self.name}' manually reset",
                extra={"circuit_breaker": self.name},
            )

    def __call__(self, func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        return self.protected(func)
