"""Single-target health probe with cold-start retry.

A probe attempt sends one HTTP request to the target under its own deadline and
classifies the outcome:

- deadline exceeded: ``timeout`` ("Timeout after {ms}ms"); the request is cancelled
- network or client error: ``unhealthy`` with the error message
- status code outside ``expected_status_codes``: ``unhealthy``
- accepted status slower than the degraded threshold: ``degraded``
- otherwise: ``healthy``

``check_with_retry`` runs attempt, maybe-retry, finalize. Whether and when to
retry is decided by a ``RetryPolicy``; the default waits ``retry_delay`` once
after a failed first attempt, which covers functions warming up after idling.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx

from health_monitor.core.schemas.common import HealthStatus
from health_monitor.features.health.exceptions import (
    ProbeError,
    ProbeFailureError,
    ProbeTimeoutError,
    UnexpectedStatusError,
)
from health_monitor.features.health.schemas import ProbeConfig, ProbeResult
from health_monitor.infra.metrics.tracking import (
    track_cold_start_recovery,
    track_probe_result,
    track_retry_attempt,
)
from health_monitor.infra.resilience.circuit_breaker import CircuitOpenError

if TYPE_CHECKING:
    from health_monitor.core.settings.health import HealthCheckSettings
    from health_monitor.infra.resilience.registry import CircuitBreakerRegistry

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


# ──────────────────────────────────────────────────────────────
# Retry policies
# ──────────────────────────────────────────────────────────────


@runtime_checkable
class RetryPolicy(Protocol):
    """Decides whether a probe result earns another attempt.

    ``attempt`` is the number of attempts already made (1 after the first).
    """

    def should_retry(self, result: ProbeResult, attempt: int) -> bool: ...

    def delay(self, attempt: int) -> float: ...


class ColdStartRetryPolicy:
    """Retry a failed or timed-out result after a fixed delay.

    With the default ``max_retries=1`` there is exactly one retry per check,
    modelling warm-up latency rather than generic transient faults.
    """

    def __init__(self, delay: float = 2.0, max_retries: int = 1) -> None:
        if delay < 0:
            msg = "delay must not be negative"
            raise ValueError(msg)
        if max_retries < 0:
            msg = "max_retries must not be negative"
            raise ValueError(msg)
        self._delay = delay
        self.max_retries = max_retries

    def should_retry(self, result: ProbeResult, attempt: int) -> bool:
        return result.status.is_failure and attempt <= self.max_retries

    def delay(self, attempt: int) -> float:
        return self._delay


class ExponentialBackoffRetryPolicy:
    """Retry failed results with exponentially growing, optionally jittered delays."""

    def __init__(
        self,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
    ) -> None:
        """Initialize backoff policy.

        Args:
            max_retries: Retries after the first attempt.
            initial_delay: Delay in seconds before the first retry.
            max_delay: Upper bound for any single delay in seconds.
            exponential_base: Growth factor between consecutive delays.
            jitter: Scale each delay by a random factor between 0.5 and 1.5.
        """
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    def should_retry(self, result: ProbeResult, attempt: int) -> bool:
        return result.status.is_failure and attempt <= self.max_retries

    def delay(self, attempt: int) -> float:
        delay = min(self.initial_delay * (self.exponential_base ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay = delay * (0.5 + random.random())  # noqa: S311
        return delay


# ──────────────────────────────────────────────────────────────
# Probe
# ──────────────────────────────────────────────────────────────


class HealthProbe:
    """Performs timed, cancellable checks against named targets.

    Example:
        >>> async with httpx.AsyncClient() as client:
        ...     probe = HealthProbe(client, base_url="https://project.example.co")
        ...     result = await probe.check_with_retry(ProbeConfig(name="api-v1-search"))
        >>> result.status
        <HealthStatus.HEALTHY: 'healthy'>
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str,
        function_path: str = "/functions/v1",
        auth_token: str | None = None,
        timeout: float = 8.0,
        degraded_threshold_ms: float = 5000.0,
        retry_policy: RetryPolicy | None = None,
        breakers: CircuitBreakerRegistry | None = None,
        sleep: SleepFunc = asyncio.sleep,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        """Initialize probe.

        Args:
            client: Shared HTTP client used for every attempt.
            base_url: Base URL function names are resolved against.
            function_path: Path prefix between the base URL and a function name.
            auth_token: Bearer token sent with each request.
            timeout: Per-attempt deadline in seconds.
            degraded_threshold_ms: Latency above which a working target is degraded.
            retry_policy: Retry decision; single cold-start retry after 2s by default.
            breakers: When given, each attempt runs through the target's breaker.
            sleep: Awaitable delay used between attempts.
            timer: Monotonic clock in seconds used for response times.
        """
        if timeout <= 0:
            msg = "timeout must be greater than 0"
            raise ValueError(msg)
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._function_path = "/" + function_path.strip("/") if function_path.strip("/") else ""
        self._auth_token = auth_token
        self.timeout = timeout
        self.degraded_threshold_ms = degraded_threshold_ms
        self.retry_policy: RetryPolicy = retry_policy or ColdStartRetryPolicy()
        self._breakers = breakers
        self._sleep = sleep
        self._timer = timer

    @classmethod
    def from_settings(
        cls,
        settings: HealthCheckSettings,
        client: httpx.AsyncClient,
        *,
        breakers: CircuitBreakerRegistry | None = None,
        **kwargs: Any,
    ) -> HealthProbe:
        """Build a probe from ``HEALTH_*`` settings.

        Breakers are only attached when ``guard_probes`` is enabled.
        """
        return cls(
            client,
            base_url=settings.base_url,
            function_path=settings.function_path,
            auth_token=(
                settings.auth_token.get_secret_value() if settings.auth_token else None
            ),
            timeout=settings.probe_timeout,
            degraded_threshold_ms=settings.thresholds.function_ms,
            retry_policy=ColdStartRetryPolicy(settings.retry_delay, settings.max_retries),
            breakers=breakers if settings.guard_probes else None,
            **kwargs,
        )

    @property
    def timeout_ms(self) -> int:
        return round(self.timeout * 1000)

    def endpoint_for(self, config: ProbeConfig) -> str:
        """Resolve the request URL for a target.

        An absolute ``health_endpoint`` is used as is, a relative one is joined
        to the base URL, and without one the function URL is derived from the name.
        """
        if config.health_endpoint:
            if config.health_endpoint.startswith(("http://", "https://")):
                return config.health_endpoint
            return f"{self._base_url}/{config.health_endpoint.lstrip('/')}"
        return f"{self._base_url}{self._function_path}/{config.name}"

    async def check(self, config: ProbeConfig, *, is_retry: bool = False) -> ProbeResult:
        """Run a single attempt and classify it. Never raises for probe failures."""
        start = self._timer()

        try:
            if self._breakers is not None:
                response = await self._breakers.call(config.name, lambda: self._attempt(config))
            else:
                response = await self._attempt(config)
        except CircuitOpenError as e:
            return self._result(config, HealthStatus.UNHEALTHY, start, is_retry, error=str(e))
        except ProbeTimeoutError as e:
            return self._result(config, HealthStatus.TIMEOUT, start, is_retry, error=e.message)
        except UnexpectedStatusError as e:
            return self._result(
                config,
                HealthStatus.UNHEALTHY,
                start,
                is_retry,
                http_status=e.status_code,
                error=e.message,
            )
        except ProbeError as e:
            return self._result(config, HealthStatus.UNHEALTHY, start, is_retry, error=e.message)
        except Exception as e:
            logger.exception(
                f"Unexpected error while probing {config.name}",
                extra={"target": config.name},
            )
            return self._result(
                config, HealthStatus.UNHEALTHY, start, is_retry, error=str(e) or type(e).__name__
            )

        response_time_ms = self._elapsed_ms(start)
        threshold = config.degraded_threshold_ms or self.degraded_threshold_ms
        status = HealthStatus.DEGRADED if response_time_ms > threshold else HealthStatus.HEALTHY
        return ProbeResult(
            name=config.name,
            status=status,
            response_time_ms=response_time_ms,
            http_status=response.status_code,
            critical=config.critical,
            retried=is_retry,
        )

    async def check_with_retry(self, config: ProbeConfig) -> ProbeResult:
        """Attempt, retry per the policy, then finalize the reported result."""
        first = await self.check(config)
        result = first
        attempt = 1

        while self.retry_policy.should_retry(result, attempt) and self._admits(config.name):
            delay = self.retry_policy.delay(attempt)
            logger.info(
                f"Retrying {config.name} after potential cold start",
                extra={
                    "target": config.name,
                    "first_attempt_status": first.status.value,
                    "first_attempt_time_ms": first.response_time_ms,
                    "retry_delay": delay,
                },
            )
            track_retry_attempt("health_probe", attempt + 1)
            await self._sleep(delay)
            attempt += 1
            result = await self.check(config, is_retry=True)

        return self._finalize(first, result)

    def _finalize(self, first: ProbeResult, result: ProbeResult) -> ProbeResult:
        if result.retried and first.status.is_failure and result.status.is_operational:
            result = result.model_copy(update={"recovered_from_cold_start": True})
            track_cold_start_recovery(result.name)
            logger.info(
                f"{result.name} recovered from cold start",
                extra={"target": result.name, "response_time_ms": result.response_time_ms},
            )
        track_probe_result(result.name, result.status.value, result.response_time_ms / 1000)
        return result

    def _admits(self, name: str) -> bool:
        return self._breakers is None or self._breakers.is_available(name)

    async def _attempt(self, config: ProbeConfig) -> httpx.Response:
        """One request under the deadline; raises a ``ProbeError`` on failure."""
        try:
            async with asyncio.timeout(self.timeout):
                response = await self._send(config)
        except (TimeoutError, httpx.TimeoutException) as e:
            raise ProbeTimeoutError(config.name, self.timeout_ms) from e
        except Exception as e:
            raise ProbeFailureError(config.name, str(e) or type(e).__name__) from e

        if response.status_code not in config.expected_status_codes:
            raise UnexpectedStatusError(config.name, response.status_code)
        return response

    async def _send(self, config: ProbeConfig) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"

        url = self.endpoint_for(config)
        if config.method == "POST":
            return await self._client.post(url, headers=headers, json=config.test_payload or {})
        return await self._client.request(config.method, url, headers=headers)

    def _elapsed_ms(self, start: float) -> int:
        return max(0, round((self._timer() - start) * 1000))

    def _result(
        self,
        config: ProbeConfig,
        status: HealthStatus,
        start: float,
        is_retry: bool,
        *,
        http_status: int | None = None,
        error: str | None = None,
    ) -> ProbeResult:
        return ProbeResult(
            name=config.name,
            status=status,
            response_time_ms=self._elapsed_ms(start),
            http_status=http_status,
            error=error,
            critical=config.critical,
            retried=is_retry,
        )


__all__ = [
    "ColdStartRetryPolicy",
    "ExponentialBackoffRetryPolicy",
    "HealthProbe",
    "RetryPolicy",
]
