"""Structural service checks (datastore, object store).

Implement the ``ServiceChecker`` protocol to add a check without touching the
service facade. Two implementations ship here: an HTTP GET against a health
URL, and a wrapper around any zero-argument async operation (a ``SELECT 1``,
a bucket listing). Both classify latency through ``StatusAggregator.classify_latency``
and never raise.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

import httpx

from health_monitor.core.schemas.common import HealthStatus, ResourceClass
from health_monitor.features.health.aggregator import StatusAggregator
from health_monitor.features.health.schemas import ServiceCheckResult

logger = logging.getLogger(__name__)


@runtime_checkable
class ServiceChecker(Protocol):
    """Protocol for structural dependency checks.

    Example:
        >>> class CacheChecker:
        ...     name = "cache"
        ...
        ...     async def check(self) -> ServiceCheckResult:
        ...         await redis.ping()
        ...         return ServiceCheckResult(
        ...             service="cache", status=HealthStatus.HEALTHY, response_time_ms=1
        ...         )
    """

    @property
    def name(self) -> str: ...

    async def check(self) -> ServiceCheckResult: ...


class _TimedChecker:
    """Shared timing and classification for the built-in checkers."""

    def __init__(
        self,
        name: str,
        *,
        resource_class: ResourceClass,
        timeout: float = 5.0,
        critical: bool = False,
        classifier: StatusAggregator | None = None,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._name = name
        self.resource_class = resource_class
        self.timeout = timeout
        self.critical = critical
        self.classifier = classifier or StatusAggregator()
        self._timer = timer

    @property
    def name(self) -> str:
        return self._name

    def _elapsed_ms(self, start: float) -> int:
        return max(0, round((self._timer() - start) * 1000))

    def _classify(self, response_time_ms: int) -> HealthStatus:
        return self.classifier.classify_latency(self.resource_class, response_time_ms)

    def _failure(
        self, status: HealthStatus, start: float, error: str, details: dict[str, Any] | None = None
    ) -> ServiceCheckResult:
        logger.warning(
            f"Service check for {self._name} failed",
            extra={"service": self._name, "status": status.value, "error": error},
        )
        return ServiceCheckResult(
            service=self._name,
            status=status,
            response_time_ms=self._elapsed_ms(start),
            error=error,
            details=details,
            critical=self.critical,
        )


class HttpServiceChecker(_TimedChecker):
    """Checks a service by GETting its health URL; any 2xx counts as working."""

    def __init__(
        self,
        name: str,
        url: str,
        client: httpx.AsyncClient,
        *,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(name, **kwargs)
        self.url = url
        self._client = client
        self._headers = headers or {}

    async def check(self) -> ServiceCheckResult:
        start = self._timer()
        try:
            async with asyncio.timeout(self.timeout):
                response = await self._client.get(self.url, headers=self._headers)
        except (TimeoutError, httpx.TimeoutException):
            return self._failure(
                HealthStatus.TIMEOUT, start, f"Timeout after {round(self.timeout * 1000)}ms"
            )
        except httpx.HTTPError as e:
            return self._failure(HealthStatus.UNHEALTHY, start, str(e) or type(e).__name__)

        response_time_ms = self._elapsed_ms(start)
        if not response.is_success:
            return self._failure(
                HealthStatus.UNHEALTHY,
                start,
                f"HTTP {response.status_code}",
                details={"status_code": response.status_code},
            )

        return ServiceCheckResult(
            service=self.name,
            status=self._classify(response_time_ms),
            response_time_ms=response_time_ms,
            details={"status_code": response.status_code},
            critical=self.critical,
        )


class CallableServiceChecker(_TimedChecker):
    """Checks a service by awaiting a zero-argument operation.

    The operation may return a mapping, which is reported as ``details``.
    """

    def __init__(
        self,
        name: str,
        operation: Callable[[], Awaitable[Any]],
        **kwargs: Any,
    ) -> None:
        super().__init__(name, **kwargs)
        self._operation = operation

    async def check(self) -> ServiceCheckResult:
        start = self._timer()
        try:
            async with asyncio.timeout(self.timeout):
                outcome = await self._operation()
        except TimeoutError:
            return self._failure(
                HealthStatus.TIMEOUT, start, f"Timeout after {round(self.timeout * 1000)}ms"
            )
        except Exception as e:
            return self._failure(HealthStatus.UNHEALTHY, start, str(e) or type(e).__name__)

        response_time_ms = self._elapsed_ms(start)
        return ServiceCheckResult(
            service=self.name,
            status=self._classify(response_time_ms),
            response_time_ms=response_time_ms,
            details=dict(outcome) if isinstance(outcome, dict) else None,
            critical=self.critical,
        )


__all__ = ["CallableServiceChecker", "HttpServiceChecker", "ServiceChecker"]
