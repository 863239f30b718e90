"""Tests for structural service checkers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import httpx

from health_monitor.core.schemas.common import HealthStatus, ResourceClass
from health_monitor.core.settings.health import DegradedThresholds
from health_monitor.features.health.aggregator import StatusAggregator
from health_monitor.features.health.checkers import (
    CallableServiceChecker,
    HttpServiceChecker,
    ServiceChecker,
)

DATASTORE_URL = "https://project.example.test/rest/v1/"


def _timer(*readings: float) -> Callable[[], float]:
    values = iter(readings)
    return lambda: next(values, readings[-1])


class TestHttpServiceChecker:
    """Test HTTP GET based checks."""

    def _checker(
        self,
        handler: Callable[[httpx.Request], httpx.Response],
        **kwargs: object,
    ) -> HttpServiceChecker:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return HttpServiceChecker(
            "database",
            DATASTORE_URL,
            client,
            headers={"apikey": "anon"},
            resource_class=ResourceClass.DATABASE,
            critical=True,
            **kwargs,  # type: ignore[arg-type]
        )

    async def test_success(self) -> None:
        """Test a fast 2xx is healthy and headers are sent."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        checker = self._checker(handler, timer=_timer(0.0, 0.04))
        assert isinstance(checker, ServiceChecker)

        result = await checker.check()

        assert result.service == "database"
        assert result.status == HealthStatus.HEALTHY
        assert result.response_time_ms == 40
        assert result.critical is True
        assert result.details == {"status_code": 200}
        assert seen[0].headers["apikey"] == "anon"

    async def test_slow_success_is_degraded(self) -> None:
        """Test a datastore response above 500ms is degraded."""
        checker = self._checker(lambda r: httpx.Response(200), timer=_timer(0.0, 0.6))

        result = await checker.check()

        assert result.status == HealthStatus.DEGRADED

    async def test_classifier_thresholds_apply(self) -> None:
        """Test the classifier's per-class thresholds decide degraded latency."""
        classifier = StatusAggregator(DegradedThresholds(database_ms=50))
        checker = self._checker(
            lambda r: httpx.Response(200), timer=_timer(0.0, 0.06), classifier=classifier
        )

        result = await checker.check()

        assert result.status == HealthStatus.DEGRADED

    async def test_non_2xx_is_unhealthy(self) -> None:
        """Test error statuses are unhealthy with the code in the error."""
        checker = self._checker(lambda r: httpx.Response(500))

        result = await checker.check()

        assert result.status == HealthStatus.UNHEALTHY
        assert result.error == "HTTP 500"
        assert result.details == {"status_code": 500}

    async def test_timeout(self) -> None:
        """Test a response slower than the deadline is a timeout."""

        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200)

        checker = self._checker(handler, timeout=0.05)

        result = await checker.check()

        assert result.status == HealthStatus.TIMEOUT
        assert result.error == "Timeout after 50ms"

    async def test_connection_error(self) -> None:
        """Test network errors are unhealthy and never raised."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("name resolution failed", request=request)

        result = await self._checker(handler).check()

        assert result.status == HealthStatus.UNHEALTHY
        assert result.error == "name resolution failed"


class TestCallableServiceChecker:
    """Test checks wrapping an arbitrary async operation."""

    async def test_success_with_details(self) -> None:
        """Test a mapping returned by the operation becomes details."""

        async def list_buckets() -> dict[str, int]:
            return {"buckets": 3}

        checker = CallableServiceChecker(
            "storage",
            list_buckets,
            resource_class=ResourceClass.STORAGE,
            timer=_timer(0.0, 0.2),
        )

        result = await checker.check()

        assert result.status == HealthStatus.HEALTHY
        assert result.details == {"buckets": 3}
        assert result.response_time_ms == 200

    async def test_failure(self) -> None:
        """Test an exception from the operation is unhealthy."""

        async def ping() -> None:
            msg = "permission denied"
            raise PermissionError(msg)

        checker = CallableServiceChecker("storage", ping, resource_class=ResourceClass.STORAGE)

        result = await checker.check()

        assert result.status == HealthStatus.UNHEALTHY
        assert result.error == "permission denied"
        assert result.details is None

    async def test_timeout(self) -> None:
        """Test a hung operation times out."""

        async def hang() -> None:
            await asyncio.sleep(1)

        checker = CallableServiceChecker(
            "storage", hang, resource_class=ResourceClass.STORAGE, timeout=0.05
        )

        result = await checker.check()

        assert result.status == HealthStatus.TIMEOUT
