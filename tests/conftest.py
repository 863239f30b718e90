"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings that keep tests away from real infrastructure
    - Time Fixtures: controllable clocks and sleep recorders
    - Resilience Fixtures: fresh breaker registries and alert gates
    - HTTP Fixtures: httpx clients backed by MockTransport handlers

Nothing here waits on real time. Breaker recovery, alert cooldowns and
retry delays are driven through injected clocks and sleep callables.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Callable, Iterator
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from health_monitor.core.settings import clear_all_caches
from health_monitor.core.settings.resilience import CircuitBreakerSettings
from health_monitor.features.health.alerting import AlertGate
from health_monitor.infra.resilience import CircuitBreakerRegistry

# Ensure tests run without external infrastructure
os.environ.setdefault("HEALTH_BASE_URL", "https://project.example.test")
os.environ.setdefault("LOG_CONSOLE_ENABLED", "false")


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Reload settings for every test so env overrides do not leak."""
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Time Fixtures
# ============================================================================


class FakeClock:
    """Manually advanced aware-datetime clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class SleepRecorder:
    """Drop-in for ``asyncio.sleep`` that records delays instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at 2025-01-01 12:00 UTC until advanced."""
    return FakeClock()


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


# ============================================================================
# Resilience Fixtures
# ============================================================================


@pytest.fixture
def registry(clock: FakeClock) -> CircuitBreakerRegistry:
    """Breaker registry with threshold 5 and a 60s reset timeout on the fake clock."""
    return CircuitBreakerRegistry(
        CircuitBreakerSettings(failure_threshold=5, recovery_timeout=60.0),
        clock=clock,
    )


@pytest.fixture
def alert_gate(clock: FakeClock) -> AlertGate:
    return AlertGate(cooldown=900.0, threshold=1, clock=clock)


# ============================================================================
# HTTP Fixtures
# ============================================================================


@pytest.fixture
def mock_client_factory() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build AsyncClients whose requests are answered by a handler function.

    Example:
        def test_probe(mock_client_factory):
            client = mock_client_factory(lambda request: httpx.Response(200))
    """
    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
async def ok_client() -> AsyncGenerator[httpx.AsyncClient]:
    """Client that answers every request with 200 and an empty JSON body."""
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))
    ) as client:
        yield client
