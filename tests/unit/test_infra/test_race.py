"""Tests for racing providers behind circuit breakers."""

from __future__ import annotations

import asyncio

import pytest

from health_monitor.infra.resilience import (
    AllProvidersUnavailableError,
    CircuitBreakerRegistry,
    CircuitOpenError,
    race_providers,
)


async def _fail() -> str:
    msg = "provider down"
    raise RuntimeError(msg)


async def _open(registry: CircuitBreakerRegistry, name: str) -> None:
    for _ in range(registry.settings.failure_threshold):
        with pytest.raises(RuntimeError):
            await registry.call(name, _fail)


class TestRaceProviders:
    """Test winner selection and skipping of open breakers."""

    async def test_first_success_wins(self, registry: CircuitBreakerRegistry) -> None:
        """Test the faster provider's result is returned."""
        slow_started = asyncio.Event()

        async def fast() -> str:
            await slow_started.wait()
            return "groq"

        async def slow() -> str:
            slow_started.set()
            await asyncio.sleep(3600)
            return "zai"

        result = await race_providers(
            registry, [("zai-chat", slow), ("groq-chat", fast)], cancel_losers=True
        )

        assert result == "groq"
        assert registry.get("groq-chat").total_successes == 1

    async def test_failure_does_not_win(self, registry: CircuitBreakerRegistry) -> None:
        """Test a fast failure is recorded and the slower success still wins."""
        release = asyncio.Event()

        async def slow_ok() -> str:
            await release.wait()
            return "zai"

        async def fast_fail() -> str:
            release.set()
            return await _fail()

        result = await race_providers(registry, [("groq-chat", fast_fail), ("zai-chat", slow_ok)])

        assert result == "zai"
        assert registry.get("groq-chat").failure_count == 1

    async def test_skips_open_breaker(self, registry: CircuitBreakerRegistry) -> None:
        """Test a provider with an open breaker is never invoked."""
        await _open(registry, "groq-chat")
        invoked: list[str] = []

        async def groq() -> str:
            invoked.append("groq")
            return "groq"

        async def zai() -> str:
            invoked.append("zai")
            return "zai"

        result = await race_providers(registry, [("groq-chat", groq), ("zai-chat", zai)])

        assert result == "zai"
        assert invoked == ["zai"]

    async def test_all_open_fails_without_io(self, registry: CircuitBreakerRegistry) -> None:
        """Test every breaker open raises immediately and calls nothing."""
        await _open(registry, "groq-chat")
        await _open(registry, "zai-chat")
        invoked = False

        async def operation() -> str:
            nonlocal invoked
            invoked = True
            return "never"

        with pytest.raises(AllProvidersUnavailableError) as exc_info:
            await race_providers(registry, [("groq-chat", operation), ("zai-chat", operation)])

        assert not invoked
        assert set(exc_info.value.errors) == {"groq-chat", "zai-chat"}
        assert all(isinstance(e, CircuitOpenError) for e in exc_info.value.errors.values())

    async def test_all_fail(self, registry: CircuitBreakerRegistry) -> None:
        """Test every eligible provider failing raises with each provider's error."""
        with pytest.raises(AllProvidersUnavailableError) as exc_info:
            await race_providers(registry, [("groq-chat", _fail), ("zai-chat", _fail)])

        assert {name: str(e) for name, e in exc_info.value.errors.items()} == {
            "groq-chat": "provider down",
            "zai-chat": "provider down",
        }


class TestLosers:
    """Test what happens to providers still running after a winner."""

    async def test_losers_keep_running_by_default(self, registry: CircuitBreakerRegistry) -> None:
        """Test an abandoned loser completes and its breaker records the outcome."""
        release = asyncio.Event()
        finished = asyncio.Event()

        async def fast() -> str:
            return "groq"

        async def slow() -> str:
            await release.wait()
            finished.set()
            return "zai"

        result = await race_providers(registry, [("groq-chat", fast), ("zai-chat", slow)])
        assert result == "groq"

        release.set()
        await asyncio.wait_for(finished.wait(), timeout=1)
        await asyncio.sleep(0)

        assert registry.get("zai-chat").total_successes == 1

    async def test_cancel_losers(self, registry: CircuitBreakerRegistry) -> None:
        """Test cancel_losers cancels the slower provider without counting a failure."""
        cancelled = asyncio.Event()

        async def fast() -> str:
            return "groq"

        async def slow() -> str:
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return "zai"

        result = await race_providers(
            registry, [("groq-chat", fast), ("zai-chat", slow)], cancel_losers=True
        )
        assert result == "groq"

        await asyncio.wait_for(cancelled.wait(), timeout=1)
        assert registry.get("zai-chat").failure_count == 0
