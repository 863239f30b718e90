"""Tests for bounded-concurrency fleet checks."""

from __future__ import annotations

import asyncio

import pytest

from health_monitor.core.schemas.common import HealthStatus
from health_monitor.features.health.orchestrator import BatchOrchestrator
from health_monitor.features.health.schemas import ProbeConfig, ProbeResult


class RecordingProbe:
    """Fake probe tracking how many checks run at once."""

    def __init__(self, *, fail: set[str] | None = None) -> None:
        self.fail = fail or set()
        self.in_flight = 0
        self.peak = 0
        self.started: list[str] = []

    async def check_with_retry(self, config: ProbeConfig) -> ProbeResult:
        self.started.append(config.name)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            # Later targets finish first within a batch
            await asyncio.sleep(0.001 * (30 - len(self.started) % 10))
            if config.name in self.fail:
                msg = "probe blew up"
                raise RuntimeError(msg)
            return ProbeResult(
                name=config.name,
                status=HealthStatus.HEALTHY,
                response_time_ms=10,
                critical=config.critical,
            )
        finally:
            self.in_flight -= 1


def _targets(count: int) -> list[ProbeConfig]:
    return [ProbeConfig(name=f"api-v1-target-{i:02d}") for i in range(count)]


class TestBatchOrchestrator:
    """Test batching, ordering and failure isolation."""

    async def test_concurrency_is_bounded(self) -> None:
        """Test 25 targets never have more than 10 probes in flight."""
        probe = RecordingProbe()

        results = await BatchOrchestrator(probe, max_concurrent=10).run(_targets(25))

        assert len(results) == 25
        assert probe.peak == 10

    async def test_results_in_input_order(self) -> None:
        """Test results follow input order regardless of completion order."""
        targets = _targets(25)

        results = await BatchOrchestrator(RecordingProbe(), max_concurrent=10).run(targets)

        assert [r.name for r in results] == [t.name for t in targets]

    async def test_next_batch_waits_for_current(self) -> None:
        """Test a batch of one runs targets strictly one after another."""
        probe = RecordingProbe()

        await BatchOrchestrator(probe, max_concurrent=1).run(_targets(3))

        assert probe.peak == 1

    async def test_exception_is_isolated(self) -> None:
        """Test a raising probe becomes an unhealthy result and others still run."""
        targets = _targets(4)
        probe = RecordingProbe(fail={targets[1].name})

        results = await BatchOrchestrator(probe, max_concurrent=2).run(targets)

        failed = results[1]
        assert failed.status == HealthStatus.UNHEALTHY
        assert failed.response_time_ms == 0
        assert failed.error == "Check error: probe blew up"
        assert [r.status for r in results].count(HealthStatus.HEALTHY) == 3

    async def test_critical_flag_kept_on_error(self) -> None:
        """Test an isolated failure keeps the target's critical flag."""
        target = ProbeConfig(name="api-v1-auth", critical=True)

        results = await BatchOrchestrator(RecordingProbe(fail={"api-v1-auth"})).run([target])

        assert results[0].critical is True

    async def test_empty_input(self) -> None:
        """Test no targets gives no results."""
        assert await BatchOrchestrator(RecordingProbe()).run([]) == []

    def test_invalid_concurrency(self) -> None:
        """Test max_concurrent below 1 is rejected."""
        with pytest.raises(ValueError, match="at least 1"):
            BatchOrchestrator(RecordingProbe(), max_concurrent=0)
