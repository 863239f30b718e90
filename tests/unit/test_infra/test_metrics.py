"""Tests for Prometheus metric tracking helpers."""

from __future__ import annotations

import pytest

from health_monitor.infra.metrics import REGISTRY, render_metrics, tracking
from health_monitor.infra.resilience import CircuitBreaker


def _sample(name: str, **labels: str) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestBreakerMetrics:
    """Test breaker gauges and counters follow the state machine."""

    async def test_state_gauge_and_counters(self) -> None:
        """Test opening a breaker updates the gauge and state change counter."""
        name = "metrics-breaker-open"
        breaker = CircuitBreaker(name=name, failure_threshold=2)

        async def fail() -> None:
            raise RuntimeError

        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(fail)

        assert _sample("circuit_breaker_state", circuit_name=name) == 2
        assert _sample("circuit_breaker_failures_total", circuit_name=name) == 2
        assert (
            _sample(
                "circuit_breaker_state_changes_total",
                circuit_name=name,
                from_state="closed",
                to_state="open",
            )
            == 1
        )

        await breaker.reset()
        assert _sample("circuit_breaker_state", circuit_name=name) == 0


class TestHealthMetrics:
    """Test probe, fleet and alert metrics."""

    def test_track_probe_result(self) -> None:
        """Test probe counters, status gauge and duration histogram."""
        target = "metrics-probe-target"

        tracking.track_probe_result(target, "degraded", 0.3)

        assert _sample("health_probe_total", target=target, status="degraded") == 1
        assert _sample("health_probe_status", target=target) == 0.5
        assert _sample("health_probe_duration_seconds_count", target=target) == 1

    def test_track_probe_result_without_duration(self) -> None:
        """Test an unmeasured result leaves the histogram alone."""
        target = "metrics-probe-unmeasured"

        tracking.track_probe_result(target, "unhealthy")

        assert _sample("health_probe_status", target=target) == 0.0
        assert _sample("health_probe_duration_seconds_count", target=target) == 0

    def test_retry_and_recovery(self) -> None:
        """Test retry attempts and cold start recoveries are counted."""
        before = _sample("retry_attempts_total", operation="metrics-op", attempt="2")

        tracking.track_retry_attempt("metrics-op", 2)
        tracking.track_cold_start_recovery("metrics-op")

        assert _sample("retry_attempts_total", operation="metrics-op", attempt="2") == before + 1
        assert _sample("health_probe_cold_start_recoveries_total", target="metrics-op") >= 1

    def test_render_metrics(self) -> None:
        """Test the exposition text contains the monitor's metrics only."""
        tracking.track_alert("failure", "sent")

        text = render_metrics().decode()

        assert "health_alerts_total" in text
        assert "circuit_breaker_state" in text
        assert "python_gc_objects_collected_total" not in text
