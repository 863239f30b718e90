"""Prometheus registry shared by every health monitor metric."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, generate_latest

# Custom registry so tests and the /metrics route only see monitor metrics
REGISTRY = CollectorRegistry()

# Covers probe latencies from 10ms up to past the default 8s deadline
PROBE_LATENCY_BUCKETS = (
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    8.0,
    10.0,
    15.0,
)


def render_metrics() -> bytes:
    """Render every registered metric in the Prometheus text exposition format."""
    return generate_latest(REGISTRY)
