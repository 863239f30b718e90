"""Metrics infrastructure for Prometheus monitoring."""

from __future__ import annotations

from health_monitor.infra.metrics import api, health, resilience, tracking
from health_monitor.infra.metrics.prometheus import REGISTRY, render_metrics

__all__ = [
    "REGISTRY",
    "api",
    "health",
    "render_metrics",
    "resilience",
    "tracking",
]
