"""Prometheus metrics for API error responses."""

from __future__ import annotations

from prometheus_client import Counter

from health_monitor.infra.metrics.prometheus import REGISTRY

errors_total = Counter(
    "api_errors_total",
    "Problem responses returned by the API, by problem type and status code.",
    ["error_type", "endpoint", "status_code"],
    registry=REGISTRY,
)

exceptions_unhandled_total = Counter(
    "api_exceptions_unhandled_total",
    "Exceptions that reached the catch-all handler.",
    ["exception_type", "endpoint"],
    registry=REGISTRY,
)
