"""Prometheus metrics for circuit breakers and retries."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

from health_monitor.infra.metrics.prometheus import REGISTRY

# ──────────────────────────────────────────────────────────────
# Circuit breaker
# ──────────────────────────────────────────────────────────────

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=half_open, 2=open)",
    ["circuit_name"],
    registry=REGISTRY,
)

circuit_breaker_failures_total = Counter(
    "circuit_breaker_failures_total",
    "Total number of failures recorded by circuit breakers",
    ["circuit_name"],
    registry=REGISTRY,
)

circuit_breaker_successes_total = Counter(
    "circuit_breaker_successes_total",
    "Total number of successes recorded by circuit breakers",
    ["circuit_name"],
    registry=REGISTRY,
)

circuit_breaker_state_changes_total = Counter(
    "circuit_breaker_state_changes_total",
    "Total number of circuit breaker state changes",
    ["circuit_name", "from_state", "to_state"],
    registry=REGISTRY,
)

circuit_breaker_rejected_total = Counter(
    "circuit_breaker_rejected_total",
    "Total number of calls rejected without I/O by an open circuit breaker",
    ["circuit_name"],
    registry=REGISTRY,
)

# ──────────────────────────────────────────────────────────────
# Retries
# ──────────────────────────────────────────────────────────────

retry_attempts_total = Counter(
    "retry_attempts_total",
    "Total number of retry attempts",
    ["operation", "attempt"],
    registry=REGISTRY,
)

cold_start_recoveries_total = Counter(
    "health_probe_cold_start_recoveries_total",
    "Targets that failed their first probe and succeeded on the retry",
    ["target"],
    registry=REGISTRY,
)
