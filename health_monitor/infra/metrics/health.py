"""Prometheus metrics for health probes, fleet checks and alerting.

Metrics Categories:
- Probe counters and durations per target
- Current status gauge per target
- Fleet check counters by mode
- Alert notifications by kind and outcome
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

from health_monitor.infra.metrics.prometheus import PROBE_LATENCY_BUCKETS, REGISTRY

# ──────────────────────────────────────────────────────────────
# Probe Counters
# ──────────────────────────────────────────────────────────────

health_probe_total = Counter(
    "health_probe_total",
    "Total number of finalized probe results by target and status. "
    "Usage: Increment once per target per check, after any retry.",
    ["target", "status"],  # status: healthy, degraded, unhealthy, timeout
    registry=REGISTRY,
)

# ──────────────────────────────────────────────────────────────
# Probe Duration
# ──────────────────────────────────────────────────────────────

health_probe_duration_seconds = Histogram(
    "health_probe_duration_seconds",
    "Wall-clock duration of a single probe attempt in seconds.",
    ["target"],
    buckets=PROBE_LATENCY_BUCKETS,
    registry=REGISTRY,
)

# ──────────────────────────────────────────────────────────────
# Current Health Status
# ──────────────────────────────────────────────────────────────

health_probe_status_gauge = Gauge(
    "health_probe_status",
    "Current health status of a target. "
    "1.0 = healthy, 0.5 = degraded, 0.0 = unhealthy or timeout.",
    ["target"],
    registry=REGISTRY,
)

# ──────────────────────────────────────────────────────────────
# Fleet checks and alerts
# ──────────────────────────────────────────────────────────────

fleet_checks_total = Counter(
    "health_fleet_checks_total",
    "Total fleet checks by mode and overall status.",
    ["mode", "status"],  # mode: quick, full
    registry=REGISTRY,
)

alerts_total = Counter(
    "health_alerts_total",
    "Alert notifications by kind and delivery outcome.",
    ["kind", "outcome"],  # kind: failure, recovery; outcome: sent, failed, suppressed, pending
    registry=REGISTRY,
)
