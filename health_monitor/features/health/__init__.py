"""Fleet health checking.

Probes a fleet of HTTP-reachable functions with bounded concurrency and a
cold-start retry, checks structural services (datastore, object store),
aggregates everything into one ``HealthSummary`` and rate-limits alerts.

## Endpoints

- `/health` - Quick check (datastore only)
- `/health/full` - Services, circuit breakers, traffic metrics
- `/health/functions` - Fleet check with alerting
- `/health/functions/{name}` - Single target check
- `/health/circuits` - Circuit breaker snapshot

## Quick Start

    >>> from health_monitor.features.health import build_health_service
    >>>
    >>> async with build_health_service() as service:
    ...     summary = await service.check_targets(quick=True)
"""

from __future__ import annotations

from health_monitor.features.health.aggregator import AggregatedStatus, StatusAggregator
from health_monitor.features.health.alerting import (
    AlertGate,
    AlertNotifier,
    AlertState,
    LoggingAlertNotifier,
    format_alert_message,
)
from health_monitor.features.health.checkers import (
    CallableServiceChecker,
    HttpServiceChecker,
    ServiceChecker,
)
from health_monitor.features.health.context import ResilienceContext
from health_monitor.features.health.exceptions import (
    ProbeError,
    ProbeFailureError,
    ProbeTimeoutError,
    UnexpectedStatusError,
)
from health_monitor.features.health.orchestrator import BatchOrchestrator
from health_monitor.features.health.probe import (
    ColdStartRetryPolicy,
    ExponentialBackoffRetryPolicy,
    HealthProbe,
    RetryPolicy,
)
from health_monitor.features.health.router import router
from health_monitor.features.health.schemas import (
    CircuitBreakerSnapshot,
    HealthSummary,
    ProbeConfig,
    ProbeResult,
    ServiceCheckResult,
    StatusCounts,
    TrafficMetrics,
)
from health_monitor.features.health.service import (
    HealthService,
    HealthServiceDep,
    build_health_service,
)
from health_monitor.features.health.targets import DEFAULT_TARGETS, TargetRegistry

__all__ = [
    "DEFAULT_TARGETS",
    "AggregatedStatus",
    "AlertGate",
    "AlertNotifier",
    "AlertState",
    "BatchOrchestrator",
    "CallableServiceChecker",
    "CircuitBreakerSnapshot",
    "ColdStartRetryPolicy",
    "ExponentialBackoffRetryPolicy",
    "HealthProbe",
    "HealthService",
    "HealthServiceDep",
    "HealthSummary",
    "HttpServiceChecker",
    "LoggingAlertNotifier",
    "ProbeConfig",
    "ProbeError",
    "ProbeFailureError",
    "ProbeResult",
    "ProbeTimeoutError",
    "ResilienceContext",
    "RetryPolicy",
    "ServiceCheckResult",
    "ServiceChecker",
    "StatusAggregator",
    "StatusCounts",
    "TargetRegistry",
    "TrafficMetrics",
    "UnexpectedStatusError",
    "build_health_service",
    "format_alert_message",
    "router",
]
