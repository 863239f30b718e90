"""Helper functions for recording resilience, health and API metrics."""

from __future__ import annotations

import logging
from typing import Any

from health_monitor.infra.metrics import api, health, resilience

logger = logging.getLogger(__name__)

_STATE_VALUES = {"closed": 0, "half_open": 1, "open": 2}
_STATUS_VALUES = {"healthy": 1.0, "degraded": 0.5}


# ============================================================================
# Circuit Breaker Tracking
# ============================================================================


def update_circuit_breaker_state(circuit_name: str, state: str) -> None:
    """Update circuit breaker state gauge.

    Example:
        update_circuit_breaker_state("api-v1-search", "open")
    """
    resilience.circuit_breaker_state.labels(circuit_name=circuit_name).set(
        _STATE_VALUES.get(state, 0)
    )


def track_circuit_breaker_failure(circuit_name: str) -> None:
    resilience.circuit_breaker_failures_total.labels(circuit_name=circuit_name).inc()


def track_circuit_breaker_success(circuit_name: str) -> None:
    resilience.circuit_breaker_successes_total.labels(circuit_name=circuit_name).inc()


def track_circuit_breaker_state_change(circuit_name: str, from_state: str, to_state: str) -> None:
    """Track a circuit breaker state change and refresh the state gauge."""
    resilience.circuit_breaker_state_changes_total.labels(
        circuit_name=circuit_name,
        from_state=from_state,
        to_state=to_state,
    ).inc()
    update_circuit_breaker_state(circuit_name, to_state)


def track_circuit_breaker_rejected(circuit_name: str) -> None:
    resilience.circuit_breaker_rejected_total.labels(circuit_name=circuit_name).inc()


# ============================================================================
# Retry Tracking
# ============================================================================


def track_retry_attempt(operation: str, attempt_number: int) -> None:
    """Track a retry attempt.

    Args:
        operation: Name of the operation being retried
        attempt_number: Current attempt number (1-indexed)
    """
    resilience.retry_attempts_total.labels(
        operation=operation,
        attempt=str(attempt_number),
    ).inc()


def track_cold_start_recovery(target: str) -> None:
    resilience.cold_start_recoveries_total.labels(target=target).inc()


# ============================================================================
# Health Tracking
# ============================================================================


def track_probe_result(target: str, status: str, duration_seconds: float | None = None) -> None:
    """Record a finalized probe result.

    Args:
        target: Target name
        status: Final status value (healthy, degraded, unhealthy, timeout)
        duration_seconds: Attempt duration, when one was measured
    """
    health.health_probe_total.labels(target=target, status=status).inc()
    health.health_probe_status_gauge.labels(target=target).set(_STATUS_VALUES.get(status, 0.0))
    if duration_seconds is not None:
        health.health_probe_duration_seconds.labels(target=target).observe(duration_seconds)


def track_fleet_check(mode: str, status: str) -> None:
    health.fleet_checks_total.labels(mode=mode, status=status).inc()


def track_alert(kind: str, outcome: str) -> None:
    """Track an alert decision.

    Args:
        kind: ``failure`` or ``recovery``
        outcome: ``sent``, ``failed``, ``suppressed`` or ``pending``
    """
    health.alerts_total.labels(kind=kind, outcome=outcome).inc()


# ============================================================================
# API Error Tracking
# ============================================================================


def track_error(
    error_type: str,
    endpoint: str,
    status_code: int,
    extra: dict[str, Any] | None = None,
) -> None:
    """Track a problem response.

    Args:
        error_type: Problem type (e.g., 'target-not-found', 'circuit-breaker-open')
        endpoint: API path where the error occurred
        status_code: HTTP status code
        extra: Additional context for logging

    Example:
            track_error("target-not-found", "/api/v1/health/functions/x", 404)
    """
    api.errors_total.labels(
        error_type=error_type,
        endpoint=endpoint,
        status_code=str(status_code),
    ).inc()

    logger.debug(
        f"Tracked error: {error_type}",
        extra={"endpoint": endpoint, "status_code": status_code, **(extra or {})},
    )


def track_unhandled_exception(exception_type: str, endpoint: str) -> None:
    api.exceptions_unhandled_total.labels(
        exception_type=exception_type,
        endpoint=endpoint,
    ).inc()
