"""Health check models.

Pydantic models describing probe targets, individual check outcomes and the
aggregate ``HealthSummary`` handed to monitoring sinks and the HTTP layer.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from health_monitor.core.schemas.common import HealthStatus

DEFAULT_EXPECTED_STATUS_CODES = frozenset({200, 400, 401, 404})


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ProbeConfig(BaseModel):
    """Static description of one probe target.

    Example:
        ```yaml
        - name: api-v1-cache
          test_payload: {operation: exists, key: health_ping}
          expected_status_codes: [200, 400]
        ```
    """

    name: str = Field(min_length=1, max_length=200, description="Target (function) name")
    critical: bool = Field(default=False, description="Failure marks the whole system unhealthy")
    requires_auth: bool = Field(default=False, description="Target rejects anonymous calls")
    test_payload: dict[str, Any] | None = Field(
        default=None, description="JSON body sent with the probe request"
    )
    expected_status_codes: frozenset[int] = Field(
        default=DEFAULT_EXPECTED_STATUS_CODES,
        description="Status codes that count as a working target",
    )
    health_endpoint: str | None = Field(
        default=None,
        description="Dedicated health URL or path; derived from the name when unset",
    )
    method: Literal["GET", "POST", "HEAD"] = Field(default="POST")
    dependencies: list[str] = Field(default_factory=list, description="Other target names")
    skip_in_quick_check: bool = Field(default=False)
    degraded_threshold_ms: float | None = Field(
        default=None,
        gt=0,
        description="Latency above which the target is degraded; class default when unset",
    )

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    @field_validator("expected_status_codes")
    @classmethod
    def _non_empty_codes(cls, value: frozenset[int]) -> frozenset[int]:
        if not value:
            msg = "expected_status_codes must not be empty"
            raise ValueError(msg)
        for code in value:
            if not 100 <= code <= 599:
                msg = f"invalid HTTP status code: {code}"
                raise ValueError(msg)
        return value


class ProbeResult(BaseModel):
    """Outcome of probing one target.

    ``retried`` is set when the result came from the second attempt;
    ``recovered_from_cold_start`` only when that retry succeeded after a failed
    first attempt.
    """

    name: str
    status: HealthStatus
    response_time_ms: int = Field(ge=0)
    http_status: int | None = None
    error: str | None = None
    critical: bool = False
    retried: bool = False
    recovered_from_cold_start: bool = False
    checked_at: datetime = Field(default_factory=_utc_now)

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "name": "api-v1-search",
                "status": "healthy",
                "response_time_ms": 412,
                "http_status": 200,
                "error": None,
                "critical": False,
                "retried": True,
                "recovered_from_cold_start": True,
                "checked_at": "2025-01-01T00:00:00Z",
            }
        },
    )


class ServiceCheckResult(BaseModel):
    """Outcome of checking a structural dependency (datastore, object store)."""

    service: str
    status: HealthStatus
    response_time_ms: int = Field(ge=0)
    details: dict[str, Any] | None = None
    error: str | None = None
    critical: bool = False

    model_config = ConfigDict(frozen=True)


class StatusCounts(BaseModel):
    """Per-status tallies over every result in a summary."""

    total: int = 0
    healthy: int = 0
    degraded: int = 0
    unhealthy: int = 0
    timeout: int = 0
    unknown: int = 0


class CircuitBreakerSnapshot(BaseModel):
    name: str
    state: str
    failure_count: int = Field(ge=0)


class TrafficMetrics(BaseModel):
    """Recent request statistics reported by an external metrics source."""

    requests_last_5_min: int = Field(ge=0)
    error_rate_last_5_min: float = Field(ge=0.0, le=1.0)
    p95_latency_ms: float = Field(ge=0.0)


class HealthSummary(BaseModel):
    """Aggregate health verdict for one check cycle.

    The summary is always well formed; when every dependency is down the
    overall ``status`` is ``unhealthy`` rather than the check failing.
    """

    status: HealthStatus = Field(description="Overall verdict")
    timestamp: datetime = Field(default_factory=_utc_now)
    version: str
    uptime_seconds: int = Field(ge=0)
    counts: StatusCounts = Field(default_factory=StatusCounts)
    critical_issues: list[str] = Field(default_factory=list)
    degraded_functions: list[str] = Field(default_factory=list)
    results: list[ProbeResult] = Field(default_factory=list)
    services: list[ServiceCheckResult] | None = None
    circuit_breakers: list[CircuitBreakerSnapshot] | None = None
    metrics: TrafficMetrics | None = None
    alert_sent: bool = False
    alert_message: str | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "degraded",
                "timestamp": "2025-01-01T00:00:00Z",
                "version": "1.0.0",
                "uptime_seconds": 3600,
                "counts": {
                    "total": 3,
                    "healthy": 2,
                    "degraded": 1,
                    "unhealthy": 0,
                    "timeout": 0,
                    "unknown": 0,
                },
                "critical_issues": [],
                "degraded_functions": ["api-v1-search"],
                "results": [],
                "alert_sent": False,
                "alert_message": None,
            }
        }
    )

    @property
    def http_status_code(self) -> int:
        """503 for an unhealthy verdict, 200 otherwise."""
        return 503 if self.status == HealthStatus.UNHEALTHY else 200


__all__ = [
    "DEFAULT_EXPECTED_STATUS_CODES",
    "CircuitBreakerSnapshot",
    "HealthSummary",
    "ProbeConfig",
    "ProbeResult",
    "ServiceCheckResult",
    "StatusCounts",
    "TrafficMetrics",
]
