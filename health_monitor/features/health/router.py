"""Health check API endpoints.

- GET  /health                    Quick check (datastore only)
- GET  /health/full               Datastore, object store, breakers, traffic metrics
- POST /health/functions          Fleet check (``?quick=true`` skips slow targets)
- POST /health/functions/{name}   Single target check
- GET  /health/circuits           Circuit breaker snapshot
- POST /health/circuits/reset     Reset one breaker (``?name=``) or all of them

Unhealthy verdicts answer 503 so load balancers and uptime checkers can use
the status code alone.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Response, status

from health_monitor.core.schemas.common import HealthStatus
from health_monitor.features.health.schemas import (
    CircuitBreakerSnapshot,
    HealthSummary,
    ProbeResult,
)

# Imported at runtime so FastAPI can resolve the Annotated[..., Depends(...)] metadata
from health_monitor.features.health.service import HealthServiceDep  # noqa: TC001

router = APIRouter(prefix="/health", tags=["health"])

_UNHEALTHY_RESPONSES = {503: {"description": "Overall status is unhealthy"}}


@router.get(
    "",
    response_model=HealthSummary,
    responses=_UNHEALTHY_RESPONSES,
    summary="Quick health check",
    description="Checks the primary datastore only",
)
async def quick_health(response: Response, service: HealthServiceDep) -> HealthSummary:
    summary = await service.check_quick()
    response.status_code = summary.http_status_code
    return summary


@router.get(
    "/full",
    response_model=HealthSummary,
    responses=_UNHEALTHY_RESPONSES,
    summary="Full health check",
    description="Structural services, circuit breaker states and recent traffic metrics",
)
async def full_health(response: Response, service: HealthServiceDep) -> HealthSummary:
    summary = await service.check_full()
    response.status_code = summary.http_status_code
    return summary


@router.post(
    "/functions",
    response_model=HealthSummary,
    responses=_UNHEALTHY_RESPONSES,
    summary="Check every function target",
)
async def check_functions(
    response: Response,
    service: HealthServiceDep,
    quick: bool = Query(default=False, description="Skip targets excluded from quick checks"),
) -> HealthSummary:
    """Probe the fleet with bounded concurrency and evaluate alerts.

    Alerts are rate limited per target; the returned summary always carries
    the true status and ``alert_message`` explains what happened to the alert.
    """
    summary = await service.check_targets(quick=quick)
    response.status_code = summary.http_status_code
    return summary


@router.post(
    "/functions/{name}",
    response_model=ProbeResult,
    responses={
        404: {"description": "Unknown target; available names are listed"},
        503: {"description": "Target is unhealthy or timed out"},
    },
    summary="Check a single function target",
)
async def check_function(name: str, response: Response, service: HealthServiceDep) -> ProbeResult:
    result = await service.check_target(name)
    if result.status in (HealthStatus.UNHEALTHY, HealthStatus.TIMEOUT):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return result


@router.get(
    "/circuits",
    response_model=list[CircuitBreakerSnapshot],
    summary="Circuit breaker states",
)
async def circuits(service: HealthServiceDep) -> list[CircuitBreakerSnapshot]:
    return service.circuit_breakers()


@router.post(
    "/circuits/reset",
    response_model=list[CircuitBreakerSnapshot],
    summary="Reset circuit breakers",
)
async def reset_circuits(
    service: HealthServiceDep,
    name: str | None = Query(default=None, description="Breaker to reset; all when omitted"),
) -> list[CircuitBreakerSnapshot]:
    await service.context.breakers.reset(name)
    return service.circuit_breakers()
