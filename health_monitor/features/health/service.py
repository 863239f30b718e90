"""Health service facade and dependency injection helpers.

``HealthService`` wires the probe, orchestrator, aggregator, alert gate and
structural service checkers together and exposes the four health operations:

- ``check_quick``: datastore only
- ``check_full``: datastore, object store, circuit breakers, traffic metrics
- ``check_targets``: the function fleet, with alerting
- ``check_target``: one named target

Every operation returns a well-formed result; dependency failures degrade the
verdict instead of raising.

Example:
    >>> async with build_health_service() as service:
    ...     summary = await service.check_targets(quick=True)
    >>> summary.status
    <HealthStatus.HEALTHY: 'healthy'>
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Annotated, Any, Self

import httpx
from fastapi import Depends, Request

from health_monitor.core.exceptions import NotFoundException
from health_monitor.core.schemas.common import HealthStatus, ResourceClass
from health_monitor.core.settings import (
    AlertSettings,
    CircuitBreakerSettings,
    HealthCheckSettings,
    get_alert_settings,
    get_circuit_breaker_settings,
    get_health_settings,
)
from health_monitor.features.health.aggregator import StatusAggregator
from health_monitor.features.health.alerting import (
    AlertNotifier,
    LoggingAlertNotifier,
    format_alert_message,
)
from health_monitor.features.health.checkers import HttpServiceChecker, ServiceChecker
from health_monitor.features.health.context import ResilienceContext
from health_monitor.features.health.orchestrator import BatchOrchestrator
from health_monitor.features.health.probe import HealthProbe
from health_monitor.features.health.schemas import (
    CircuitBreakerSnapshot,
    HealthSummary,
    ProbeResult,
    ServiceCheckResult,
    TrafficMetrics,
)
from health_monitor.features.health.targets import TargetRegistry
from health_monitor.infra.logging.context import set_log_context
from health_monitor.infra.metrics.tracking import track_alert, track_fleet_check

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

MetricsSource = Callable[[], Awaitable[TrafficMetrics]]

ALERT_SENT = "Alert sent"
ALERT_FAILED = "Alert failed to send"
ALERT_SUPPRESSED = "Alert suppressed (cooldown active)"
ALERT_PENDING = "Alert pending (failure threshold not reached)"
RECOVERY_SENT = "Recovery alert sent"
RECOVERY_FAILED = "Recovery alert failed"


class HealthService:
    """Runs health checks and builds summaries for monitoring sinks."""

    def __init__(
        self,
        *,
        probe: HealthProbe,
        targets: TargetRegistry,
        context: ResilienceContext | None = None,
        aggregator: StatusAggregator | None = None,
        datastore: ServiceChecker | None = None,
        services: Sequence[ServiceChecker] = (),
        notifier: AlertNotifier | None = None,
        alert_settings: AlertSettings | None = None,
        metrics_source: MetricsSource | None = None,
        max_concurrent: int = 10,
        version: str = "1.0.0",
        client: httpx.AsyncClient | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize health service.

        Args:
            probe: Probe used for fleet and single-target checks.
            targets: Registry of probe targets.
            context: Breaker registry and alert gate; a fresh one by default.
            aggregator: Status aggregator; default thresholds when omitted.
            datastore: Primary datastore check, used by quick and full checks.
            services: Additional structural checks run by the full check.
            notifier: Alert channel; alerts are only logged when omitted.
            alert_settings: Alert behaviour switches.
            metrics_source: Optional source of recent traffic metrics.
            max_concurrent: Probes in flight per batch.
            version: Version reported in summaries.
            client: HTTP client owned by this service and closed by ``aclose()``.
            monotonic: Monotonic clock in seconds for uptime.
        """
        self.probe = probe
        self.targets = targets
        self.context = context or ResilienceContext()
        self.aggregator = aggregator or StatusAggregator()
        self.orchestrator = BatchOrchestrator(probe, max_concurrent=max_concurrent)
        self.datastore = datastore
        self.services = list(services)
        self.notifier: AlertNotifier = notifier or LoggingAlertNotifier()
        self.alert_settings = alert_settings or AlertSettings()
        self.metrics_source = metrics_source
        self.version = version
        self._client = client
        self._monotonic = monotonic
        self._started = monotonic()

    @property
    def uptime_seconds(self) -> int:
        return max(0, int(self._monotonic() - self._started))

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ──────────────────────────────────────────────────────────────
    # Structural checks
    # ──────────────────────────────────────────────────────────────

    async def check_quick(self) -> HealthSummary:
        """Datastore-only check for frequent polling."""
        services = await self._run_checkers([self.datastore] if self.datastore else [])
        aggregated = self.aggregator.summarize(services=services)
        track_fleet_check("quick_health", aggregated.status.value)
        return HealthSummary(
            status=aggregated.status,
            version=self.version,
            uptime_seconds=self.uptime_seconds,
            counts=aggregated.counts,
            critical_issues=aggregated.critical_issues,
            degraded_functions=aggregated.degraded_functions,
            services=services,
        )

    async def check_full(self) -> HealthSummary:
        """Datastore, object store, breaker snapshot and traffic metrics."""
        checkers = [self.datastore, *self.services] if self.datastore else list(self.services)
        services, metrics = await asyncio.gather(
            self._run_checkers(checkers),
            self._collect_metrics(),
        )
        aggregated = self.aggregator.summarize(services=services)
        track_fleet_check("full_health", aggregated.status.value)
        return HealthSummary(
            status=aggregated.status,
            version=self.version,
            uptime_seconds=self.uptime_seconds,
            counts=aggregated.counts,
            critical_issues=aggregated.critical_issues,
            degraded_functions=aggregated.degraded_functions,
            services=services,
            circuit_breakers=self.circuit_breakers(),
            metrics=metrics,
        )

    def circuit_breakers(self) -> list[CircuitBreakerSnapshot]:
        return [
            CircuitBreakerSnapshot(**snapshot) for snapshot in self.context.breakers.snapshot()
        ]

    async def _run_checkers(self, checkers: Sequence[ServiceChecker]) -> list[ServiceCheckResult]:
        return list(await asyncio.gather(*(self._run_checker(c) for c in checkers)))

    async def _run_checker(self, checker: ServiceChecker) -> ServiceCheckResult:
        try:
            return await checker.check()
        except Exception as e:
            logger.exception(
                f"Service checker {checker.name} raised",
                extra={"service": checker.name},
            )
            return ServiceCheckResult(
                service=checker.name,
                status=HealthStatus.UNHEALTHY,
                response_time_ms=0,
                error=f"Check error: {e}",
            )

    async def _collect_metrics(self) -> TrafficMetrics | None:
        if self.metrics_source is None:
            return None
        try:
            return await self.metrics_source()
        except Exception:
            logger.warning("Traffic metrics unavailable", exc_info=True)
            return None

    # ──────────────────────────────────────────────────────────────
    # Fleet checks
    # ──────────────────────────────────────────────────────────────

    async def check_targets(self, *, quick: bool = False) -> HealthSummary:
        """Probe the fleet and evaluate alerts.

        Args:
            quick: Skip targets marked ``skip_in_quick_check``.
        """
        set_log_context(check_cycle=uuid.uuid4().hex[:12], quick_check=quick)
        targets = self.targets.select(quick=quick)
        started = time.perf_counter()

        results = await self.orchestrator.run(targets)
        aggregated = self.aggregator.summarize(results)

        summary = HealthSummary(
            status=aggregated.status,
            version=self.version,
            uptime_seconds=self.uptime_seconds,
            counts=aggregated.counts,
            critical_issues=aggregated.critical_issues,
            degraded_functions=aggregated.degraded_functions,
            results=results,
        )

        logger.info(
            f"Fleet check finished: {summary.status.value}",
            extra={
                "status": summary.status.value,
                "target_count": len(results),
                "critical_issues": summary.critical_issues,
                "duration_ms": round((time.perf_counter() - started) * 1000),
            },
        )
        track_fleet_check("quick" if quick else "full", summary.status.value)

        if self.alert_settings.enabled:
            summary = await self._handle_alerting(summary)
        return summary

    async def check_target(self, name: str) -> ProbeResult:
        """Probe one registered target.

        Raises:
            NotFoundException: If the name is not registered; the available
                names are attached as ``available_targets``.
        """
        config = self.targets.get(name)
        if config is None:
            raise NotFoundException(
                detail=f"Unknown target: {name}",
                type="target-not-found",
                extra={"available_targets": self.targets.names},
            )
        return await self.probe.check_with_retry(config)

    async def _handle_alerting(self, summary: HealthSummary) -> HealthSummary:
        gate = self.context.alert_gate
        critical_only = self.alert_settings.critical_only

        failing = [r for r in summary.results if r.status.is_failure]
        candidates = {r.name for r in failing if r.critical or not critical_only}
        due = False
        for result in summary.results:
            if result.name in candidates:
                due = gate.evaluate(result.name, result.status) or due
            else:
                gate.observe(result.name, result.status)

        if candidates:
            if not due:
                if any(gate.in_cooldown(name) for name in candidates):
                    track_alert("failure", "suppressed")
                    return summary.model_copy(update={"alert_message": ALERT_SUPPRESSED})
                track_alert("failure", "pending")
                return summary.model_copy(update={"alert_message": ALERT_PENDING})

            sent = await self._notify(format_alert_message(summary, failing), silent=False)
            track_alert("failure", "sent" if sent else "failed")
            logger.warning(
                "Health alert emitted" if sent else "Health alert could not be delivered",
                extra={"critical_issues": summary.critical_issues, "alert_sent": sent},
            )
            return summary.model_copy(
                update={"alert_sent": sent, "alert_message": ALERT_SENT if sent else ALERT_FAILED}
            )

        if (
            self.alert_settings.notify_recovery
            and summary.status == HealthStatus.HEALTHY
            and gate.has_alerted()
        ):
            sent = await self._notify(format_alert_message(summary, [], is_recovery=True), silent=True)
            track_alert("recovery", "sent" if sent else "failed")
            gate.clear()
            return summary.model_copy(
                update={
                    "alert_sent": sent,
                    "alert_message": RECOVERY_SENT if sent else RECOVERY_FAILED,
                }
            )

        return summary

    async def _notify(self, message: str, *, silent: bool) -> bool:
        try:
            return await self.notifier.send(message, silent=silent)
        except Exception:
            logger.exception("Alert notifier raised")
            return False


# =============================================================================
# Factories
# =============================================================================


def build_health_service(
    health_settings: HealthCheckSettings | None = None,
    circuit_settings: CircuitBreakerSettings | None = None,
    alert_settings: AlertSettings | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    notifier: AlertNotifier | None = None,
    metrics_source: MetricsSource | None = None,
    **probe_kwargs: Any,
) -> HealthService:
    """Build a HealthService from settings.

    When no client is passed one is created and owned by the service.
    """
    settings = health_settings or get_health_settings()
    alerts = alert_settings or get_alert_settings()
    owned_client = client is None
    http = client or httpx.AsyncClient(follow_redirects=True)

    context = ResilienceContext.from_settings(
        circuit_settings or get_circuit_breaker_settings(), alerts
    )
    targets = (
        TargetRegistry.from_yaml(settings.targets_file)
        if settings.targets_file
        else TargetRegistry()
    )
    probe = HealthProbe.from_settings(settings, http, breakers=context.breakers, **probe_kwargs)
    aggregator = StatusAggregator(settings.thresholds)

    headers: dict[str, str] = {}
    if settings.auth_token:
        token = settings.auth_token.get_secret_value()
        headers = {"apikey": token, "Authorization": f"Bearer {token}"}

    datastore = None
    if settings.datastore.is_configured:
        datastore = HttpServiceChecker(
            "database",
            settings.datastore.url,  # type: ignore[arg-type]
            http,
            headers=headers,
            resource_class=ResourceClass.DATABASE,
            timeout=settings.datastore.timeout,
            critical=settings.datastore.critical,
            classifier=aggregator,
        )

    services: list[ServiceChecker] = []
    if settings.storage.is_configured:
        services.append(
            HttpServiceChecker(
                "storage",
                settings.storage.url,  # type: ignore[arg-type]
                http,
                headers=headers,
                resource_class=ResourceClass.STORAGE,
                timeout=settings.storage.timeout,
                critical=settings.storage.critical,
                classifier=aggregator,
            )
        )

    return HealthService(
        probe=probe,
        targets=targets,
        context=context,
        aggregator=aggregator,
        datastore=datastore,
        services=services,
        notifier=notifier,
        alert_settings=alerts,
        metrics_source=metrics_source,
        max_concurrent=settings.max_concurrent,
        version=settings.version,
        client=http if owned_client else None,
    )


def get_health_service(request: Request) -> HealthService:
    """FastAPI dependency returning the service built at application startup."""
    return request.app.state.health_service


HealthServiceDep = Annotated[HealthService, Depends(get_health_service)]
"""Health service dependency.

Example:
    >>> @router.get("/health")
    >>> async def health(service: HealthServiceDep):
    ...     return await service.check_quick()
"""


__all__ = [
    "HealthService",
    "HealthServiceDep",
    "MetricsSource",
    "build_health_service",
    "get_health_service",
]
