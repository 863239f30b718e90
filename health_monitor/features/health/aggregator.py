"""Reduction of probe and service results into one verdict.

Overall status, in priority order:

1. any critical result unhealthy or timed out: ``unhealthy``
2. any degraded result, or any non-critical result unhealthy or timed out: ``degraded``
3. otherwise: ``healthy``

Service results are critical when flagged so, or when their name is in the
implicit-critical set (the primary datastore by default). ``unknown`` results
are counted but do not move the verdict.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from health_monitor.core.schemas.common import HealthStatus, ResourceClass
from health_monitor.core.settings.health import DegradedThresholds
from health_monitor.features.health.schemas import ProbeResult, ServiceCheckResult, StatusCounts

logger = logging.getLogger(__name__)

DEFAULT_IMPLICIT_CRITICAL = frozenset({"database"})


@dataclass
class AggregatedStatus:
    """Counts, issue lists and verdict for a set of results.

    Attributes:
        status: Overall verdict
        counts: Tallies by status over every result
        critical_issues: Names of critical results that are unhealthy or timed out
        degraded_functions: Names of degraded results
        failing: Names of every unhealthy or timed-out result
    """

    status: HealthStatus
    counts: StatusCounts
    critical_issues: list[str] = field(default_factory=list)
    degraded_functions: list[str] = field(default_factory=list)
    failing: list[str] = field(default_factory=list)


class StatusAggregator:
    """Counts results and derives the overall verdict."""

    def __init__(
        self,
        thresholds: DegradedThresholds | None = None,
        implicit_critical_services: Iterable[str] = DEFAULT_IMPLICIT_CRITICAL,
    ) -> None:
        self.thresholds = thresholds or DegradedThresholds()
        self.implicit_critical_services = frozenset(implicit_critical_services)

    def classify_latency(self, resource_class: ResourceClass, response_time_ms: float) -> HealthStatus:
        """Classify a successful call by latency against its class threshold."""
        if response_time_ms > self.thresholds.for_class(resource_class):
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    def is_critical_service(self, result: ServiceCheckResult) -> bool:
        return result.critical or result.service in self.implicit_critical_services

    def summarize(
        self,
        results: Iterable[ProbeResult] = (),
        services: Iterable[ServiceCheckResult] = (),
    ) -> AggregatedStatus:
        """Aggregate probe and service results.

        Args:
            results: Probe results from a fleet check.
            services: Structural service results (datastore, object store).

        Returns:
            AggregatedStatus with counts, issue lists and the overall verdict.
        """
        entries: list[tuple[str, HealthStatus, bool]] = [
            (r.service, r.status, self.is_critical_service(r)) for r in services
        ]
        entries.extend((r.name, r.status, r.critical) for r in results)

        tally = {status: 0 for status in HealthStatus}
        critical_issues: list[str] = []
        degraded: list[str] = []
        failing: list[str] = []

        for name, status, critical in entries:
            tally[status] += 1
            if status.is_failure:
                failing.append(name)
                if critical:
                    critical_issues.append(name)
            elif status == HealthStatus.DEGRADED:
                degraded.append(name)

        if critical_issues:
            overall = HealthStatus.UNHEALTHY
        elif degraded or failing:
            overall = HealthStatus.DEGRADED
        else:
            overall = HealthStatus.HEALTHY

        counts = StatusCounts(
            total=len(entries),
            healthy=tally[HealthStatus.HEALTHY],
            degraded=tally[HealthStatus.DEGRADED],
            unhealthy=tally[HealthStatus.UNHEALTHY],
            timeout=tally[HealthStatus.TIMEOUT],
            unknown=tally[HealthStatus.UNKNOWN],
        )

        if overall != HealthStatus.HEALTHY:
            logger.debug(
                f"Aggregated status is {overall.value}",
                extra={
                    "status": overall.value,
                    "critical_issues": critical_issues,
                    "degraded": degraded,
                },
            )

        return AggregatedStatus(
            status=overall,
            counts=counts,
            critical_issues=critical_issues,
            degraded_functions=degraded,
            failing=failing,
        )


__all__ = ["DEFAULT_IMPLICIT_CRITICAL", "AggregatedStatus", "StatusAggregator"]
