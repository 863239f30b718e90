"""Health check commands.

Every command prints JSON on stdout and exits with status 1 when the verdict
is unhealthy, so the CLI can drive cron jobs and CI smoke checks directly.
"""

import sys

import click

from health_monitor.cli.utils import coro, echo_json, error, status_line
from health_monitor.core.exceptions import NotFoundException
from health_monitor.core.schemas.common import HealthStatus
from health_monitor.features.health.schemas import HealthSummary
from health_monitor.features.health.service import build_health_service


@click.group(name="health")
def health() -> None:
    """Probe the fleet and report aggregated health."""


def _finish(summary: HealthSummary) -> None:
    echo_json(summary)
    status_line(summary.status)
    if summary.alert_message:
        click.echo(summary.alert_message, err=True)
    if summary.status is HealthStatus.UNHEALTHY:
        sys.exit(1)


@health.command(name="quick")
@coro
async def quick() -> None:
    """Check the primary datastore only."""
    async with build_health_service() as service:
        summary = await service.check_quick()
    _finish(summary)


@health.command(name="full")
@coro
async def full() -> None:
    """Check datastore, object store and circuit breakers."""
    async with build_health_service() as service:
        summary = await service.check_full()
    _finish(summary)


@health.command(name="functions")
@click.option("--quick", "quick_mode", is_flag=True, help="Skip targets excluded from quick checks.")
@coro
async def functions(quick_mode: bool) -> None:
    """Probe every registered function target."""
    async with build_health_service() as service:
        summary = await service.check_targets(quick=quick_mode)
    _finish(summary)


@health.command(name="function")
@click.argument("name")
@coro
async def function(name: str) -> None:
    """Probe a single function target by NAME."""
    async with build_health_service() as service:
        try:
            result = await service.check_target(name)
        except NotFoundException as e:
            error(e.detail)
            available = e.extra.get("available_targets", [])
            click.echo(f"Available targets: {', '.join(available)}", err=True)
            sys.exit(2)

    echo_json(result)
    status_line(result.status)
    if result.status in (HealthStatus.UNHEALTHY, HealthStatus.TIMEOUT):
        sys.exit(1)


@health.command(name="circuits")
@coro
async def circuits() -> None:
    """Show circuit breaker states."""
    async with build_health_service() as service:
        echo_json(service.circuit_breakers())


@health.command(name="targets")
@click.option("--quick", "quick_mode", is_flag=True, help="Only targets probed in quick mode.")
@click.option("--critical", is_flag=True, help="Only critical targets.")
@coro
async def targets(quick_mode: bool, critical: bool) -> None:
    """List registered function targets."""
    async with build_health_service() as service:
        selected = service.targets.critical() if critical else service.targets.select(quick=quick_mode)
    echo_json(selected)
