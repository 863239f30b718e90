"""Output formatting utilities for CLI commands."""

import json

import click
from pydantic import BaseModel

from health_monitor.core.schemas.common import HealthStatus

_STATUS_COLORS = {
    HealthStatus.HEALTHY: "green",
    HealthStatus.DEGRADED: "yellow",
    HealthStatus.UNHEALTHY: "red",
    HealthStatus.TIMEOUT: "red",
    HealthStatus.UNKNOWN: "white",
}


def error(message: str) -> None:
    """Print an error message in red."""
    click.secho(f"✗ {message}", fg="red", err=True)


def status_line(status: HealthStatus) -> None:
    """Print the verdict to stderr so stdout stays valid JSON."""
    click.secho(f"Status: {status.value}", fg=_STATUS_COLORS[status], bold=True, err=True)


def echo_json(payload: BaseModel | list[BaseModel]) -> None:
    """Print one model, or a list of models, as indented JSON."""
    if isinstance(payload, list):
        click.echo(json.dumps([m.model_dump(mode="json") for m in payload], indent=2))
        return
    click.echo(payload.model_dump_json(indent=2))
