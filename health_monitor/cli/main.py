"""Main CLI entry point for health-monitor commands."""

import click

from health_monitor.cli.commands import health, server
from health_monitor.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="1.0.0", prog_name="health-monitor")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Health Monitor CLI - fleet health checks with circuit breakers and alerting.

    \b
    Command Groups:
      health     Quick, full, fleet and single-target checks
      serve      Run the health API

    \b
    Quick Start:
      health-monitor health functions --quick   # Probe the fleet, skip slow targets
      health-monitor health function api-v1-auth
      health-monitor serve --port 8000
    """
    ctx.ensure_object(dict)
    setup_logging()


cli.add_command(health.health)
cli.add_command(server.serve)


def main() -> None:
    """Entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
