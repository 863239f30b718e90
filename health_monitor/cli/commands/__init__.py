"""CLI command groups."""

from health_monitor.cli.commands import health, server

__all__ = ["health", "server"]
