"""CLI utilities for running async operations and formatting output."""

from health_monitor.cli.utils.async_runner import coro
from health_monitor.cli.utils.formatters import echo_json, error, status_line

__all__ = [
    "coro",
    "echo_json",
    "error",
    "status_line",
]
