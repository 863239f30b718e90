"""Logging infrastructure.

Structured logging for the health monitor:
- JSONL format for log aggregation
- Automatic context injection (check cycle id, target, etc.)
- QueueHandler + QueueListener for non-blocking I/O
- OpenTelemetry trace correlation

Basic usage:
    from health_monitor.infra.logging import set_log_context
    import logging

    logger = logging.getLogger(__name__)

    set_log_context(check_cycle="c0ffee")
    logger.info("Checking fleet")  # Automatically includes check_cycle
"""

from health_monitor.infra.logging.config import (
    complete,
    configure_logging,
    setup_logging,
    shutdown,
)
from health_monitor.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    set_log_context,
)
from health_monitor.infra.logging.formatters import JSONFormatter

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "clear_log_context",
    "complete",
    "configure_logging",
    "get_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
