"""Context management for structured logging.

Provides automatic context injection into log records using contextvars, so a
fleet check cycle id (or any other field) set once is carried by every log line
emitted from the probes it spawns. Each asyncio task inherits a copy of the
context it was created in.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Set logging context for the current async task.

    Args:
        **kwargs: Key-value pairs to add to logging context.

    Example:
        ```python
        set_log_context(check_cycle="c0ffee", quick_check=True)
        logger.info("Starting fleet check")  # Includes check_cycle and quick_check
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Clear all logging context for the current async task."""
    _log_context.set({})


class ContextInjectingFilter(logging.Filter):
    """Logging filter that injects the contextvars log context into each LogRecord.

    Applied to the root logger so every logger benefits:

        ```python
        config = {
            "filters": {
                "context": {
                    "()": "health_monitor.infra.logging.context.ContextInjectingFilter"
                }
            },
            "root": {"level": "INFO", "filters": ["context"]},
        }
        ```
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            # Don't overwrite existing attributes
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
