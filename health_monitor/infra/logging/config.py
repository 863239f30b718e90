"""Logging configuration setup.

The monitor logs through the standard library with:
- dictConfig for root level and filters
- QueueHandler + QueueListener so probe coroutines never block on log I/O
- ContextInjectingFilter for automatic context propagation
- JSONL output for machine parsing, or plain text for local runs
"""

from __future__ import annotations

import atexit
import logging
import logging.config
import time
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue
from typing import TYPE_CHECKING, Any

from health_monitor.infra.logging.context import ContextInjectingFilter
from health_monitor.infra.logging.formatters import JSONFormatter

if TYPE_CHECKING:
    from health_monitor.core.settings.logs import LoggingSettings

_log_queue: Queue[logging.LogRecord] | None = None
_listener: QueueListener | None = None
_queue_handler: QueueHandler | None = None
_atexit_registered = False
_LOGGING_INITIALIZED = False

logger = logging.getLogger(__name__)

TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def complete(max_wait: float = 5.0) -> None:
    """Wait for queued log records to be processed.

    Blocks until the queue drains or ``max_wait`` seconds elapse.
    """
    if _log_queue is None or _listener is None:
        return

    start = time.monotonic()
    while not _log_queue.empty() and (time.monotonic() - start) < max_wait:
        time.sleep(0.01)


def shutdown() -> None:
    """Stop the QueueListener and detach the QueueHandler from the root logger."""
    global _log_queue, _listener, _queue_handler, _LOGGING_INITIALIZED

    if _listener is not None:
        complete()
        _listener.stop()
        for handler in _listener.handlers:
            handler.close()
        _listener = None

    if _queue_handler is not None:
        logging.getLogger().removeHandler(_queue_handler)
        _queue_handler = None

    _log_queue = None
    _LOGGING_INITIALIZED = False


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Ensure logging is configured once across entrypoints.

    Args:
        log_settings: Optional logging settings instance. If omitted, settings
            are loaded via get_logging_settings().
        force: Reconfigure logging even if it was already initialized.
        **configure_kwargs: Explicit overrides for configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    settings_obj = log_settings
    if settings_obj is None:
        from health_monitor.core.settings import get_logging_settings

        settings_obj = get_logging_settings()

    log_config = settings_obj.to_logging_kwargs()
    if configure_kwargs:
        log_config = {**log_config, **configure_kwargs}

    configure_logging(**log_config)
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    console_level: str | None = None,
    file_level: str | None = None,
    file_path: str | Path | None = None,
    json_logs: bool = True,
    console_enabled: bool = True,
    include_context: bool = True,
    capture_warnings: bool = True,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    service_name: str = "health-monitor",
    **kwargs: Any,
) -> None:
    """Configure logging with dictConfig and the QueueHandler pattern.

    All handlers are owned by a QueueListener; the root logger only carries a
    single QueueHandler and application loggers propagate up to it.

    Args:
        log_level: Root logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        console_level: Console handler level. If None, uses log_level.
        file_level: File handler level. If None, uses log_level.
        file_path: Path to log file. None disables file logging.
        json_logs: Enable JSONL (JSON Lines) structured logging.
        console_enabled: Enable console/stderr logging.
        include_context: Enable ContextInjectingFilter for auto context.
        capture_warnings: Forward Python warnings to logging system.
        file_max_bytes: Maximum log file size before rotation.
        file_backup_count: Number of rotated log files to keep.
        service_name: Static ``service`` field added to JSON records.
        **kwargs: Ignored extra settings.

    Example:
        ```python
        from health_monitor.core.settings import get_logging_settings

        configure_logging(**get_logging_settings().to_logging_kwargs())
        ```
    """
    if kwargs:
        logger.debug("Unused logging kwargs supplied: %s", ", ".join(sorted(kwargs.keys())))

    if capture_warnings:
        logging.captureWarnings(True)

    path = Path(file_path) if file_path else None
    if path:
        path.parent.mkdir(parents=True, exist_ok=True)

    # Replace any previous listener before rebuilding handlers
    shutdown()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "root": {
                "level": log_level.upper(),
                "handlers": [],
            },
        }
    )

    _setup_queue_logging(
        console_enabled=console_enabled,
        console_level=console_level or log_level,
        file_path=path,
        file_level=file_level or log_level,
        file_max_bytes=file_max_bytes,
        file_backup_count=file_backup_count,
        json_logs=json_logs,
        service_name=service_name,
        include_context=include_context,
    )


def _build_formatter(json_logs: bool, service_name: str) -> logging.Formatter:
    if json_logs:
        return JSONFormatter(
            fmt_keys={"level": "levelname", "logger": "name", "message": "message"},
            static={"service": service_name},
        )
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt=TEXT_DATEFMT)


def _setup_queue_logging(
    console_enabled: bool,
    console_level: str,
    file_path: Path | None,
    file_level: str,
    file_max_bytes: int,
    file_backup_count: int,
    json_logs: bool,
    service_name: str,
    include_context: bool,
) -> None:
    """Create handler instances, attach them to a QueueListener and wire the root logger.

    The context filter sits on the QueueHandler rather than the root logger so
    it also sees records propagated from child loggers.
    """
    global _log_queue, _listener, _queue_handler, _atexit_registered

    _log_queue = Queue()
    handlers: list[logging.Handler] = []

    if console_enabled:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(getattr(logging, console_level.upper()))
        console_handler.setFormatter(_build_formatter(json_logs, service_name))
        handlers.append(console_handler)

    if file_path:
        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=file_max_bytes,
            backupCount=file_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(getattr(logging, file_level.upper()))
        file_handler.setFormatter(_build_formatter(json_logs, service_name))
        handlers.append(file_handler)

    if not handlers:
        return

    _listener = QueueListener(_log_queue, *handlers, respect_handler_level=True)
    _listener.start()
    if not _atexit_registered:
        atexit.register(shutdown)
        _atexit_registered = True

    _queue_handler = QueueHandler(_log_queue)
    if include_context:
        _queue_handler.addFilter(ContextInjectingFilter())
    logging.getLogger().addHandler(_queue_handler)
