"""Logging configuration settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseSettings):
    """Structured logging configuration.

    Environment variables use LOG_ prefix.
    Example: LOG_LEVEL=INFO, LOG_JSON_LOGS=true, LOG_FILE_ENABLED=false
    """

    # ──────────────────────────────────────────────────────────────
    # Basic configuration
    # ──────────────────────────────────────────────────────────────

    service_name: str = Field(
        default="health-monitor",
        description="Service name to include in log records (static field in JSON)",
    )

    level: LogLevel = Field(
        default="INFO",
        description="Root logger level (DEBUG|INFO|WARNING|ERROR|CRITICAL)",
    )

    json_logs: bool = Field(
        default=True,
        description="Enable JSON Lines (JSONL) formatted structured logs",
    )

    console_level: LogLevel | None = Field(
        default=None,
        description="Console handler log level. If None, uses root level.",
    )

    file_level: LogLevel | None = Field(
        default=None,
        description="File handler log level. If None, uses root level.",
    )

    # ──────────────────────────────────────────────────────────────
    # Handlers
    # ──────────────────────────────────────────────────────────────

    console_enabled: bool = Field(default=True, description="Enable console/stderr logging")

    file_enabled: bool = Field(
        default=False,
        description="Enable file logging. When False, file_path is ignored.",
    )

    file_path: Path | None = Field(
        default=Path("logs/health-monitor.log.jsonl"),
        description="Path to log file.",
    )

    file_max_bytes: int = Field(
        default=10_485_760,  # 10 MiB
        ge=1024,
        le=1_073_741_824,
        description="Maximum log file size in bytes before rotation.",
    )

    file_backup_count: int = Field(
        default=5,
        ge=0,
        le=100,
        description="Number of rotated log files to keep.",
    )

    include_context: bool = Field(
        default=True,
        description="Inject contextvars context into log records via ContextInjectingFilter",
    )

    capture_warnings: bool = Field(
        default=True,
        description="Forward Python `warnings` module output to the logging system.",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @computed_field
    @property
    def effective_file_path(self) -> Path | None:
        """Return the file path only when file logging is enabled."""
        if not self.file_enabled:
            return None
        return self.file_path

    def to_logging_kwargs(self) -> dict[str, Any]:
        """Convert settings into configure_logging() keyword arguments."""
        return {
            "log_level": self.level,
            "console_level": self.console_level,
            "file_level": self.file_level,
            "file_path": self.effective_file_path,
            "json_logs": self.json_logs,
            "console_enabled": self.console_enabled,
            "include_context": self.include_context,
            "capture_warnings": self.capture_warnings,
            "file_max_bytes": self.file_max_bytes,
            "file_backup_count": self.file_backup_count,
            "service_name": self.service_name,
        }


__all__ = ["LogLevel", "LoggingSettings"]
