"""Alert gate configuration settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AlertSettings(BaseSettings):
    """Alert emission configuration.

    Environment variables use ALERT_ prefix.
    Example: ALERT_COOLDOWN=900, ALERT_THRESHOLD=2
    """

    enabled: bool = Field(default=True, description="Evaluate alerts after fleet checks")

    cooldown: float = Field(
        default=900.0,
        ge=0.0,
        le=86400.0,
        description="Minimum seconds between alerts for the same target",
    )

    threshold: int = Field(
        default=1,
        ge=1,
        le=100,
        description="Consecutive failed cycles before a target may alert",
    )

    critical_only: bool = Field(
        default=True,
        description="Only critical targets can trigger an alert",
    )

    notify_recovery: bool = Field(
        default=True,
        description="Send a recovery notice once every target is healthy again",
    )

    model_config = SettingsConfigDict(
        env_prefix="ALERT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )


__all__ = ["AlertSettings"]
