"""Circuit breaker configuration settings.

Environment variables use CIRCUIT_ prefix. Per-breaker overrides are given as
JSON keyed by dependency name:

    CIRCUIT_FAILURE_THRESHOLD=5
    CIRCUIT_RECOVERY_TIMEOUT=60
    CIRCUIT_OVERRIDES='{"groq-chat": {"failure_threshold": 3, "recovery_timeout": 30}}'
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BreakerOverride(BaseModel):
    """Per-dependency override; unset fields fall back to the global defaults."""

    failure_threshold: int | None = Field(default=None, gt=0)
    recovery_timeout: float | None = Field(default=None, gt=0)
    success_threshold: int | None = Field(default=None, gt=0)
    half_open_max_calls: int | None = Field(default=None, gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class CircuitBreakerSettings(BaseSettings):
    """Default circuit breaker configuration shared by every dependency name."""

    failure_threshold: int = Field(
        default=5,
        gt=0,
        le=1000,
        description="Consecutive failures that open a circuit",
    )

    recovery_timeout: float = Field(
        default=60.0,
        gt=0,
        le=3600.0,
        description="Seconds after the last failure before a trial call is allowed",
    )

    success_threshold: int = Field(
        default=1,
        gt=0,
        le=100,
        description="Successful trial calls needed to close a half-open circuit",
    )

    half_open_max_calls: int = Field(
        default=1,
        gt=0,
        le=100,
        description="Trial calls admitted while half-open",
    )

    overrides: dict[str, BreakerOverride] = Field(
        default_factory=dict,
        description="Per-dependency overrides keyed by breaker name",
    )

    model_config = SettingsConfigDict(
        env_prefix="CIRCUIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    def breaker_kwargs(self, name: str) -> dict[str, Any]:
        """Build CircuitBreaker keyword arguments for a dependency name."""
        kwargs: dict[str, Any] = {
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
            "success_threshold": self.success_threshold,
            "half_open_max_calls": self.half_open_max_calls,
        }
        override = self.overrides.get(name)
        if override is not None:
            kwargs.update(override.model_dump(exclude_none=True))
        return kwargs


__all__ = ["BreakerOverride", "CircuitBreakerSettings"]
