"""Application settings for FastAPI configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["development", "staging", "production", "test"]


class AppSettings(BaseSettings):
    """FastAPI application settings.

    Environment variables use APP_ prefix.
    Example: APP_DEBUG=true, APP_TITLE="Fleet Health API"
    """

    service_name: str = Field(
        default="health-monitor",
        min_length=1,
        max_length=100,
        pattern=r"^[a-z0-9]+(-[a-z0-9]+)*$",
        description="Service name for logging (lowercase, hyphens allowed)",
    )
    title: str = Field(
        default="Health Monitor API",
        min_length=1,
        max_length=200,
        description="API title displayed in documentation",
    )
    version: str = Field(
        default="1.0.0",
        min_length=1,
        max_length=50,
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9]+)?$",
        description="API version (semver format)",
    )
    environment: Environment = Field(
        default="development", description="Environment: development|staging|production|test",
    )
    debug: bool = Field(default=False, description="Enable FastAPI debug mode")
    host: str = Field(default="0.0.0.0", description="Bind address for the API server")
    port: int = Field(default=8000, ge=1, le=65535, description="Bind port for the API server")
    api_prefix: str = Field(
        default="/api/v1",
        min_length=1,
        max_length=255,
        pattern=r"^/.*$",
        description="Base URL prefix for API routes (e.g., /api/v1)",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )


__all__ = ["AppSettings", "Environment"]
