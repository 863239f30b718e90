"""Health check configuration settings.

This module provides configuration for the function fleet probes, the
structural service checks (datastore, object store), and the per-resource-class
latency thresholds used to tell DEGRADED from HEALTHY.

Environment variables use HEALTH_ prefix with double underscore for nested configs.
Example: HEALTH_THRESHOLDS__DATABASE_MS=750

Example:
    >>> from health_monitor.core.settings import get_health_settings
    >>>
    >>> settings = get_health_settings()
    >>> print(settings.probe_timeout)  # 8.0
    >>> print(settings.thresholds.function_ms)  # 5000.0
    >>> print(settings.datastore.critical)  # True
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from health_monitor.core.schemas.common import ResourceClass


class DegradedThresholds(BaseModel):
    """Latency thresholds (milliseconds) above which a working dependency is DEGRADED.

    Attributes:
        database_ms: Datastore query threshold
        storage_ms: Object-store query threshold
        function_ms: Generic function call threshold
    """

    database_ms: float = Field(default=500.0, ge=1.0, le=60000.0)
    storage_ms: float = Field(default=1000.0, ge=1.0, le=60000.0)
    function_ms: float = Field(default=5000.0, ge=1.0, le=120000.0)

    model_config = ConfigDict(frozen=True, extra="ignore")

    def for_class(self, resource_class: ResourceClass) -> float:
        """Return the threshold for a resource class."""
        return {
            ResourceClass.DATABASE: self.database_ms,
            ResourceClass.STORAGE: self.storage_ms,
            ResourceClass.FUNCTION: self.function_ms,
        }[resource_class]


class ServiceEndpointConfig(BaseModel):
    """Configuration for one structural service check.

    Attributes:
        url: Endpoint to GET; None disables the check
        timeout: Check timeout in seconds
        critical: Whether a failure marks the whole system unhealthy
    """

    url: str | None = Field(default=None, description="Health endpoint URL")
    timeout: float = Field(default=5.0, ge=0.1, le=60.0)
    critical: bool = Field(default=False)

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def is_configured(self) -> bool:
        return bool(self.url)


class DatastoreEndpointConfig(ServiceEndpointConfig):
    """Primary datastore check; critical unless configured otherwise."""

    critical: bool = Field(default=True)


class HealthCheckSettings(BaseSettings):
    """Health check system configuration.

    Environment Variables:
        HEALTH_BASE_URL: Base URL of the function fleet (e.g. https://project.example.co)
        HEALTH_AUTH_TOKEN: Bearer token sent with every probe
        HEALTH_PROBE_TIMEOUT: Per-attempt deadline in seconds (default: 8.0)
        HEALTH_RETRY_DELAY: Cold-start retry delay in seconds (default: 2.0)
        HEALTH_MAX_CONCURRENT: Probes in flight per batch (default: 10)
        HEALTH_TARGETS_FILE: Optional YAML file replacing the default fleet

        Nested configs use double underscore notation:
        HEALTH_DATASTORE__URL=https://project.example.co/rest/v1/
        HEALTH_STORAGE__TIMEOUT=3.0
        HEALTH_THRESHOLDS__STORAGE_MS=1500
    """

    # ──────────────────────────────────────────────────────────────
    # Function fleet probing
    # ──────────────────────────────────────────────────────────────

    base_url: str = Field(
        default="http://localhost:54321",
        description="Base URL that function names are resolved against",
    )

    function_path: str = Field(
        default="/functions/v1",
        pattern=r"^/.*$",
        description="Path prefix placed between base_url and a function name",
    )

    auth_token: SecretStr | None = Field(
        default=None,
        description="Bearer token attached to probe requests",
    )

    probe_timeout: float = Field(
        default=8.0,
        ge=0.1,
        le=120.0,
        description="Deadline for a single probe attempt in seconds",
    )

    retry_delay: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Wait before the cold-start retry in seconds",
    )

    max_retries: int = Field(
        default=1,
        ge=0,
        le=5,
        description="Retries after a failed first attempt (1 = single cold-start retry)",
    )

    max_concurrent: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Maximum probes in flight at once (batch size)",
    )

    guard_probes: bool = Field(
        default=False,
        description="Route probe attempts through per-target circuit breakers",
    )

    targets_file: Path | None = Field(
        default=None,
        description="YAML file with probe targets; the built-in fleet is used when unset",
    )

    version: str = Field(default="1.0.0", description="Version reported in summaries")

    # ──────────────────────────────────────────────────────────────
    # Structural services and thresholds
    # ──────────────────────────────────────────────────────────────

    thresholds: DegradedThresholds = Field(default_factory=DegradedThresholds)

    datastore: DatastoreEndpointConfig = Field(
        default_factory=DatastoreEndpointConfig,
        description="Primary datastore check configuration",
    )

    storage: ServiceEndpointConfig = Field(
        default_factory=ServiceEndpointConfig,
        description="Object store check configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="HEALTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_nested_delimiter="__",
        env_ignore_empty=True,
    )

    def function_url(self, name: str) -> str:
        """Resolve the probe URL for a function name."""
        return f"{self.base_url.rstrip('/')}{self.function_path.rstrip('/')}/{name}"


__all__ = [
    "DatastoreEndpointConfig",
    "DegradedThresholds",
    "HealthCheckSettings",
    "ServiceEndpointConfig",
]
