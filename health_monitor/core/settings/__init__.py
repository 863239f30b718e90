"""Modular Pydantic Settings v2 configuration.

Every operational knob of the health monitor (breaker thresholds, probe
deadlines, retry delay, batch size, degraded thresholds, alert cooldown) is
read from the environment through these frozen models.

Import settings via cached loaders:
    from health_monitor.core.settings import get_health_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables (production)
    3. .env file (development only)
"""

from __future__ import annotations

from .alerting import AlertSettings
from .app import AppSettings
from .health import (
    DatastoreEndpointConfig,
    DegradedThresholds,
    HealthCheckSettings,
    ServiceEndpointConfig,
)
from .loader import (
    clear_all_caches,
    get_alert_settings,
    get_app_settings,
    get_circuit_breaker_settings,
    get_health_settings,
    get_logging_settings,
)
from .logs import LoggingSettings
from .resilience import BreakerOverride, CircuitBreakerSettings

__all__ = [
    "AlertSettings",
    "AppSettings",
    "BreakerOverride",
    "CircuitBreakerSettings",
    "DatastoreEndpointConfig",
    "DegradedThresholds",
    "HealthCheckSettings",
    "LoggingSettings",
    "ServiceEndpointConfig",
    "clear_all_caches",
    "get_alert_settings",
    "get_app_settings",
    "get_circuit_breaker_settings",
    "get_health_settings",
    "get_logging_settings",
]
