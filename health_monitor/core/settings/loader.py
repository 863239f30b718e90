"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.

Usage:
    from health_monitor.core.settings.loader import get_health_settings

    settings = get_health_settings()  # First call: loads and validates
    settings = get_health_settings()  # Subsequent calls: returns cached instance

Testing:
    In tests, clear the cache to force reload:
    get_health_settings.cache_clear()

    Or override with custom values:
    settings = HealthCheckSettings(probe_timeout=0.5)
"""

from __future__ import annotations

from functools import lru_cache

from .alerting import AlertSettings
from .app import AppSettings
from .health import HealthCheckSettings
from .logs import LoggingSettings
from .resilience import CircuitBreakerSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get cached application settings.

    Returns:
        Validated and frozen AppSettings instance.
    """
    return AppSettings()


@lru_cache(maxsize=1)
def get_health_settings() -> HealthCheckSettings:
    """Get cached health check settings.

    Returns:
        Validated and frozen HealthCheckSettings instance.
    """
    return HealthCheckSettings()


@lru_cache(maxsize=1)
def get_circuit_breaker_settings() -> CircuitBreakerSettings:
    """Get cached circuit breaker settings.

    Returns:
        Validated and frozen CircuitBreakerSettings instance.
    """
    return CircuitBreakerSettings()


@lru_cache(maxsize=1)
def get_alert_settings() -> AlertSettings:
    """Get cached alert settings.

    Returns:
        Validated and frozen AlertSettings instance.
    """
    return AlertSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


def clear_all_caches() -> None:
    """Clear every settings cache (useful in tests)."""
    get_app_settings.cache_clear()
    get_health_settings.cache_clear()
    get_circuit_breaker_settings.cache_clear()
    get_alert_settings.cache_clear()
    get_logging_settings.cache_clear()
