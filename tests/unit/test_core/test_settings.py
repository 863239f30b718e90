"""Tests for environment-driven settings and cached loaders."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from health_monitor.core.schemas.common import ResourceClass
from health_monitor.core.settings import (
    AlertSettings,
    CircuitBreakerSettings,
    HealthCheckSettings,
    LoggingSettings,
    clear_all_caches,
    get_alert_settings,
    get_circuit_breaker_settings,
    get_health_settings,
)


class TestHealthCheckSettings:
    """Test health check configuration."""

    def test_defaults(self) -> None:
        """Test probe defaults: 8s deadline, 2s retry delay, batches of 10."""
        settings = HealthCheckSettings()

        assert settings.probe_timeout == 8.0
        assert settings.retry_delay == 2.0
        assert settings.max_retries == 1
        assert settings.max_concurrent == 10
        assert settings.guard_probes is False
        assert settings.datastore.critical is True
        assert settings.storage.critical is False
        assert not settings.storage.is_configured

    def test_thresholds_per_class(self) -> None:
        """Test degraded thresholds per resource class."""
        thresholds = HealthCheckSettings().thresholds

        assert thresholds.for_class(ResourceClass.DATABASE) == 500.0
        assert thresholds.for_class(ResourceClass.STORAGE) == 1000.0
        assert thresholds.for_class(ResourceClass.FUNCTION) == 5000.0

    def test_env_and_nested_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test HEALTH_ variables, including nested ones, are read."""
        monkeypatch.setenv("HEALTH_PROBE_TIMEOUT", "3.5")
        monkeypatch.setenv("HEALTH_AUTH_TOKEN", "secret-token")
        monkeypatch.setenv("HEALTH_DATASTORE__URL", "https://db.example.test/rest/v1/")

        settings = HealthCheckSettings()

        assert settings.probe_timeout == 3.5
        assert settings.auth_token is not None
        assert settings.auth_token.get_secret_value() == "secret-token"
        assert "secret-token" not in repr(settings)
        assert settings.datastore.url == "https://db.example.test/rest/v1/"
        assert settings.datastore.critical is True
        assert settings.datastore.is_configured

    def test_function_url(self) -> None:
        """Test function URLs join base URL, path prefix and name."""
        settings = HealthCheckSettings(base_url="https://x.example.test/", function_path="/functions/v1/")

        assert settings.function_url("api-v1-auth") == "https://x.example.test/functions/v1/api-v1-auth"

    @pytest.mark.parametrize(
        "field",
        [{"probe_timeout": 0}, {"max_concurrent": 0}, {"function_path": "no-slash"}],
    )
    def test_invalid_values(self, field: dict) -> None:
        """Test invalid values fail validation."""
        with pytest.raises(ValidationError):
            HealthCheckSettings(**field)

    def test_frozen(self) -> None:
        """Test settings cannot be mutated."""
        settings = HealthCheckSettings()

        with pytest.raises(ValidationError):
            settings.probe_timeout = 1.0  # type: ignore[misc]


class TestCircuitBreakerSettings:
    """Test breaker configuration and overrides."""

    def test_breaker_kwargs_with_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test JSON overrides apply to one name only."""
        monkeypatch.setenv("CIRCUIT_OVERRIDES", '{"groq-chat": {"failure_threshold": 3}}')

        settings = CircuitBreakerSettings()

        assert settings.breaker_kwargs("groq-chat")["failure_threshold"] == 3
        assert settings.breaker_kwargs("groq-chat")["recovery_timeout"] == 60.0
        assert settings.breaker_kwargs("zai-chat")["failure_threshold"] == 5

    def test_rejects_zero_threshold(self) -> None:
        """Test a zero threshold is rejected."""
        with pytest.raises(ValidationError):
            CircuitBreakerSettings(failure_threshold=0)


class TestAlertAndLoggingSettings:
    """Test alert and logging settings."""

    def test_alert_defaults(self) -> None:
        """Test 15 minute cooldown and critical-only alerts by default."""
        settings = AlertSettings()

        assert settings.cooldown == 900.0
        assert settings.threshold == 1
        assert settings.critical_only is True
        assert settings.notify_recovery is True

    def test_logging_kwargs(self) -> None:
        """Test file path is only passed when file logging is enabled."""
        assert LoggingSettings(file_enabled=False).to_logging_kwargs()["file_path"] is None
        assert LoggingSettings(file_enabled=True).to_logging_kwargs()["file_path"] is not None


class TestLoaders:
    """Test cached loaders."""

    def test_loaders_cache_until_cleared(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test loaders return one instance until caches are cleared."""
        first = get_health_settings()
        assert get_health_settings() is first

        monkeypatch.setenv("HEALTH_MAX_CONCURRENT", "4")
        assert get_health_settings().max_concurrent == first.max_concurrent

        clear_all_caches()
        assert get_health_settings().max_concurrent == 4
        assert get_alert_settings() is get_alert_settings()
        assert get_circuit_breaker_settings() is get_circuit_breaker_settings()
