"""Tests for application startup and shutdown."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from health_monitor.app import lifespan as lifespan_module
from health_monitor.app.main import create_app
from health_monitor.core.settings.app import AppSettings


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(lifespan_module, "setup_logging", MagicMock())


class TestLifespan:
    """Test health service ownership across the application lifecycle."""

    def test_builds_and_closes_service(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a service built at startup is closed at shutdown."""
        built = MagicMock()
        built.targets = []
        built.aclose = AsyncMock()
        monkeypatch.setattr(lifespan_module, "build_health_service", MagicMock(return_value=built))

        app = create_app(AppSettings())
        with TestClient(app):
            assert app.state.health_service is built

        built.aclose.assert_awaited_once()
        assert app.state.health_service is None

    def test_injected_service_is_left_open(self) -> None:
        """Test a service passed to create_app is used and not closed."""
        injected = MagicMock()
        injected.aclose = AsyncMock()

        app = create_app(AppSettings(), health_service=injected)
        with TestClient(app):
            assert app.state.health_service is injected

        injected.aclose.assert_not_awaited()
        assert app.state.health_service is injected
