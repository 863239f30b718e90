"""FastAPI application factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import FastAPI

from health_monitor.app.exception_handlers import configure_exception_handlers
from health_monitor.app.lifespan import lifespan
from health_monitor.app.middleware import configure_middleware
from health_monitor.app.router import setup_routers
from health_monitor.core.settings import get_app_settings

if TYPE_CHECKING:
    from health_monitor.core.settings.app import AppSettings
    from health_monitor.features.health.service import HealthService


def create_app(
    app_settings: AppSettings | None = None,
    *,
    health_service: HealthService | None = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        app_settings: Optional settings override; cached settings otherwise.
        health_service: Prebuilt service to serve instead of one built from
            settings at startup. The caller keeps ownership of it.

    Returns:
        Configured FastAPI application instance.
    """
    app_settings = app_settings or get_app_settings()

    app = FastAPI(
        title=app_settings.title,
        version=app_settings.version,
        debug=app_settings.debug,
        lifespan=lifespan,
    )
    app.state.health_service = health_service

    # Exception handlers must be registered before middleware
    configure_exception_handlers(app)
    configure_middleware(app)
    setup_routers(app, app_settings)

    return app


# Application instance for uvicorn
app = create_app()
