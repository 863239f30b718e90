"""Router registry and setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from health_monitor.core.settings import get_app_settings
from health_monitor.features.health.router import router as health_router
from health_monitor.features.metrics.router import router as metrics_router

if TYPE_CHECKING:
    from fastapi import FastAPI

    from health_monitor.core.settings.app import AppSettings

logger = logging.getLogger(__name__)


def setup_routers(app: FastAPI, app_settings: AppSettings | None = None) -> None:
    """Register all feature routers with the application.

    Args:
        app: FastAPI application instance.
        app_settings: Optional application settings override for the API prefix.
    """
    app_settings = app_settings or get_app_settings()
    api_prefix = app_settings.api_prefix

    # Metrics endpoint has no prefix (accessible at /metrics)
    app.include_router(metrics_router, tags=["observability"])

    app.include_router(health_router, prefix=api_prefix, tags=["health"])

    logger.info("Health endpoints registered at %s/health", api_prefix)
