"""Application lifespan management.

Startup Order:
1. Logging
2. Health service (HTTP client, breaker registry, alert gate)

Shutdown Order: Reverse of startup.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from health_monitor.core.settings import (
    get_app_settings,
    get_health_settings,
    get_logging_settings,
)
from health_monitor.features.health.service import build_health_service
from health_monitor.infra.logging.config import setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    A health service already present on ``app.state`` (injected by
    ``create_app``) is used as is and left open on shutdown; otherwise one is
    built from settings and closed with the application.
    """
    app_settings = get_app_settings()
    setup_logging(log_settings=get_logging_settings(), force=True)
    logger.info(
        "Application starting",
        extra={"service": app_settings.service_name, "environment": app_settings.environment},
    )

    owned = getattr(app.state, "health_service", None) is None
    if owned:
        health_settings = get_health_settings()
        app.state.health_service = build_health_service(health_settings)
        logger.info(
            "Health service initialized",
            extra={
                "targets": len(app.state.health_service.targets),
                "max_concurrent": health_settings.max_concurrent,
                "guard_probes": health_settings.guard_probes,
            },
        )

    logger.info("Application startup complete", extra={"service": app_settings.service_name})

    yield

    logger.info("Application shutting down", extra={"service": app_settings.service_name})
    if owned:
        await app.state.health_service.aclose()
        app.state.health_service = None


__all__ = ["lifespan"]
