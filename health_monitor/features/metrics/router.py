"""Prometheus metrics endpoint.

    GET /metrics - Prometheus scrape endpoint

Exposes breaker state and counters, probe results and durations, cold-start
recoveries and alert outcomes from the monitor's private registry.
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST

from health_monitor.infra.metrics.prometheus import render_metrics

router = APIRouter(tags=["observability"])


@router.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics in the text exposition format."""
    return Response(
        content=render_metrics(),
        media_type=CONTENT_TYPE_LATEST,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
