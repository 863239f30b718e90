"""Server command."""

import click

from health_monitor.core.settings import get_app_settings, get_logging_settings


@click.command(name="serve")
@click.option("--host", default=None, help="Host to bind (default: from settings)")
@click.option("--port", default=None, type=int, help="Port to bind (default: from settings)")
@click.option("--reload/--no-reload", default=False, help="Enable auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the health API with uvicorn."""
    import uvicorn

    settings = get_app_settings()
    uvicorn.run(
        "health_monitor.app.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        access_log=settings.debug,
        log_level=get_logging_settings().level.lower(),
    )
