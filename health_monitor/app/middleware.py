"""Request ID middleware.

Every HTTP request gets an ID, taken from the ``X-Request-ID`` header or
generated, that is stored in ``request.state.request_id``, bound to the
logging context for the duration of the request and echoed in the response.
Problem responses include it so operators can find the matching log lines.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from starlette.datastructures import MutableHeaders

from health_monitor.infra.logging.context import clear_log_context, set_log_context

if TYPE_CHECKING:
    from fastapi import FastAPI
    from starlette.types import ASGIApp, Message, Receive, Scope, Send


class RequestIDMiddleware:
    """Pure ASGI middleware propagating a per-request ID.

    Usage:
        app = FastAPI()
        app.add_middleware(RequestIDMiddleware)
    """

    header_name = "x-request-id"

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = self._extract_or_generate(scope)
        scope.setdefault("state", {})["request_id"] = request_id
        set_log_context(request_id=request_id)

        async def send_with_header(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).append(self.header_name, request_id)
            await send(message)

        try:
            await self.app(scope, receive, send_with_header)
        finally:
            clear_log_context()

    def _extract_or_generate(self, scope: Scope) -> str:
        headers = dict(scope.get("headers", []))
        header_bytes = headers.get(self.header_name.encode("latin-1"))
        if header_bytes:
            return header_bytes.decode("latin-1")
        return str(uuid.uuid4())


def configure_middleware(app: FastAPI) -> None:
    app.add_middleware(RequestIDMiddleware)


__all__ = ["RequestIDMiddleware", "configure_middleware"]
