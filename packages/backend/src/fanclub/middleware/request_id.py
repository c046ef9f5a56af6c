"""Request ID middleware — unique ID per request or WebSocket session.

Learn: Every HTTP request and every WebSocket handshake gets a UUID, either
from the incoming X-Request-ID header (for distributed tracing) or
auto-generated. The ID is bound to structlog's contextvars so it appears
in all log entries for that request — for a WebSocket that's every entry
logged over the connection's lifetime. HTTP responses echo it back in the
X-Request-ID header.

Written as plain ASGI rather than BaseHTTPMiddleware because the latter
only sees HTTP traffic and would skip the WebSocket endpoints.
"""

import uuid

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

HEADER = "X-Request-ID"


class RequestIdMiddleware:
    """Generate and propagate a unique request ID."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get(HEADER) or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, scope=scope["type"]
        )

        if scope["type"] == "websocket":
            await self.app(scope, receive, send)
            return

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[HEADER] = request_id
            await send(message)

        await self.app(scope, receive, send_with_request_id)
