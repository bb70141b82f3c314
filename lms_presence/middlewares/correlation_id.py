"""
Correlation IDs for HTTP requests.

Every request is tagged with an 8-character ID, taken from the caller's
``X-Correlation-ID`` header when one is sent. The ID is echoed back on the
response and is readable from any log record emitted while the request is
being handled.
"""

import uuid
from contextvars import ContextVar

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

CORRELATION_HEADER = "X-Correlation-ID"
CORRELATION_ID_LENGTH = 8

_current_id: ContextVar[str] = ContextVar("correlation_id", default="")


def current_correlation_id() -> str:
    """Correlation ID of the request being handled, ``""`` outside a request."""
    return _current_id.get()


def new_correlation_id() -> str:
    return uuid.uuid4().hex[:CORRELATION_ID_LENGTH]


class CorrelationIDMiddleware:
    """
    Pure ASGI middleware that tags HTTP requests with a correlation ID.

    Non-HTTP scopes (lifespan) are passed through untouched. The context
    variable is reset once the downstream app returns or raises.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        sent = Headers(scope=scope).get(CORRELATION_HEADER)
        cid = (sent or new_correlation_id())[:CORRELATION_ID_LENGTH]
        token = _current_id.set(cid)

        async def send_with_correlation_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[CORRELATION_HEADER] = cid
            await send(message)

        try:
            await self.app(scope, receive, send_with_correlation_id)
        finally:
            _current_id.reset(token)
