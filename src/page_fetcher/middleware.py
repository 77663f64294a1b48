"""ASGI middleware tagging each request's log lines with a request ID."""

import uuid

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_ID_HEADER = "X-Request-ID"


def resolve_request_id(scope: Scope) -> str:
    """Reuse the caller's ``X-Request-ID`` when present, otherwise mint one."""
    supplied = Headers(scope=scope).get(REQUEST_ID_HEADER, "").strip()
    return supplied or uuid.uuid4().hex


class RequestIDMiddleware:
    """Binds ``request_id`` to the log context for the lifetime of a request.

    Concurrent scrapes interleave their log lines; the field ties each line
    back to its request. The ID is echoed in the response headers and unbound
    once the request completes.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = resolve_request_id(scope)

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            await self.app(scope, receive, send_with_request_id)
