"""Pure ASGI middleware: response hardening headers and per-request log context."""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import bind_contextvars, clear_contextvars

REQUEST_ID_HEADER = b"x-request-id"
MAX_REQUEST_ID_LENGTH = 64

# The API only serves JSON, so nothing may be framed, sniffed or scripted.
API_RESPONSE_HEADERS: tuple[tuple[bytes, bytes], ...] = (
    (b"x-content-type-options", b"nosniff"),
    (b"x-frame-options", b"DENY"),
    (b"x-xss-protection", b"0"),
    (b"referrer-policy", b"strict-origin-when-cross-origin"),
    (b"content-security-policy", b"default-src 'none'; frame-ancestors 'none'"),
    (b"strict-transport-security", b"max-age=31536000; includeSubDomains"),
)


def _appending_headers(send: Send, extra: Iterable[tuple[bytes, bytes]]) -> Send:
    """Wrap ``send`` so the response start message gains ``extra`` headers."""

    async def wrapped(message: Message) -> None:
        if message["type"] == "http.response.start":
            message["headers"] = [*message.get("headers", []), *extra]
        await send(message)

    return wrapped


def _incoming_request_id(scope: Scope) -> str | None:
    for name, value in scope.get("headers", []):
        if name == REQUEST_ID_HEADER:
            return value.decode("latin-1")[:MAX_REQUEST_ID_LENGTH] or None
    return None


class SecurityHeadersMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            send = _appending_headers(send, API_RESPONSE_HEADERS)
        await self.app(scope, receive, send)


class RequestContextMiddleware:
    """Tags every log line of a request with its id and echoes the id back.

    A caller-supplied ``X-Request-Id`` is reused (truncated to 64 chars);
    otherwise a random hex id is generated.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _incoming_request_id(scope) or uuid.uuid4().hex
        clear_contextvars()
        bind_contextvars(
            request_id=request_id,
            method=scope.get("method", ""),
            path=scope.get("path", ""),
        )
        echo = [(REQUEST_ID_HEADER, request_id.encode("latin-1"))]

        try:
            await self.app(scope, receive, _appending_headers(send, echo))
        finally:
            clear_contextvars()
