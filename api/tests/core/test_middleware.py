"""ASGI middleware behaviour, driven with hand-built scopes."""

import pytest
import structlog

from core.middleware import (
    API_RESPONSE_HEADERS,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)

pytestmark = pytest.mark.unit

GENERATE_PATH = "/api/certificate/generate"


async def receive():
    return {"type": "http.request", "body": b""}


async def ok_app(scope, receive, send):
    await send({"type": "http.response.start", "status": 200, "headers": []})
    await send({"type": "http.response.body", "body": b"{}"})


def http_scope(path: str = GENERATE_PATH, method: str = "POST", **headers: bytes):
    return {
        "type": "http",
        "method": method,
        "path": path,
        "headers": [(k.replace("_", "-").encode(), v) for k, v in headers.items()],
    }


async def call(middleware, scope) -> list[dict]:
    messages: list[dict] = []

    async def send(message):
        messages.append(message)

    await middleware(scope, receive, send)
    return messages


def start_headers(messages: list[dict]) -> dict[bytes, bytes]:
    return dict(messages[0]["headers"])


class TestSecurityHeaders:
    async def test_every_header_is_added(self):
        messages = await call(SecurityHeadersMiddleware(ok_app), http_scope())

        headers = start_headers(messages)
        for name, value in API_RESPONSE_HEADERS:
            assert headers[name] == value

    async def test_app_headers_survive(self):
        async def app(scope, receive, send):
            await send(
                {
                    "type": "http.response.start",
                    "status": 201,
                    "headers": [(b"content-type", b"application/json")],
                }
            )

        messages = await call(SecurityHeadersMiddleware(app), http_scope())

        headers = start_headers(messages)
        assert headers[b"content-type"] == b"application/json"
        assert headers[b"x-frame-options"] == b"DENY"

    async def test_body_passes_through(self):
        messages = await call(SecurityHeadersMiddleware(ok_app), http_scope())

        assert messages[1] == {"type": "http.response.body", "body": b"{}"}

    async def test_lifespan_scope_untouched(self):
        seen = []

        async def app(scope, receive, send):
            seen.append(scope["type"])

        await SecurityHeadersMiddleware(app)({"type": "lifespan"}, receive, None)

        assert seen == ["lifespan"]


class TestRequestContext:
    async def test_reuses_caller_request_id(self):
        scope = http_scope(x_request_id=b"abc-123")

        messages = await call(RequestContextMiddleware(ok_app), scope)

        assert start_headers(messages)[b"x-request-id"] == b"abc-123"

    async def test_generates_hex_id(self):
        messages = await call(RequestContextMiddleware(ok_app), http_scope())

        request_id = start_headers(messages)[b"x-request-id"]
        assert len(request_id) == 32
        int(request_id, 16)

    async def test_caps_request_id_length(self):
        scope = http_scope(x_request_id=b"x" * 200)

        messages = await call(RequestContextMiddleware(ok_app), scope)

        assert start_headers(messages)[b"x-request-id"] == b"x" * 64

    async def test_log_context_bound_then_cleared(self):
        bound = {}

        async def app(scope, receive, send):
            bound.update(structlog.contextvars.get_contextvars())
            await ok_app(scope, receive, send)

        await call(RequestContextMiddleware(app), http_scope(x_request_id=b"req-1"))

        assert bound == {"request_id": "req-1", "method": "POST", "path": GENERATE_PATH}
        assert structlog.contextvars.get_contextvars() == {}

    async def test_context_cleared_on_error(self):
        async def app(scope, receive, send):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await call(RequestContextMiddleware(app), http_scope(method="GET"))

        assert structlog.contextvars.get_contextvars() == {}
