"""Unit tests for core.ratelimit module.

Tests rate limiting utilities:
- client_ip keys requests by peer address or first forwarded hop
- rate_limit_exceeded_handler returns the 429 error envelope
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import Request
from slowapi.errors import RateLimitExceeded

from core.ratelimit import (
    GENERATE_LIMIT,
    HEALTH_LIMIT,
    client_ip,
    limiter,
    rate_limit_exceeded_handler,
)


def _make_rate_limit_exc(
    detail: str = "10 per 1 minute", retry_after: int = 30
) -> RateLimitExceeded:
    """Create a RateLimitExceeded with a mock Limit object."""
    mock_limit = MagicMock()
    mock_limit.error_message = None
    mock_limit.limit = detail
    exc = RateLimitExceeded(mock_limit)
    object.__setattr__(exc, "retry_after", retry_after)
    return exc


def _request(peer: str = "10.0.0.5", forwarded: str | None = None) -> MagicMock:
    request = MagicMock(spec=Request)
    request.client.host = peer
    request.headers = {"x-forwarded-for": forwarded} if forwarded else {}
    return request


@pytest.mark.unit
class TestLimiterConfig:
    def test_limits_are_per_minute(self):
        assert GENERATE_LIMIT == "10/minute"
        assert HEALTH_LIMIT == "30/minute"

    def test_limiter_uses_client_ip(self):
        assert limiter._key_func is client_ip


@pytest.mark.unit
class TestClientIp:
    def test_uses_peer_address_by_default(self):
        request = _request(peer="203.0.113.7", forwarded="198.51.100.1")
        assert client_ip(request) == "203.0.113.7"

    def test_uses_first_forwarded_hop_when_trusted(self, monkeypatch):
        monkeypatch.setenv("TRUST_PROXY_HEADERS", "true")
        request = _request(forwarded="198.51.100.1, 10.0.0.1")
        assert client_ip(request) == "198.51.100.1"

    def test_falls_back_when_header_missing(self, monkeypatch):
        monkeypatch.setenv("TRUST_PROXY_HEADERS", "true")
        assert client_ip(_request(peer="203.0.113.7")) == "203.0.113.7"


@pytest.mark.unit
class TestRateLimitExceededHandler:
    """Test rate_limit_exceeded_handler response."""

    @patch("core.ratelimit.client_ip", return_value="203.0.113.7")
    def test_returns_429_with_retry_after(self, _mock_remote):
        request = MagicMock(spec=Request)
        exc = _make_rate_limit_exc(retry_after=30)

        response = rate_limit_exceeded_handler(request, exc)

        assert response.status_code == 429
        assert response.headers.get("Retry-After") == "30"

    @patch("core.ratelimit.client_ip", return_value="203.0.113.7")
    def test_response_body_uses_error_envelope(self, _mock_remote):
        request = MagicMock(spec=Request)
        exc = _make_rate_limit_exc(detail="10 per 1 minute", retry_after=60)

        response = rate_limit_exceeded_handler(request, exc)

        body = json.loads(response.body)
        assert body == {
            "success": False,
            "error": "Rate limit exceeded. Please slow down.",
            "retry_after": "10 per 1 minute",
        }

    @patch("core.ratelimit.client_ip", return_value="203.0.113.7")
    def test_defaults_retry_after_to_60(self, _mock_remote):
        request = MagicMock(spec=Request)
        mock_limit = MagicMock()
        mock_limit.error_message = None
        mock_limit.limit = "10 per 1 minute"
        exc = RateLimitExceeded(mock_limit)

        response = rate_limit_exceeded_handler(request, exc)

        assert response.headers.get("Retry-After") == "60"
