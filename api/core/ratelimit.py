"""Per-client rate limiting (slowapi).

Requests are keyed by client IP. Behind a reverse proxy set
TRUST_PROXY_HEADERS=true so the first X-Forwarded-For hop is used instead of
the proxy's address.

RATELIMIT_STORAGE_URI defaults to memory://, which is per-process; run more
than one worker or replica only with a shared store (redis://host:port/db).
"""

import logging

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from core.config import get_settings

logger = logging.getLogger(__name__)

# Certificate generation renders, writes to the DB and sends mail: keep it low.
GENERATE_LIMIT = "10/minute"
HEALTH_LIMIT = "30/minute"
DEFAULT_LIMIT = "100/minute"

DEFAULT_RETRY_AFTER_SECONDS = 60


def client_ip(request: Request) -> str:
    """Rate-limit key for a request."""
    if get_settings().trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return get_remote_address(request)


def _storage_uri() -> str:
    settings = get_settings()
    uri = settings.ratelimit_storage_uri
    if uri == "memory://" and settings.environment != "development":
        logger.warning(
            "ratelimit.memory_storage",
            extra={
                "environment": settings.environment,
                "hint": "limits are per-process; set RATELIMIT_STORAGE_URI",
            },
        )
    return uri


_uri = _storage_uri()

limiter = Limiter(
    key_func=client_ip,
    default_limits=[DEFAULT_LIMIT],
    storage_uri=_uri,
    in_memory_fallback_enabled=_uri.startswith("redis://"),
    key_prefix="cert:",
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """429 in the API's error envelope, with Retry-After."""
    logger.warning(
        "ratelimit.exceeded",
        extra={"client": client_ip(request), "limit": exc.detail},
    )
    retry_after = getattr(exc, "retry_after", DEFAULT_RETRY_AFTER_SECONDS)
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "Rate limit exceeded. Please slow down.",
            "retry_after": exc.detail,
        },
        headers={"Retry-After": str(retry_after)},
    )
