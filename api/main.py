"""FastAPI application for the Certificate Generation API."""

import asyncio
import logging
from contextlib import asynccontextmanager

import fastapi
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from core.config import Settings, get_settings
from core.database import (
    create_engine,
    create_session_maker,
    dispose_engine,
    init_db,
)
from core.logger import configure_logging
from core.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from core.ratelimit import limiter, rate_limit_exceeded_handler
from routes import certificates_router, health_router

configure_logging()
logger = logging.getLogger(__name__)

STARTUP_TIMEOUT_SECONDS = 60


def _error_response(
    status_code: int, error: str, message: str | None = None
) -> JSONResponse:
    body: dict[str, object] = {"success": False, "error": error}
    if message is not None:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unhandled becomes an opaque 500; details go to the log only."""
    logger.exception(
        "unhandled.exception",
        extra={
            "exc_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _error_response(500, "Internal server error")


async def validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Unparseable or wrongly shaped bodies are a client error (400)."""
    if not isinstance(exc, RequestValidationError):
        return _error_response(500, "Internal server error")

    errors = exc.errors()
    logger.warning(
        "request.body_rejected",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_count": len(errors),
        },
    )
    first = errors[0].get("msg") if errors else None
    return _error_response(400, "Invalid request body", first or "Invalid request")


async def _prepare(app: fastapi.FastAPI, settings: Settings) -> None:
    async with asyncio.timeout(STARTUP_TIMEOUT_SECONDS):
        await init_db(app.state.engine)
    await asyncio.to_thread(settings.output_dir_path.mkdir, parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Open the engine, check the database and output directory, then serve."""
    settings = get_settings()
    engine = create_engine()
    app.state.engine = engine
    app.state.session_maker = create_session_maker(engine)
    app.state.init_done = False
    app.state.init_error = None

    try:
        await _prepare(app, settings)
    except TimeoutError as e:
        app.state.init_error = "startup timed out"
        logger.error(
            "init.timeout",
            extra={"timeout_seconds": STARTUP_TIMEOUT_SECONDS},
        )
        await dispose_engine(engine)
        raise RuntimeError("Application startup timed out") from e
    except Exception as e:
        app.state.init_error = str(e)
        logger.error("init.failed", extra={"error": str(e)}, exc_info=True)
        await dispose_engine(engine)
        raise

    app.state.init_done = True
    logger.info(
        "init.complete",
        extra={
            "output_dir": str(settings.output_dir_path),
            "environment": settings.environment,
        },
    )

    try:
        yield
    finally:
        await dispose_engine(engine)


def _docs_path(settings: Settings, path: str) -> str | None:
    return path if settings.enable_docs or settings.debug else None


_settings = get_settings()

app = fastapi.FastAPI(
    title="Certificate Generation API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=_docs_path(_settings, "/docs"),
    redoc_url=_docs_path(_settings, "/redoc"),
    openapi_url=_docs_path(_settings, "/openapi.json"),
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(SecurityHeadersMiddleware)

if _settings.allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
        max_age=600,
    )

# Added last so it runs first: every log line below carries the request id.
app.add_middleware(RequestContextMiddleware)

app.include_router(health_router)
app.include_router(certificates_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=_settings.port)
