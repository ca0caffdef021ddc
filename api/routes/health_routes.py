"""Liveness, readiness and status endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, Request
from starlette import status

from core.database import check_db_connection, comprehensive_health_check
from core.ratelimit import HEALTH_LIMIT, limiter
from schemas import (
    DetailedHealthResponse,
    HealthResponse,
    PoolStatusResponse,
    ReadyResponse,
    RootResponse,
)

SERVICE_NAME = "certificate-api"

router = APIRouter(tags=["health"])


def _startup_problem(request: Request) -> str | None:
    state = request.app.state
    init_error = getattr(state, "init_error", None)
    if init_error:
        return f"Initialization failed: {init_error}"
    if not getattr(state, "init_done", False):
        return "Starting"
    return None


@router.get("/", response_model=RootResponse)
async def root() -> RootResponse:
    return RootResponse(message="Certificate Generation API is running")


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness: the process is serving requests. Touches nothing else."""
    return HealthResponse(status="ok", timestamp=datetime.now(UTC))


@router.get("/health/detailed", response_model=DetailedHealthResponse)
@limiter.limit(HEALTH_LIMIT)
async def health_detailed(request: Request) -> DetailedHealthResponse:
    """Database reachability and pool counters.

    Always 200; read ``status``/``database`` for the verdict.
    """
    result = await comprehensive_health_check(request.app.state.engine)
    pool = result["pool"]

    return DetailedHealthResponse(
        status="healthy" if result["database"] else "unhealthy",
        service=SERVICE_NAME,
        database=result["database"],
        pool=PoolStatusResponse(**pool._asdict()) if pool is not None else None,
    )


@router.get(
    "/ready",
    response_model=ReadyResponse,
    responses={503: {"description": "Still starting, startup failed, or DB down"}},
)
@limiter.limit(HEALTH_LIMIT)
async def ready(request: Request) -> ReadyResponse:
    """Readiness: startup finished and the database answers."""
    problem = _startup_problem(request)
    if problem is not None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail=problem)

    try:
        await check_db_connection(request.app.state.engine)
    except Exception as e:
        raise HTTPException(
            status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable"
        ) from e

    return ReadyResponse(status="ready", service=SERVICE_NAME)
