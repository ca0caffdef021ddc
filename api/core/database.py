"""Database engine, session factory and health probes.

Any PostgreSQL reachable through a connection string works, including hosted
providers such as Supabase. A plain ``postgresql://`` URL is upgraded to the
asyncpg driver; set DB_BEHIND_POOLER=true when connecting through a
transaction-mode pooler (PgBouncer, Supavisor) so asyncpg does not cache
prepared statements.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated, Any, NamedTuple, TypedDict

from fastapi import Depends, Request
from sqlalchemy import event, make_url, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import QueuePool

from core.config import get_settings

logger = logging.getLogger(__name__)

ASYNC_DRIVER = "postgresql+asyncpg"

PING_TIMEOUT_SECONDS = 30


class Base(DeclarativeBase):
    pass


class PoolStatus(NamedTuple):
    """Snapshot of QueuePool counters."""

    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int


class HealthCheckResult(TypedDict):
    database: bool
    pool: PoolStatus | None


def async_database_url(database_url: str) -> str:
    """Force the asyncpg driver onto a PostgreSQL URL."""
    url = make_url(database_url)
    if url.drivername in ("postgres", "postgresql", "postgresql+psycopg2"):
        url = url.set(drivername=ASYNC_DRIVER)
    return url.render_as_string(hide_password=False)


def _connect_args() -> dict[str, Any]:
    settings = get_settings()
    args: dict[str, Any] = {
        "server_settings": {
            "statement_timeout": str(settings.db_statement_timeout_ms),
            "application_name": "certificate-api",
        }
    }
    if settings.db_behind_pooler:
        args["statement_cache_size"] = 0
    return args


def _warn_on_pool_overflow(engine: AsyncEngine) -> None:
    pool = engine.sync_engine.pool
    if not isinstance(pool, QueuePool):
        return

    @event.listens_for(pool, "checkout")
    def _on_checkout(dbapi_conn, connection_record, connection_proxy):
        if pool.overflow() > 0:
            logger.warning(
                "db.pool.overflow",
                extra={
                    "db_pool_checked_out": pool.checkedout(),
                    "db_pool_size": pool.size(),
                    "db_pool_overflow_count": pool.overflow(),
                },
            )


def create_engine() -> AsyncEngine:
    """Build the application engine from settings."""
    settings = get_settings()

    engine = create_async_engine(
        async_database_url(settings.database_url),
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        connect_args=_connect_args(),
    )
    _warn_on_pool_overflow(engine)
    return engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_session_maker(request: Request) -> async_sessionmaker[AsyncSession]:
    """Session factory created at startup.

    Services that own their unit of work (open, write, commit) take the
    factory rather than a request-scoped session.
    """
    return request.app.state.session_maker


SessionMaker = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_maker)]


async def _ping(engine: AsyncEngine) -> None:
    async with asyncio.timeout(PING_TIMEOUT_SECONDS):
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.rollback()


async def init_db(engine: AsyncEngine) -> None:
    """Startup connectivity check. The schema is owned by Alembic."""
    logger.info("db.connectivity.verifying")
    await _ping(engine)
    logger.info("db.connectivity.verified")


async def check_db_connection(engine: AsyncEngine) -> None:
    """Raise if the database cannot answer ``SELECT 1`` within 30s."""
    await _ping(engine)


async def dispose_engine(engine: AsyncEngine) -> None:
    await engine.dispose()
    logger.info("db.engine.disposed")


def get_pool_status(engine: AsyncEngine) -> PoolStatus | None:
    """Counters for a QueuePool; None for other pool classes (e.g. NullPool)."""
    pool = engine.sync_engine.pool
    if not isinstance(pool, QueuePool):
        return None
    return PoolStatus(
        pool_size=pool.size(),
        checked_out=pool.checkedout(),
        overflow=pool.overflow(),
        checked_in=pool.checkedin(),
    )


async def comprehensive_health_check(engine: AsyncEngine) -> HealthCheckResult:
    """Connectivity plus pool counters. Never raises."""
    try:
        await check_db_connection(engine)
        reachable = True
    except Exception:
        logger.warning("db.health_check.failed", exc_info=True)
        reachable = False

    return {"database": reachable, "pool": get_pool_status(engine)}
