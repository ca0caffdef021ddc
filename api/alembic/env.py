from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import Connection, create_engine, make_url, text

# api/ holds the application modules
sys.path.insert(0, str(Path(__file__).parent.parent))

import models  # noqa: F401  (registers CertificateRecord on Base.metadata)
from alembic import context
from core.config import get_settings
from core.database import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

logger = logging.getLogger("alembic.env")

CERTIFICATE_MIGRATION_LOCK = 581203746
LOCK_WAIT_SECONDS = 120
LOCK_POLL_SECONDS = 2


def migration_url() -> str:
    """DATABASE_URL rewritten for the synchronous psycopg2 driver.

    Accepts both ``postgresql://`` (as copied from a hosted provider such as
    Supabase) and ``postgresql+asyncpg://`` URLs.
    """
    url = make_url(get_settings().database_url)
    return url.set(drivername="postgresql+psycopg2").render_as_string(
        hide_password=False
    )


@contextmanager
def certificate_migration_lock(connection: Connection) -> Iterator[None]:
    """Hold a PostgreSQL advisory lock so only one replica migrates at a time."""
    deadline = time.monotonic() + LOCK_WAIT_SECONDS
    params = {"key": CERTIFICATE_MIGRATION_LOCK}

    while not connection.execute(
        text("SELECT pg_try_advisory_lock(:key)"), params
    ).scalar():
        if time.monotonic() >= deadline:
            raise RuntimeError(
                f"Migration lock not acquired after {LOCK_WAIT_SECONDS}s; "
                "another deploy may still be migrating."
            )
        logger.debug("migration.lock.waiting")
        time.sleep(LOCK_POLL_SECONDS)

    # Session-level lock survives this commit; Alembic opens its own transaction.
    connection.commit()
    logger.info("migration.lock.acquired")
    try:
        yield
    finally:
        connection.execute(text("SELECT pg_advisory_unlock(:key)"), params)
        logger.info("migration.lock.released")


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    context.configure(
        url=migration_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(migration_url())

    with engine.connect() as connection, certificate_migration_lock(connection):
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
