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

import models  # noqa: F401  (registers the booking tables on Base.metadata)
from alembic import context
from core.config import get_settings
from core.database import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

logger = logging.getLogger("alembic.env")

# Shared by every API replica that starts at the same time
_MIGRATION_LOCK_KEY = 518203347
_LOCK_WAIT_SECONDS = 120

# Alembic drives a blocking connection; swap the async drivers out
_SYNC_DRIVERS = {"postgresql+asyncpg": "postgresql+psycopg2", "sqlite+aiosqlite": "sqlite"}


def _sync_database_url() -> str:
    url = make_url(get_settings().database_url)
    driver = _SYNC_DRIVERS.get(url.drivername, url.drivername)
    return url.set(drivername=driver).render_as_string(hide_password=False)


@contextmanager
def _migration_lock(connection: Connection) -> Iterator[None]:
    """Hold a PostgreSQL advisory lock so only one replica migrates."""
    if connection.dialect.name != "postgresql":
        yield
        return

    deadline = time.monotonic() + _LOCK_WAIT_SECONDS
    while not connection.execute(
        text("SELECT pg_try_advisory_lock(:key)"), {"key": _MIGRATION_LOCK_KEY}
    ).scalar():
        if time.monotonic() > deadline:
            raise RuntimeError(
                f"Migration lock not acquired within {_LOCK_WAIT_SECONDS}s"
            )
        logger.info("Another replica is migrating; waiting")
        time.sleep(2)
    # End the implicit transaction so Alembic opens its own
    connection.commit()

    try:
        yield
    finally:
        connection.execute(
            text("SELECT pg_advisory_unlock(:key)"), {"key": _MIGRATION_LOCK_KEY}
        )
        connection.commit()


def run_migrations_offline() -> None:
    context.configure(
        url=_sync_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(_sync_database_url())

    with engine.connect() as connection, _migration_lock(connection):
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite needs batch mode to alter tables
            render_as_batch=True,
        )
        with context.begin_transaction():
            context.run_migrations()

    engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
