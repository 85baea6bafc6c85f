"""Engine, request session and health probes for the bookings database.

Deployments run PostgreSQL through asyncpg. Tests and throwaway local runs
use SQLite through aiosqlite, with foreign keys switched on so translator
assignments cannot outlive their job.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from typing import Annotated, NamedTuple, TypedDict

from fastapi import Depends, Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import QueuePool

from core.config import get_settings
from core.telemetry import instrument_sqlalchemy_engine

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class PoolStatus(NamedTuple):
    """Connection pool status for health checks."""

    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int


class HealthCheckResult(TypedDict):
    """Return type for comprehensive_health_check."""

    database: bool
    pool: PoolStatus | None


def _install_listeners(engine: AsyncEngine) -> None:
    sync_engine = engine.sync_engine

    if sync_engine.dialect.name == "sqlite":

        @event.listens_for(sync_engine, "connect")
        def _enable_foreign_keys(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return

    pool = sync_engine.pool

    @event.listens_for(pool, "checkout")
    def _warn_on_overflow(dbapi_conn, connection_record, connection_proxy):
        # Past pool_size every checkout means a burst of booking traffic
        if isinstance(pool, QueuePool) and pool.overflow() > 0:
            logger.warning(
                "db.pool.overflow",
                extra={
                    "db_pool_size": pool.size(),
                    "db_pool_checked_out": pool.checkedout(),
                    "db_pool_overflow_count": pool.overflow(),
                },
            )


def create_engine() -> AsyncEngine:
    settings = get_settings()

    engine_kwargs: dict = {"echo": settings.db_echo}

    if not settings.uses_sqlite:
        engine_kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_pool_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            # asyncpg's ping uses Connection.transaction(), which conflicts
            # with its own transaction tracking; pool_recycle covers staleness.
            pool_pre_ping=False,
            connect_args={
                "server_settings": {
                    "statement_timeout": str(settings.db_statement_timeout_ms)
                }
            },
        )

    engine = create_async_engine(settings.database_url, **engine_kwargs)

    _install_listeners(engine)
    instrument_sqlalchemy_engine(engine)

    return engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def get_db(request: Request) -> AsyncGenerator[AsyncSession]:
    """One session per request; commit on success, roll back on error.

    Repositories and services only flush. A booking operation that raises
    leaves no partial job, assignment or distance row behind.
    """
    session_maker: async_sessionmaker[AsyncSession] = request.app.state.session_maker
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            try:
                await session.rollback()
            except Exception as rollback_err:
                logger.warning("db.rollback.failed", extra={"error": str(rollback_err)})
            raise


DbSession = Annotated[AsyncSession, Depends(get_db)]


async def init_db(engine: AsyncEngine) -> None:
    """Verify the database answers.

    PostgreSQL schemas are owned by Alembic. A SQLite database (local runs)
    gets its tables created from the ORM metadata instead.
    """
    await check_db_connection(engine)
    if engine.dialect.name == "sqlite":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("db.sqlite.schema_created")
    logger.info("db.connectivity.verified")


async def dispose_engine(engine: AsyncEngine) -> None:
    await engine.dispose()
    logger.info("db.engine.disposed")


async def check_db_connection(engine: AsyncEngine) -> None:
    """Verify database is reachable (30s timeout)."""
    async with asyncio.timeout(30):
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.rollback()


def get_pool_status(engine: AsyncEngine) -> PoolStatus | None:
    """Returns pool status, or None if pool is not a QueuePool."""
    pool = engine.sync_engine.pool

    if isinstance(pool, QueuePool):
        return PoolStatus(
            pool_size=pool.size(),
            checked_out=pool.checkedout(),
            overflow=pool.overflow(),
            checked_in=pool.checkedin(),
        )
    return None


async def comprehensive_health_check(engine: AsyncEngine) -> HealthCheckResult:
    """Run database connectivity and pool status checks."""
    result: HealthCheckResult = {"database": False, "pool": None}

    try:
        await check_db_connection(engine)
        result["database"] = True
    except Exception:
        logger.warning("db.health_check.failed", exc_info=True)

    result["pool"] = get_pool_status(engine)
    return result
