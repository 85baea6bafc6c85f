"""Tests for core database module."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool, QueuePool

from core.database import (
    PoolStatus,
    check_db_connection,
    comprehensive_health_check,
    create_session_maker,
    get_db,
    get_pool_status,
    init_db,
)

pytestmark = pytest.mark.unit


class TestPoolStatus:
    def test_creates_named_tuple(self):
        status = PoolStatus(pool_size=5, checked_out=2, overflow=1, checked_in=3)

        assert status.pool_size == 5
        assert status.checked_out == 2
        assert status.overflow == 1
        assert status.checked_in == 3


class TestGetPoolStatus:
    def test_queue_pool_reports_counts(self):
        pool = MagicMock(spec=QueuePool)
        pool.size.return_value = 5
        pool.checkedout.return_value = 1
        pool.overflow.return_value = 0
        pool.checkedin.return_value = 4
        engine = MagicMock()
        engine.sync_engine.pool = pool

        assert get_pool_status(engine) == PoolStatus(5, 1, 0, 4)

    def test_other_pools_return_none(self):
        engine = MagicMock()
        engine.sync_engine.pool = MagicMock(spec=NullPool)

        assert get_pool_status(engine) is None


class TestHealthCheck:
    async def test_sqlite_engine_is_healthy(self, test_engine):
        await check_db_connection(test_engine)

        result = await comprehensive_health_check(test_engine)
        assert result["database"] is True

    async def test_connection_failure_is_reported(self):
        engine = create_async_engine("sqlite+aiosqlite://", poolclass=NullPool)
        with patch(
            "core.database.check_db_connection",
            new_callable=AsyncMock,
            side_effect=ConnectionError("down"),
        ):
            result = await comprehensive_health_check(engine)

        assert result["database"] is False
        await engine.dispose()


class TestGetDb:
    def _request(self, session_maker):
        request = MagicMock()
        request.app.state.session_maker = session_maker
        return request

    async def test_commits_on_success(self):
        session = AsyncMock()
        session_maker = MagicMock()
        session_maker.return_value.__aenter__.return_value = session

        gen = get_db(self._request(session_maker))
        assert await gen.__anext__() is session
        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()

        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()

    async def test_rolls_back_and_reraises(self):
        session = AsyncMock()
        session_maker = MagicMock()
        session_maker.return_value.__aenter__.return_value = session

        gen = get_db(self._request(session_maker))
        await gen.__anext__()
        with pytest.raises(ValueError):
            await gen.athrow(ValueError("boom"))

        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()


class TestSessionMaker:
    async def test_objects_survive_commit(self, test_engine):
        maker = create_session_maker(test_engine)
        assert maker.kw["expire_on_commit"] is False
        assert maker.kw["autoflush"] is False


class TestInitDb:
    async def test_sqlite_gets_booking_tables(self, tmp_path):
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'fresh.db'}", poolclass=NullPool
        )
        try:
            await init_db(engine)
            async with engine.connect() as conn:
                tables = await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).get_table_names()
                )
        finally:
            await engine.dispose()

        assert {"jobs", "distances", "translator_jobs", "users"} <= set(tables)
