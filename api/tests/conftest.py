"""Pytest configuration and shared fixtures.

This module provides:
- A throwaway SQLite database per test (aiosqlite, tables from the models)
- Async session fixtures for repository/service tests
- FastAPI test clients authenticated as admin, customer or translator
- Settings, wide event and rate limiter resets between tests
"""

# Set environment variables BEFORE any imports that trigger Settings validation
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_booking.db")
os.environ["DEBUG"] = "true"

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from core.config import clear_settings_cache
from core.database import Base
from core.ratelimit import limiter
from core.wide_event import init_wide_event
from models import User
from tests.factories import (
    AdminUserFactory,
    CustomerFactory,
    LanguageFactory,
    TranslatorFactory,
    create_async,
    issue_token,
)

# =============================================================================
# Per-test housekeeping
# =============================================================================


@pytest.fixture(autouse=True)
def setup_wide_event():
    """Give every test a wide event, as RequestTimingMiddleware does per request.

    Without it the fields services record (job_id, job_status) are dropped.
    """
    init_wide_event()
    yield


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None]:
    """Reset settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Generator[None]:
    limiter.enabled = False
    yield
    limiter.enabled = True


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Fresh SQLite database file with the full schema."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'booking.db'}",
        poolclass=NullPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session for arranging data and calling services directly.

    Route tests must commit what they arrange here, since the app reads
    through its own sessions.
    """
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def language(db_session: AsyncSession):
    return await create_async(LanguageFactory, db_session, name="Swedish")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    return await create_async(AdminUserFactory, db_session)


@pytest_asyncio.fixture
async def customer(db_session: AsyncSession) -> User:
    return await create_async(CustomerFactory, db_session)


@pytest_asyncio.fixture
async def translator(db_session: AsyncSession, language) -> User:
    return await create_async(
        TranslatorFactory, db_session, language_ids=[language.id]
    )


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================
#
# The role clients commit everything arranged before them (the shared
# language included). Data arranged afterwards must be committed by the test.


@pytest_asyncio.fixture(scope="function")
async def app(test_engine: AsyncEngine) -> AsyncGenerator[FastAPI]:
    """FastAPI app wired to the test database (lifespan is not run)."""
    from main import app as fastapi_app

    fastapi_app.state.engine = test_engine
    fastapi_app.state.session_maker = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    fastapi_app.state.init_done = True
    fastapi_app.state.init_error = None

    yield fastapi_app


def _client(app: FastAPI, token: str | None = None) -> AsyncClient:
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers=headers,
    )


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Unauthenticated client."""
    async with _client(app) as ac:
        yield ac


@pytest_asyncio.fixture(scope="function")
async def admin_client(
    app: FastAPI, db_session: AsyncSession, admin: User, language
) -> AsyncGenerator[AsyncClient]:
    token = issue_token(admin)
    await db_session.commit()
    async with _client(app, token) as ac:
        yield ac


@pytest_asyncio.fixture(scope="function")
async def customer_client(
    app: FastAPI, db_session: AsyncSession, customer: User, language
) -> AsyncGenerator[AsyncClient]:
    token = issue_token(customer)
    await db_session.commit()
    async with _client(app, token) as ac:
        yield ac


@pytest_asyncio.fixture(scope="function")
async def translator_client(
    app: FastAPI, db_session: AsyncSession, translator: User
) -> AsyncGenerator[AsyncClient]:
    token = issue_token(translator)
    await db_session.commit()
    async with _client(app, token) as ac:
        yield ac


# =============================================================================
# Utility Fixtures
# =============================================================================


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio backend for anyio (required by httpx)."""
    return "asyncio"
