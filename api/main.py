"""FastAPI application for the translation booking API."""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import fastapi
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import get_settings
from core.database import (
    create_engine,
    create_session_maker,
    dispose_engine,
    init_db,
)
from core.http_client import close_http_client
from core.logger import configure_logging
from core.middleware import SecurityHeadersMiddleware
from core.ratelimit import limiter, rate_limit_exceeded_handler
from core.telemetry import RequestTimingMiddleware
from routes import admin_router, health_router, jobs_router

configure_logging()
logger = logging.getLogger(__name__)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unhandled exceptions."""
    logger.exception(
        "unhandled.exception",
        extra={
            "exc_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected error occurred. Please try again."},
    )


async def validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Malformed or incomplete request bodies and query strings are 400s."""
    if not isinstance(exc, RequestValidationError):
        return JSONResponse(status_code=500, content={"error": "Unexpected error"})

    logger.warning(
        "request.validation_error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_count": len(exc.errors()),
        },
    )
    return JSONResponse(
        status_code=400,
        content={
            "message": "Validation failed",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """HTTPException bodies use the API's ``{"message": ...}`` shape."""
    if not isinstance(exc, StarletteHTTPException):
        return JSONResponse(status_code=500, content={"error": "Unexpected error"})
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _run_migrations() -> None:
    """Upgrade the schema with `python cli.py migrate` in a child process.

    Alembic runs on a synchronous psycopg2 engine, which must not share the
    server's event loop.
    """
    proc = await asyncio.create_subprocess_exec(
        sys.executable,
        "cli.py",
        "migrate",
        cwd=Path(__file__).parent,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
    )
    _, stderr = await proc.communicate()

    if proc.returncode != 0:
        message = stderr.decode(errors="replace").strip()
        logger.error("migrations.failed", extra={"stderr": message[-2000:]})
        raise RuntimeError(f"Alembic migration failed:\n{message}")

    logger.info("migrations.complete")


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Connect, migrate, then flip init_done so /ready starts answering 200."""
    settings = get_settings()
    state = app.state
    state.engine = create_engine()
    state.session_maker = create_session_maker(state.engine)
    state.init_done = False
    state.init_error = None

    step = "database"
    try:
        async with asyncio.timeout(60):
            await init_db(state.engine)

        # SQLite databases are throwaway; their schema comes from create_all
        if not settings.uses_sqlite:
            step = "migrations"
            async with asyncio.timeout(120):
                await _run_migrations()
    except TimeoutError as e:
        state.init_error = f"{step} step timed out"
        logger.error("init.timeout", extra={"step": step})
        raise RuntimeError("Application startup timed out") from e
    except Exception as e:
        state.init_error = str(e)
        logger.error("init.failed", extra={"step": step}, exc_info=True)
        raise

    state.init_done = True
    logger.info("init.complete")

    try:
        yield
    finally:
        await close_http_client()
        await dispose_engine(state.engine)


_settings = get_settings()

app = fastapi.FastAPI(
    title="Translation Booking API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if _settings.enable_docs or _settings.debug else None,
    redoc_url="/redoc" if _settings.enable_docs or _settings.debug else None,
    openapi_url=("/openapi.json" if _settings.enable_docs or _settings.debug else None),
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestTimingMiddleware)

app.include_router(health_router)
app.include_router(jobs_router)
app.include_router(admin_router)
