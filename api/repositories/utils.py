"""Helpers shared by the booking repositories."""

import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.wide_event import set_wide_event_fields

logger = get_logger(__name__)

# Listing and matching queries slower than this are flagged on the request
SLOW_QUERY_THRESHOLD_MS = 500

P = ParamSpec("P")
R = TypeVar("R")
T = TypeVar("T")


def log_slow_query(
    operation_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Time a repository call and record slow or failing queries.

    Both cases land on the request's wide event under ``db_*`` keys; a slow
    query additionally gets its own warning line.

    Usage:
        @log_slow_query("list_open_jobs")
        async def list_open(self, translator: User) -> list[Job]:
            ...
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            started = time.perf_counter()

            def elapsed_ms() -> float:
                return round((time.perf_counter() - started) * 1000, 2)

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                set_wide_event_fields(
                    db_query_error=True,
                    db_operation=operation_name,
                    db_duration_ms=elapsed_ms(),
                    db_error_type=type(e).__name__,
                )
                raise

            duration_ms = elapsed_ms()
            if duration_ms > SLOW_QUERY_THRESHOLD_MS:
                logger.warning(
                    "db.query.slow", operation=operation_name, duration_ms=duration_ms
                )
                set_wide_event_fields(
                    db_slow_query=True,
                    db_operation=operation_name,
                    db_duration_ms=duration_ms,
                )
            return result

        return wrapper

    return decorator


_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


async def upsert_on_conflict(
    db: AsyncSession,
    model: type[T],
    values: dict[str, Any],
    index_elements: list[str],
    update_fields: list[str],
) -> None:
    """INSERT ... ON CONFLICT DO UPDATE on PostgreSQL or SQLite.

    Columns in ``update_fields`` that are missing from ``values`` are left
    untouched on conflict. Does not commit.
    """
    update_set = {name: values[name] for name in update_fields if name in values}
    if not update_set:
        raise ValueError(f"none of {update_fields} present in values")

    bind = db.get_bind()
    dialect = bind.dialect.name if bind else ""
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"upsert not supported for dialect {dialect!r}")

    stmt = insert(model).values(**values)
    await db.execute(
        stmt.on_conflict_do_update(index_elements=index_elements, set_=update_set)
    )
