"""Wide Event context for canonical log lines.

A request-scoped dict that routes and services enrich as a booking request
moves through the layers. RequestTimingMiddleware initializes it at request
start and emits it as a single ``request.completed`` line at the end.

Usage:
    from core.wide_event import set_job_context, set_wide_event_fields

    set_job_context(job.id, job.status.value)
    set_wide_event_fields(accept_refused="already booked")
"""

from contextvars import ContextVar
from typing import Any

_wide_event: ContextVar[dict[str, Any]] = ContextVar("wide_event")


def init_wide_event() -> dict[str, Any]:
    event: dict[str, Any] = {}
    _wide_event.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """The current event, or an empty dict outside a request."""
    return _wide_event.get({})


def set_wide_event_fields(**kwargs: Any) -> None:
    """Merge fields into the current event.

    Outside a request (CLI expiry run, tests without the fixture) there is
    no event and the fields are dropped.
    """
    event = _wide_event.get(None)
    if event is not None:
        event.update(kwargs)


def set_wide_event_field(key: str, value: Any) -> None:
    set_wide_event_fields(**{key: value})


def set_job_context(job_id: int, status: str | None = None, **extra: Any) -> None:
    """Tag the current request with the job it acts on.

    ``status`` is the job's status as the request leaves it; later calls in
    the same request overwrite earlier ones.
    """
    fields: dict[str, Any] = {"job_id": job_id, **extra}
    if status is not None:
        fields["job_status"] = status
    set_wide_event_fields(**fields)


def clear_wide_event() -> None:
    _wide_event.set({})
