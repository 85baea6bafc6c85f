"""Request timing, tracing decorators and business events.

OpenTelemetry is optional: spans are only created when an OTLP endpoint is
configured (OTEL_EXPORTER_OTLP_ENDPOINT). Without it the decorators are
pass-through and the wide event is still emitted as a log line.
"""

import os
import time
import uuid
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import get_logger
from core.wide_event import clear_wide_event, get_wide_event, init_wide_event

logger = get_logger(__name__)

TELEMETRY_ENABLED = bool(os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"))

SERVICE_NAME = os.getenv("SERVICE_NAME", "booking-api")
SERVICE_VERSION = os.getenv("SERVICE_VERSION", "0.1.0")

if TELEMETRY_ENABLED:
    from opentelemetry import trace
    from opentelemetry.trace import Status, StatusCode

    tracer = trace.get_tracer(__name__)
else:
    trace = None
    tracer = None
    Status = None
    StatusCode = None

P = ParamSpec("P")
R = TypeVar("R")

# Requests slower than this are always logged
SLOW_REQUEST_MS = 1000


def _should_emit(
    event: dict[str, Any], status_code: int | None, duration_ms: float
) -> bool:
    return bool(
        status_code is None
        or status_code >= 400
        or duration_ms > SLOW_REQUEST_MS
        or event.get("user_id")
        or event.get("job_id")
    )


def _emit(event: dict[str, Any], status_code: int | None) -> None:
    if status_code is not None and status_code >= 500:
        logger.error("request.completed", **event)
    elif status_code is not None and status_code >= 400:
        logger.warning("request.completed", **event)
    else:
        logger.info("request.completed", **event)


def instrument_sqlalchemy_engine(engine: Any) -> None:
    """Add OpenTelemetry instrumentation for query tracing."""
    if not TELEMETRY_ENABLED:
        return

    try:
        from opentelemetry.instrumentation.sqlalchemy import (
            SQLAlchemyInstrumentor,
        )

        SQLAlchemyInstrumentor().instrument(
            engine=engine.sync_engine,
            enable_commenter=True,
        )
        logger.info("sqlalchemy.instrumentation.enabled")
    except Exception as e:
        logger.warning("sqlalchemy.instrumentation.failed", error=str(e))


class RequestTimingMiddleware:
    """Times each request and emits its wide event as one log line.

    A request is emitted when it failed, was slow, was authenticated or
    touched a job. Anonymous fast successes (health probes) are not.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        request_id = str(uuid.uuid4())

        wide_event = init_wide_event()
        wide_event["service_name"] = SERVICE_NAME
        wide_event["service_version"] = SERVICE_VERSION
        wide_event["request_id"] = request_id
        wide_event["http_method"] = method
        wide_event["http_path"] = path

        response_status: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal response_status

            if message.get("type") == "http.response.start":
                response_status = int(message.get("status", 0))
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                duration_ms = (time.perf_counter() - start_time) * 1000
                headers.append(
                    (b"x-request-duration-ms", f"{duration_ms:.2f}".encode())
                )
                headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers

            elif message.get("type") == "http.response.body" and not message.get(
                "more_body", False
            ):
                duration_ms = (time.perf_counter() - start_time) * 1000
                route = scope.get("route")
                route_path = getattr(route, "path", None) or path

                if TELEMETRY_ENABLED and trace is not None and response_status:
                    span = trace.get_current_span()
                    span.set_attribute("http.route", route_path)
                    span.set_attribute("http.status_code", response_status)
                    if response_status >= 500 and Status is not None:
                        span.set_status(
                            Status(StatusCode.ERROR, f"HTTP {response_status}")
                        )

                event = get_wide_event()
                event["http_route"] = route_path
                event["http_status_code"] = response_status
                event["duration_ms"] = round(duration_ms, 2)
                event["outcome"] = (
                    "success" if response_status and response_status < 400 else "error"
                )

                if _should_emit(event, response_status, duration_ms):
                    _emit(event, response_status)

                clear_wide_event()

            await send(message)

        try:
            if TELEMETRY_ENABLED and tracer:
                with tracer.start_as_current_span(
                    f"{method} {path}",
                    attributes={
                        "http.method": method,
                        "http.route": path,
                        "request.id": request_id,
                        "service.name": SERVICE_NAME,
                    },
                ):
                    await self.app(scope, receive, send_wrapper)
                    return

            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            event = get_wide_event()
            event["duration_ms"] = round(duration_ms, 2)
            event["outcome"] = "exception"
            event["exception_type"] = type(exc).__name__
            _emit(event, 500)
            clear_wide_event()
            raise


def _traced_span(
    span_name: str,
    attributes: dict[str, str],
    *,
    record_exceptions: bool = False,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Wrap a coroutine function in an OpenTelemetry span.

    Args:
        span_name: Name for the span.
        attributes: Initial span attributes (dependency.* or operation.*).
        record_exceptions: Record the exception on the span (business
            operations) instead of only tagging it (dependencies, whose
            exception propagates to the parent span anyway).
    """
    prefix = next(iter(attributes)).split(".")[0]

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            if not TELEMETRY_ENABLED or not tracer:
                return await func(*args, **kwargs)

            with tracer.start_as_current_span(span_name, attributes=attributes) as span:
                start_time = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                    span.set_attribute(f"{prefix}.success", True)
                    return result
                except Exception as e:
                    span.set_attribute(f"{prefix}.success", False)
                    if record_exceptions:
                        span.record_exception(e)
                    else:
                        span.set_attribute(f"{prefix}.error", str(e))
                    if Status is not None and StatusCode is not None:
                        span.set_status(Status(StatusCode.ERROR, str(e)))
                    raise
                finally:
                    duration_ms = (time.perf_counter() - start_time) * 1000
                    span.set_attribute(f"{prefix}.duration_ms", duration_ms)

        return wrapper

    return decorator


def track_dependency(name: str, dependency_type: str = "custom"):
    """Decorator to track external dependency calls (push, SMS, mail APIs)."""
    return _traced_span(
        name,
        {"dependency.type": dependency_type, "dependency.name": name},
        record_exceptions=False,
    )


def track_operation(operation_name: str):
    """Decorator to track booking use cases."""
    return _traced_span(
        operation_name,
        {"operation.name": operation_name},
        record_exceptions=True,
    )


def log_business_event(
    name: str, value: float, properties: dict[str, str] | None = None
) -> None:
    """Log a structured business event (bookings created, jobs accepted...).

    This is a log line, not a metric; count occurrences in the log store.
    """
    logger.info("business.event", event_name=name, value=value, **(properties or {}))
