"""Logging setup for the booking API (structlog over stdlib logging).

LOG_FORMAT=json gives one JSON object per line for the log shipper;
anything else gives colored console output. uvicorn, sqlalchemy and httpx
log through the same processor chain, and customer contact details are
masked before a line is rendered.

Usage:
    from core import get_logger
    logger = get_logger(__name__)
    logger.info("job.accepted", job_id=42, translator_id=7)
"""

import logging
import os
import sys

import structlog
from structlog.types import EventDict, Processor

# Traces are exported only when an OTLP endpoint is configured
_TELEMETRY_ENABLED = bool(os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"))

# Event keys that may carry a customer's or translator's contact details
_CONTACT_KEYS = frozenset({"email", "user_email", "to", "mobile", "phone"})

_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "aiosqlite")


def _mask(value: str) -> str:
    if "@" in value:
        local, _, domain = value.partition("@")
        return f"{local[:1]}***@{domain}"
    return f"***{value[-3:]}" if len(value) > 3 else "***"


def _redact_contact_details(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    for key in _CONTACT_KEYS.intersection(event_dict):
        value = event_dict[key]
        if isinstance(value, str) and value:
            event_dict[key] = _mask(value)
    return event_dict


def _add_trace_ids(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Attach the active OpenTelemetry trace and span ids, if any."""
    if not _TELEMETRY_ENABLED:
        return event_dict

    from opentelemetry import trace

    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def _get_log_level() -> int:
    return getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)


def _is_json_format() -> bool:
    log_format = os.environ.get("LOG_FORMAT", "").lower()
    if log_format in ("json", "console"):
        return log_format == "json"
    # Deployments that export traces also ship logs
    return _TELEMETRY_ENABLED


def configure_logging() -> None:
    """Route structlog and stdlib logging to stdout. Safe to call twice."""
    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.stdlib.ExtraAdder(),
        _redact_contact_details,
        _add_trace_ids,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if _is_json_format()
        else structlog.dev.ConsoleRenderer(
            colors=True, exception_formatter=structlog.dev.plain_traceback
        )
    )

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_get_log_level())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.stdlib.get_logger(name)
