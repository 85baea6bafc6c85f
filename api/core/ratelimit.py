"""Per-user request limits for the booking endpoints (slowapi).

Counters live in RATELIMIT_STORAGE_URI. Several API replicas must share a
Redis store there; memory:// counts per process.
"""

import logging

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

if not settings.debug and settings.ratelimit_storage_uri == "memory://":
    logger.warning(
        "Using in-memory rate limiting outside debug mode. "
        "This does NOT work correctly with multiple workers/replicas. "
        "Set RATELIMIT_STORAGE_URI to a Redis URL for distributed rate limiting."
    )


def _get_request_identifier(request: Request) -> str:
    """Rate-limit key: the authenticated user when known, else the client IP.

    request.state.user_id is set by core.auth.require_auth, so endpoints
    that authenticate are limited per user.
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"

    return get_remote_address(request)


_using_redis = settings.ratelimit_storage_uri.startswith("redis://")

limiter = Limiter(
    key_func=_get_request_identifier,
    default_limits=["100/minute"],
    storage_uri=settings.ratelimit_storage_uri,
    # Fall back to memory when Redis is temporarily unavailable
    in_memory_fallback_enabled=_using_redis,
    key_prefix="booking:",
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """429 in the same {"message": ...} shape as the other API errors."""
    logger.warning(
        "Rate limit exceeded for %s: %s", _get_request_identifier(request), exc.detail
    )
    return JSONResponse(
        status_code=429,
        content={
            "message": "Rate limit exceeded. Please slow down.",
            "retry_after": exc.detail,
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


# Notification resends hit paid providers
NOTIFICATION_LIMIT = "10/minute"

WRITE_LIMIT = "30/minute"

READ_LIMIT = "60/minute"
