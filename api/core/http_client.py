"""Shared HTTP client for notification provider requests.

Provides a connection-pooled ``httpx.AsyncClient`` used for the push, SMS
and mail provider APIs.
"""

from __future__ import annotations

import asyncio

import httpx

from core.config import get_settings

_http_client: httpx.AsyncClient | None = None
_http_client_lock = asyncio.Lock()


async def get_http_client() -> httpx.AsyncClient:
    """Get or create the shared provider HTTP client.

    Uses connection pooling to reduce overhead from per-request client creation.
    Guarded by an asyncio.Lock so concurrent first calls create one client.
    """
    global _http_client

    if _http_client is not None and not _http_client.is_closed:
        return _http_client

    async with _http_client_lock:
        if _http_client is not None and not _http_client.is_closed:
            return _http_client

        settings = get_settings()
        _http_client = httpx.AsyncClient(
            timeout=settings.http_timeout,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        )
        return _http_client


async def close_http_client() -> None:
    """Close the shared HTTP client (called on application shutdown)."""
    global _http_client
    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
    _http_client = None
