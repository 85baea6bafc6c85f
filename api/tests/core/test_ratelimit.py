"""Unit tests for core.ratelimit: limiter keys and the 429 response."""

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import Request
from slowapi.errors import RateLimitExceeded

from core.ratelimit import (
    NOTIFICATION_LIMIT,
    WRITE_LIMIT,
    _get_request_identifier,
    rate_limit_exceeded_handler,
)


def _request(user_id: int | None) -> Request:
    request = MagicMock(spec=Request)
    request.state = MagicMock(spec=[])
    if user_id is not None:
        request.state.user_id = user_id
    return request


def _exceeded(limit: str, retry_after: int) -> RateLimitExceeded:
    limit_obj = MagicMock(error_message=None, limit=limit)
    exc = RateLimitExceeded(limit_obj)
    object.__setattr__(exc, "retry_after", retry_after)
    return exc


@pytest.mark.unit
class TestRequestIdentifier:
    def test_translator_is_keyed_by_user(self):
        assert _get_request_identifier(_request(user_id=42)) == "user:42"

    @patch("core.ratelimit.get_remote_address", return_value="10.0.0.8")
    def test_anonymous_request_is_keyed_by_ip(self, mock_remote):
        request = _request(user_id=None)

        assert _get_request_identifier(request) == "10.0.0.8"
        mock_remote.assert_called_once_with(request)


@pytest.mark.unit
class TestLimitExceeded:
    def test_returns_message_and_retry_after(self):
        response = rate_limit_exceeded_handler(
            _request(user_id=3), _exceeded(NOTIFICATION_LIMIT, 45)
        )

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "45"
        body = json.loads(response.body)
        assert body["message"] == "Rate limit exceeded. Please slow down."
        assert "retry_after" in body


def test_resends_are_limited_harder_than_writes():
    assert int(NOTIFICATION_LIMIT.split("/")[0]) < int(WRITE_LIMIT.split("/")[0])
