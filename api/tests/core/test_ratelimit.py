"""Unit tests for core.ratelimit module."""

import json
import logging
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from slowapi.errors import RateLimitExceeded

from core.ratelimit import _get_request_identifier, rate_limit_exceeded_handler
from tests.factories import ADMIN_ID


def _exceeded(limit: str = "10 per 1 minute", retry_after: int = 30):
    rate_limit = MagicMock(error_message=None, limit=limit)
    exc = RateLimitExceeded(rate_limit)
    object.__setattr__(exc, "retry_after", retry_after)
    return exc


def _request(**state) -> SimpleNamespace:
    return SimpleNamespace(state=SimpleNamespace(**state))


@pytest.mark.unit
class TestRequestIdentifier:
    def test_logged_user_is_keyed_by_id(self):
        with patch("core.ratelimit.get_remote_address") as remote:
            key = _get_request_identifier(_request(user_id=ADMIN_ID))

        assert key == f"user:{ADMIN_ID}"
        remote.assert_not_called()

    @pytest.mark.parametrize("state", [{}, {"user_id": None}])
    def test_anonymous_request_uses_address(self, state):
        request = _request(**state)
        with patch(
            "core.ratelimit.get_remote_address", return_value="203.0.113.7"
        ) as remote:
            key = _get_request_identifier(request)

        assert key == "203.0.113.7"
        remote.assert_called_once_with(request)


@pytest.mark.unit
class TestRateLimitExceededHandler:
    def test_answers_429_with_retry_after(self):
        response = rate_limit_exceeded_handler(
            _request(user_id=ADMIN_ID), _exceeded(retry_after=42)
        )

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
        body = json.loads(response.body)
        assert body["detail"].startswith("Rate limit exceeded")
        assert body["retry_after"] == "10 per 1 minute"

    def test_logs_the_throttled_identifier(self, caplog):
        with caplog.at_level(logging.WARNING, logger="core.ratelimit"):
            rate_limit_exceeded_handler(_request(user_id=ADMIN_ID), _exceeded())

        (record,) = [r for r in caplog.records if r.msg == "ratelimit.exceeded"]
        assert record.identifier == f"user:{ADMIN_ID}"
