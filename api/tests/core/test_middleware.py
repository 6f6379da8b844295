"""Unit tests for core.middleware module.

Tests ASGI middleware:
- SecurityHeadersMiddleware adds security headers to HTTP responses
- SecurityHeadersMiddleware skips non-HTTP scopes and the docs
- RequestContextMiddleware adds request headers and logs the wide event
"""

from unittest.mock import patch

import pytest

from core.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from core.wide_event import set_wide_event_fields


async def _noop_receive():
    return {"type": "http.request", "body": b""}


async def _make_app_that_sends_response(scope, receive, send):
    await send({"type": "http.response.start", "status": 200, "headers": []})
    await send({"type": "http.response.body", "body": b"OK"})


def _app_with_status(status: int, user_id: str | None = None):
    async def app(scope, receive, send):
        if user_id:
            set_wide_event_fields(user_id=user_id)
        await send({"type": "http.response.start", "status": status, "headers": []})
        await send({"type": "http.response.body", "body": b""})

    return app


async def _run(middleware, path: str = "/api/v1/ages") -> list[dict]:
    sent_messages: list[dict] = []

    async def mock_send(message):
        sent_messages.append(message)

    await middleware(
        {"type": "http", "method": "GET", "path": path}, _noop_receive, mock_send
    )
    return sent_messages


@pytest.mark.unit
class TestSecurityHeadersMiddleware:
    async def test_adds_security_headers(self):
        sent = await _run(SecurityHeadersMiddleware(_make_app_that_sends_response))

        header_names = {h[0] for h in sent[0]["headers"]}
        assert b"x-content-type-options" in header_names
        assert b"x-frame-options" in header_names
        assert b"content-security-policy" in header_names
        assert b"strict-transport-security" in header_names

    async def test_skips_docs(self):
        sent = await _run(
            SecurityHeadersMiddleware(_make_app_that_sends_response), path="/docs"
        )

        assert sent[0]["headers"] == []

    async def test_skips_non_http_scopes(self):
        called = False

        async def inner_app(scope, receive, send):
            nonlocal called
            called = True

        middleware = SecurityHeadersMiddleware(inner_app)

        await middleware({"type": "websocket"}, _noop_receive, lambda msg: None)
        assert called


@pytest.mark.unit
class TestRequestContextMiddleware:
    async def test_adds_request_headers(self):
        sent = await _run(RequestContextMiddleware(_app_with_status(200)))

        header_names = {h[0] for h in sent[0]["headers"]}
        assert b"x-request-id" in header_names
        assert b"x-request-duration-ms" in header_names

    async def test_anonymous_success_is_not_logged(self):
        with patch("core.middleware.logger") as mock_logger:
            await _run(RequestContextMiddleware(_app_with_status(200)))

        mock_logger.info.assert_not_called()

    async def test_error_is_logged(self):
        with patch("core.middleware.logger") as mock_logger:
            await _run(RequestContextMiddleware(_app_with_status(404)))

        mock_logger.info.assert_called_once()
        event = mock_logger.info.call_args.kwargs
        assert event["http_status_code"] == 404
        assert event["outcome"] == "error"

    async def test_authenticated_request_is_logged(self):
        with patch("core.middleware.logger") as mock_logger:
            await _run(RequestContextMiddleware(_app_with_status(200, user_id="u-1")))

        event = mock_logger.info.call_args.kwargs
        assert event["user_id"] == "u-1"
        assert event["outcome"] == "success"

    async def test_exception_is_logged_and_reraised(self):
        async def failing_app(scope, receive, send):
            raise RuntimeError("boom")

        with (
            patch("core.middleware.logger") as mock_logger,
            pytest.raises(RuntimeError),
        ):
            await _run(RequestContextMiddleware(failing_app))

        event = mock_logger.info.call_args.kwargs
        assert event["exception_type"] == "RuntimeError"
