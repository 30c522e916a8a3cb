"""
TaskTrack Backend — Structured Request Log Middleware Tests
=============================================================

What we test:
    ✅ Exactly one JSON line per request, emitted before the handler runs
    ✅ Sentinel requestId when the header is missing
    ✅ ip is the raw forwarded chain, else the peer address
    ✅ Control passes downstream exactly once, even when logging fails
    ✅ Non-HTTP scopes pass straight through
"""

import json
import logging
from unittest.mock import AsyncMock, patch

import pytest

from app.middleware.logging import StructuredRequestLogMiddleware
from app.middleware.request_context import request_id_var


async def _noop_receive():
    return {"type": "http.request", "body": b"", "more_body": False}


async def _noop_send(message):
    pass


def _json_lines(caplog):
    return [
        json.loads(record.getMessage())
        for record in caplog.records
        if record.name == "tasktrack.requests"
    ]


class TestStructuredRequestLog:

    @pytest.mark.asyncio
    async def test_emits_one_line_before_handler(self, caplog, make_scope):
        caplog.set_level(logging.INFO, logger="tasktrack.requests")
        seen_at_handler = []

        async def handler(scope, receive, send):
            seen_at_handler.append(len(_json_lines(caplog)))

        middleware = StructuredRequestLogMiddleware(handler)
        await middleware(
            make_scope("GET", "/api/health", headers={"x-request-id": "abc123"},
                       client=("10.0.0.5", 4000)),
            _noop_receive,
            _noop_send,
        )

        assert seen_at_handler == [1]
        lines = _json_lines(caplog)
        assert len(lines) == 1
        assert lines[0]["requestId"] == "abc123"
        assert lines[0]["ip"] == "10.0.0.5"
        assert lines[0]["method"] == "GET"
        assert lines[0]["path"] == "/api/health"

    @pytest.mark.asyncio
    async def test_missing_request_id_uses_sentinel(self, caplog, make_scope):
        caplog.set_level(logging.INFO, logger="tasktrack.requests")
        middleware = StructuredRequestLogMiddleware(AsyncMock())

        await middleware(make_scope(), _noop_receive, _noop_send)

        assert _json_lines(caplog)[0]["requestId"] == "no-rid"
        assert request_id_var.get() == "no-rid"

    @pytest.mark.asyncio
    async def test_forwarded_chain_and_user_agent(self, caplog, make_scope):
        caplog.set_level(logging.INFO, logger="tasktrack.requests")
        middleware = StructuredRequestLogMiddleware(AsyncMock())

        await middleware(
            make_scope(headers={"x-forwarded-for": "1.2.3.4, 5.6.7.8", "user-agent": "curl/8.14.1"}),
            _noop_receive,
            _noop_send,
        )

        line = _json_lines(caplog)[0]
        assert line["ip"] == "1.2.3.4, 5.6.7.8"
        assert line["userAgent"] == "curl/8.14.1"

    @pytest.mark.asyncio
    async def test_logging_failure_does_not_block_request(self, make_scope):
        downstream = AsyncMock()
        middleware = StructuredRequestLogMiddleware(downstream)

        with patch("app.middleware.logging.build_log_record", side_effect=TypeError("boom")):
            await middleware(make_scope(), _noop_receive, _noop_send)

        downstream.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_downstream_called_exactly_once(self, make_scope):
        downstream = AsyncMock()
        middleware = StructuredRequestLogMiddleware(downstream)
        scope = make_scope()

        await middleware(scope, _noop_receive, _noop_send)

        downstream.assert_awaited_once_with(scope, _noop_receive, _noop_send)

    @pytest.mark.asyncio
    async def test_lifespan_scope_passes_through(self, caplog):
        caplog.set_level(logging.INFO, logger="tasktrack.requests")
        downstream = AsyncMock()
        middleware = StructuredRequestLogMiddleware(downstream)

        await middleware({"type": "lifespan"}, _noop_receive, _noop_send)

        downstream.assert_awaited_once()
        assert _json_lines(caplog) == []
