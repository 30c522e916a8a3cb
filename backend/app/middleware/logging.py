"""
TaskTrack Backend — Structured Request Logging Middleware
===========================================================

What:  One structured JSON log line for every inbound HTTP request.
Why:   Lets log aggregation (CloudWatch, ELK) match this process's entries to
       the edge's entries through the shared X-Request-ID value.
How:   Pure ASGI middleware. Reads headers from the scope, emits the line,
       then hands the request on. Never touches the body, never suspends
       before calling the next stage.
When:  Registered right after AccessLogMiddleware, so it runs second.

Log Format (one line on the tasktrack.requests logger):
    {"timestamp":"2025-11-04T10:47:26.512Z","requestId":"f3da8b90…","ip":"172.21.0.1",
     "method":"GET","path":"/api/health","userAgent":"curl/8.14.1"}

    ip is the raw X-Forwarded-For chain when present, else the peer address.

Failure policy:
    Logging is best-effort. If building or emitting the record fails, the
    failure is noted at DEBUG on this module's logger and the request
    continues exactly as if it had succeeded.
"""

import logging

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from app.middleware.request_context import (
    correlation_id,
    forwarded_for,
    peer_address,
    request_id_var,
    request_target,
)
from app.schemas.log import LogRecord, utc_timestamp

logger = logging.getLogger(__name__)

# Dedicated stream: setup_logging() gives it a bare "%(message)s" handler
request_logger = logging.getLogger("tasktrack.requests")


def build_log_record(scope: Scope, headers: Headers, rid: str) -> LogRecord:
    return LogRecord(
        timestamp=utc_timestamp(),
        correlation_id=rid,
        client_address=forwarded_for(headers) or peer_address(scope),
        method=scope.get("method", ""),
        path=request_target(scope),
        user_agent=headers.get("user-agent"),
    )


class StructuredRequestLogMiddleware:
    """
    Emits a LogRecord per HTTP request before any route handler runs.

    Also publishes the correlation id in request_id_var so exception handlers
    can echo it in error bodies.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        self.emit(scope)
        await self.app(scope, receive, send)

    def emit(self, scope: Scope) -> None:
        try:
            headers = Headers(scope=scope)
            rid = correlation_id(headers)
            request_id_var.set(rid)
            request_logger.info(build_log_record(scope, headers, rid).to_json())
        except Exception:
            logger.debug("Structured request log dropped", exc_info=True)
