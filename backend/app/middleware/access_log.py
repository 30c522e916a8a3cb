"""
TaskTrack Backend — Access Log Middleware
===========================================

What:  Appends one plain-text line per completed HTTP transaction to the
       shared access log, with the request's wall-clock duration.
Why:   Traffic auditing and latency analysis from a file that log shippers
       can tail, independent of the structured stream.
How:   Pure ASGI middleware wrapping `send` and owning `receive`:
         - entry:      start a monotonic nanosecond clock, pass control on
         - completion: the final http.response.body message has been handed
                       to the server → build the line, submit it to
                       AccessLogService (fire-and-forget)
When:  Registered last, so it is the outermost of the two logging stages.

Line format:
    2025-11-04T10:47:26.512Z 172.21.0.1 GET /api/health 200 0.8ms

Per-request states:
    ARRIVED ──final body sent──▶ FINISHED   (one line)
       └────client went away───▶ ABORTED    (no line, no error)

    "Went away" means an http.disconnect arrived before the final body was
    handed over, or the server raised while we forwarded a response message.
    Servers such as uvicorn drop sends to a closed socket silently, so
    DisconnectWatch listens on `receive` for the whole request rather than
    relying on the handler to read it. A response that started but never
    finished counts as ABORTED.

    If the handler raises before any response starts, the outermost error
    layer renders a 500; that 500 is recorded here before the exception
    continues upward.
"""

import asyncio
import logging
import time
from typing import Optional

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.middleware.request_context import client_address, request_target
from app.schemas.log import AccessLogLine, utc_timestamp
from app.services.access_log_service import AccessLogService

logger = logging.getLogger(__name__)


def build_access_line(scope: Scope, status_code: int, start_ns: int) -> AccessLogLine:
    duration_millis = (time.perf_counter_ns() - start_ns) / 1_000_000
    return AccessLogLine(
        timestamp=utc_timestamp(),
        client_address=client_address(scope, Headers(scope=scope)),
        method=scope.get("method", ""),
        path=request_target(scope),
        status_code=status_code,
        duration_millis=duration_millis,
    )


class DisconnectWatch:
    """
    Owns the server's `receive` for one request.

    A background task reads the request body into a queue the app drains
    through receive(), then keeps waiting for http.disconnect. A client that
    leaves while the handler never reads again is still noticed.
    """

    def __init__(self, receive: Receive) -> None:
        self._receive = receive
        self._inbound: "asyncio.Queue[Message]" = asyncio.Queue()
        self._task: Optional["asyncio.Task[None]"] = None
        self.disconnected = False
        # Set once the final body message is handed to the server
        self.response_complete = False
        # Disconnected before the response completed
        self.client_gone = False

    def start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._listen())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)

    async def receive(self) -> Message:
        if self.disconnected and self._inbound.empty():
            return {"type": "http.disconnect"}
        return await self._inbound.get()

    async def _listen(self) -> None:
        try:
            while True:
                message = await self._receive()
                if message["type"] == "http.disconnect":
                    self._mark_disconnected(message)
                    return
                self._inbound.put_nowait(message)
                if not message.get("more_body", False):
                    break

            # Body complete: the only message left to come is a disconnect
            message = await self._receive()
            if message["type"] == "http.disconnect":
                self._mark_disconnected(message)
        except Exception:
            logger.debug("receive failed; treating the client as gone", exc_info=True)
            self._mark_disconnected({"type": "http.disconnect"})

    def _mark_disconnected(self, message: Message) -> None:
        self.disconnected = True
        if not self.response_complete:
            self.client_gone = True
        self._inbound.put_nowait(message)


class AccessLogMiddleware:
    """Times each request and records it once the response is fully sent."""

    def __init__(self, app: ASGIApp, service: AccessLogService) -> None:
        self.app = app
        self.service = service

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_ns = time.perf_counter_ns()
        status_code: Optional[int] = None
        finished = False
        send_failed = False
        watch = DisconnectWatch(receive)

        async def send_and_record(message: Message) -> None:
            nonlocal status_code, finished, send_failed
            final = message["type"] == "http.response.body" and not message.get("more_body", False)
            if message["type"] == "http.response.start":
                status_code = message["status"]
            if final:
                watch.response_complete = True
            try:
                await send(message)
            except Exception:
                send_failed = True
                raise
            if final and not finished and not watch.client_gone:
                finished = True
                self.record(scope, status_code or 200, start_ns)

        watch.start()
        try:
            await self.app(scope, watch.receive, send_and_record)
        except Exception:
            if status_code is None and not send_failed and not watch.client_gone:
                self.record(scope, 500, start_ns)
            raise
        finally:
            await watch.stop()

    def record(self, scope: Scope, status_code: int, start_ns: int) -> None:
        """Completion hook; never raises into the response path."""
        try:
            line = build_access_line(scope, status_code, start_ns)
            self.service.submit(line.render())
        except Exception:
            logger.exception("access log line dropped")
