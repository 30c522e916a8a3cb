"""
TaskTrack Backend — Request Context Helpers
=============================================

What:  Reads correlation and client-identity data from an ASGI request scope.
Why:   Both logging middlewares and the error handlers need the same answers
       to "which request is this?" and "who sent it?".
How:   Pure functions over the ASGI scope plus one ContextVar holding the
       current request's correlation id.

Proxy chain (why the first X-Forwarded-For entry is the client):
    Client (103.45.x.x)
       ↓
    Load balancer (10.0.1.25)        adds      X-Forwarded-For: 103.45.x.x
       ↓
    Reverse proxy (172.18.0.3)       appends   X-Forwarded-For: 103.45.x.x, 10.0.1.25
       ↓
    This process                     reads the first entry → 103.45.x.x

Correlation ids are generated at the edge. This process only reads them;
when none arrives, the configured sentinel ("no-rid") stands in.
"""

from contextvars import ContextVar
from typing import Optional

from starlette.datastructures import Headers
from starlette.types import Scope

from app.config import settings

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

UNKNOWN_CLIENT = "unknown"


def correlation_id(headers: Headers) -> str:
    """Inbound correlation id, or the sentinel when absent or empty."""
    return headers.get(settings.request_id_header) or settings.missing_request_id


def peer_address(scope: Scope) -> Optional[str]:
    """Transport-level peer host, if the server reported one."""
    client = scope.get("client")
    if client:
        return client[0]
    return None


def forwarded_for(headers: Headers) -> Optional[str]:
    """Raw forwarded-for header value (the whole chain), if present."""
    return headers.get(settings.forwarded_for_header) or None


def first_forwarded_address(headers: Headers) -> Optional[str]:
    """First entry of the forwarded-for chain, trimmed; None when blank."""
    chain = headers.get(settings.forwarded_for_header)
    if not chain:
        return None
    return chain.split(",")[0].strip() or None


def client_address(scope: Scope, headers: Headers) -> str:
    """
    Proxy-aware client address for the access log.

    Fallback chain: first forwarded-for entry → peer address → "unknown".
    """
    return first_forwarded_address(headers) or peer_address(scope) or UNKNOWN_CLIENT


def request_target(scope: Scope) -> str:
    """
    Request target as the client sent it: the still-encoded path plus the
    query string when there is one.

    scope["path"] is percent-decoded by the server, so %0A or %20 would put
    a newline or a space into a log line. raw_path keeps them encoded.
    """
    raw_path = scope.get("raw_path")
    if raw_path:
        # Some servers include the query in raw_path; it is appended below
        path = raw_path.split(b"?", 1)[0].decode("latin-1")
    else:
        path = scope.get("path", "")
    query = scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path
