# Middleware package init
"""
TaskTrack Backend — Middleware Package
========================================

Middleware Chain (order matters!):
    Request → [Access Log] → [Structured Log] → [CORS] → Route Handler

    1. Access Log: starts the clock first, so the duration covers everything
       downstream; writes its line only once the response is fully sent
    2. Structured Log: one JSON line per request, before the handler runs
    3. CORS: Starlette's CORSMiddleware (handles preflight)

Both logging stages are pure ASGI callables rather than BaseHTTPMiddleware
subclasses: the access log needs to see the final body message leave, not
just the Response object being returned.
"""
