"""
TaskTrack Backend — Health & Debug Routes
===========================================

What:  GET /api/health for load balancer target-group checks, and GET
       /api/debug to inspect what the proxy chain forwards.
Why:   The load balancer routes away from instances whose health check fails.
       A process that cannot reach its database is effectively down.

Status codes:
    200 {"ok": true,  "driver": "postgresql", "uptime": 12.3}
    500 {"ok": false, "driver": "postgresql", "uptime": 12.3}
"""

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.database import driver_name, ping_database
from app.schemas.task import DebugResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])

# Module-level: initialized once when the process loads the routes
_start_time = time.monotonic()

# Headers set by the load balancer / reverse proxy
_PROXY_HEADERS = ("host", "x-real-ip", "x-forwarded-for", "x-forwarded-proto")


def uptime_seconds() -> float:
    return round(time.monotonic() - _start_time, 3)


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={500: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check():
    """Ping the database with SELECT 1 and report process uptime."""
    try:
        await ping_database()
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", str(e))
        body = HealthResponse(ok=False, driver=driver_name(), uptime=uptime_seconds())
        return JSONResponse(status_code=500, content=body.model_dump())

    return HealthResponse(ok=True, driver=driver_name(), uptime=uptime_seconds())


@router.get("/debug", response_model=DebugResponse, summary="Echo proxy headers")
async def debug(request: Request) -> DebugResponse:
    return DebugResponse(
        ip=request.client.host if request.client else None,
        headers={name: request.headers.get(name) for name in _PROXY_HEADERS},
    )
