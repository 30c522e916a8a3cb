"""
TaskTrack Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (uvicorn app.main:app) or the `tasktrack` script.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware Chain (request order):                   │
    │  ┌────────────┐ ┌──────────────────┐ ┌────────────┐  │
    │  │ Access Log │→│ Structured Log   │→│   CORS     │  │
    │  └────────────┘ └──────────────────┘ └────────────┘  │
    │                                                      │
    │  Routes:                                             │
    │  ┌────────────────────┐ ┌──────────────────────────┐ │
    │  │ /api/tasks (CRUD)  │ │ /api/health, /api/debug  │ │
    │  └────────────────────┘ └──────────────────────────┘ │
    │                                                      │
    │  Exception Handlers:                                 │
    │  ValidationError→400 │ NotFound→404 │ DB/other→500   │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Open the access log (creates LOG_DIR; failure aborts startup)
    Shutdown:
    1. Drain pending access-log appends and close the file
    2. Dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import Settings, settings
from app.database import dispose_engine
from app.exceptions import (
    DatabaseError,
    NotFoundError,
    TaskTrackError,
    ValidationError,
)
from app.middleware.access_log import AccessLogMiddleware
from app.middleware.logging import StructuredRequestLogMiddleware, request_logger
from app.middleware.request_context import request_id_var
from app.routes import health, tasks
from app.services.access_log_service import AccessLogService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure process logging.

    Two streams, both on stdout (the container runtime ships stdout):
        - diagnostics: "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        - tasktrack.requests: the bare JSON line, nothing prepended, so each
          line parses as one JSON object
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    json_handler = logging.StreamHandler(sys.stdout)
    json_handler.setFormatter(logging.Formatter("%(message)s"))
    request_logger.handlers = [json_handler]
    request_logger.setLevel(logging.INFO)
    request_logger.propagate = False

    # Our access log replaces uvicorn's
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup before the yield, shutdown after it.

    LogDirectoryError from open() is deliberately not caught: uvicorn treats
    a failed lifespan startup as fatal and never binds the socket.
    """
    app_settings: Settings = app.state.settings
    setup_logging(app_settings.log_level)
    logger.info("TaskTrack Backend %s starting up...", __version__)

    access_log: AccessLogService = app.state.access_log_service
    await access_log.open()

    logger.info("Server ready at http://%s:%d", app_settings.backend_host, app_settings.backend_port)

    yield

    logger.info("TaskTrack Backend shutting down...")
    await access_log.close()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to JSON error responses.

    Every body carries request_id (the inbound correlation id or the
    sentinel) so clients can quote it. 5xx bodies never include internals.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(TaskTrackError)
    async def handle_app_error(request: Request, exc: TaskTrackError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: generic 500 to the client, full traceback to the log."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Assemble the application.

    The access-log service is constructed here (unopened) and injected into
    the middleware; the lifespan handler owns opening and closing it.
    """
    app_settings = app_settings or settings

    app = FastAPI(
        title="TaskTrack API",
        description="Minimal task-management REST API.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.access_log_service = AccessLogService(app_settings.access_log_path)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = outermost. Request order: access log → structured log → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(StructuredRequestLogMiddleware)
    app.add_middleware(AccessLogMiddleware, service=app.state.access_log_service)

    register_exception_handlers(app)

    app.include_router(tasks.router)
    app.include_router(health.router)

    return app


# uvicorn expects `app.main:app` to be importable
app = create_app()


def main() -> None:
    """Console entry point: serve on the configured host and port."""
    uvicorn.run(
        "app.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
