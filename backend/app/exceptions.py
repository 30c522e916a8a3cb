"""
TaskTrack Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for the error scenarios we handle.
Why:   Custom exceptions map cleanly onto HTTP status codes and keep internal
       details (SQL, file paths) out of API responses.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses.

Exception Hierarchy:
    TaskTrackError (base)
    ├── ValidationError     → 400 Bad Request (client can fix)
    ├── NotFoundError       → 404 Not Found
    ├── DatabaseError       → 500 Internal Server Error
    └── LogDirectoryError   → startup-fatal (never reaches a client)
"""

from typing import Any, Dict, Optional


class TaskTrackError(Exception):
    """
    Base exception for all TaskTrack application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for 5xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TaskTrackError):
    """
    Raised when client input fails a business rule.

    HTTP: 400 Bad Request. Schema-level problems (wrong JSON types) are left
    to FastAPI's own 422 handling.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(TaskTrackError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None (or a zero rowcount) for missing rows; the service
    layer converts that into this exception so the route stays HTTP-only.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(TaskTrackError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; the context is
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LogDirectoryError(TaskTrackError):
    """
    Raised when the access-log directory cannot be created.

    When:  During startup only. "Already exists" is not an error; anything
           else (permissions, read-only volume, a file in the way) is.
    Effect: Propagates out of the lifespan handler so the server never starts
            accepting traffic.
    """

    def __init__(
        self,
        path: str,
        reason: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["path"] = path
        ctx["reason"] = reason
        super().__init__(
            message=f"Cannot create log directory '{path}': {reason}",
            context=ctx,
        )
        self.path = path
