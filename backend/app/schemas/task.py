"""
TaskTrack Backend — Pydantic Request/Response Schemas
=======================================================

What:  Pydantic models defining the API contract for the task routes.
Why:   Input validation, serialization, and OpenAPI doc generation.
How:   FastAPI validates request bodies against the *Create/*Update models and
       serializes responses through the response models (by alias, so
       timestamps appear as createdAt/updatedAt on the wire).
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class TaskCreate(BaseModel):
    """
    Body of POST /api/tasks.

    title is optional at the schema level so a missing or blank title gets the
    same 400 "title required" answer from the service layer.
    """
    title: Optional[str] = Field(default=None, description="Task title (required, trimmed)")
    done: bool = Field(default=False, description="Completion flag")


class TaskUpdate(BaseModel):
    """Body of PUT /api/tasks/{id}. Omitted fields are left unchanged."""
    title: Optional[str] = Field(default=None, description="New title (trimmed)")
    done: Optional[bool] = Field(default=None, description="New completion flag")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class TaskResponse(BaseModel):
    """Full representation of a task."""
    id: str = Field(description="Task identifier (UUID string)")
    title: str
    done: bool
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    model_config = {"from_attributes": True}


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    request_id echoes the inbound correlation id (or the missing-id sentinel)
    so a client report can be matched to the structured request log.
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /api/health for load balancer target-group checks."""
    ok: bool = Field(description="True when the database answered a ping")
    driver: str = Field(description="Database dialect in use")
    uptime: float = Field(description="Seconds since the process started")


class DebugResponse(BaseModel):
    """Returned by GET /api/debug; shows what the proxy chain forwarded."""
    ip: Optional[str] = Field(description="Transport-level peer address")
    headers: Dict[str, Optional[str]]
