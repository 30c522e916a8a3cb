"""
TaskTrack Backend — Request Log Records
=========================================

What:  Immutable value types for the two per-request log outputs.
Who:   Built by the middlewares in app.middleware; never read back.

    LogRecord:     one per inbound request, emitted before the handler runs
                     as a single JSON line:
                     {"timestamp":…,"requestId":…,"ip":…,"method":…,"path":…,"userAgent":…}

    AccessLogLine: one per completed response, appended to the access log:
                     <timestamp> <client-address> <METHOD> <path> <status> <duration>ms
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """
    ISO-8601 UTC timestamp with millisecond precision and a Z suffix.

    Example: 2025-11-04T10:47:26.512Z
    """
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_duration(duration_millis: float) -> str:
    """Exactly one decimal digit; clock jitter never yields a negative value."""
    return f"{duration_millis if duration_millis > 0 else 0.0:.1f}"


class LogRecord(BaseModel):
    """Structured request log entry. Key order on the wire is fixed."""
    timestamp: str
    correlation_id: str = Field(serialization_alias="requestId")
    client_address: Optional[str] = Field(default=None, serialization_alias="ip")
    method: str
    path: str
    user_agent: Optional[str] = Field(default=None, serialization_alias="userAgent")

    model_config = {"frozen": True}

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class AccessLogLine(BaseModel):
    """One completed HTTP transaction."""
    timestamp: str
    client_address: str
    method: str
    path: str
    status_code: int
    duration_millis: float

    model_config = {"frozen": True}

    @field_validator("duration_millis")
    @classmethod
    def clamp_duration(cls, v: float) -> float:
        return v if v > 0 else 0.0

    def render(self) -> str:
        """Serialize to a newline-terminated access-log line."""
        return (
            f"{self.timestamp} {self.client_address} {self.method} {self.path} "
            f"{self.status_code} {format_duration(self.duration_millis)}ms\n"
        )
