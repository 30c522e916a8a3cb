"""
TaskTrack Backend — Task SQLAlchemy Model
===========================================

What:  ORM model representing the `tasks` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.
Who:   Used by TaskService for CRUD operations.

Table Design:
    - id: UUID rendered as a 36-char string, generated by the application
      (the API exposes it verbatim in URLs)
    - title: required free text
    - done: completion flag
    - created_at / updated_at: UTC, timezone-aware

    Index on created_at DESC backs the only list query (newest first).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Task(Base):
    """A single to-do item."""

    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)

    done: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # Refreshed explicitly by TaskService.update_task
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_tasks_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, done={self.done}, created_at='{self.created_at}')>"
