"""
TaskTrack Backend — Task Service (Business Logic)
===================================================

What:  Create, list, update and delete tasks.
Why:   Keeps SQL and business rules out of the route handlers.
How:   Stateless service; each call receives the request-scoped AsyncSession
       from get_db_session (which owns commit/rollback).

Error Handling Strategy:
    - Blank or missing title        → ValidationError  (400)
    - Unknown task id               → NotFoundError    (404)
    - Anything the driver raises    → DatabaseError    (500, details logged only)
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, NotFoundError, TaskTrackError, ValidationError
from app.models.task import Task
from app.schemas.task import TaskResponse

logger = logging.getLogger(__name__)


class TaskService:
    """Business logic layer for task operations."""

    async def create_task(
        self,
        db: AsyncSession,
        title: Optional[str],
        done: bool = False,
    ) -> TaskResponse:
        """
        Create a task from a client-supplied title.

        The title is trimmed first; an empty result is rejected.
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError(message="title required", field="title")

        try:
            now = datetime.now(timezone.utc)
            task = Task(
                id=str(uuid.uuid4()),
                title=title,
                done=bool(done),
                created_at=now,
                updated_at=now,
            )
            db.add(task)
            await db.flush()
            logger.info("Task created: %s", task.id)
            return TaskResponse.model_validate(task)
        except Exception as e:
            logger.error("Database error creating task: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the task. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def list_tasks(self, db: AsyncSession) -> List[TaskResponse]:
        """All tasks, newest first (backed by idx_tasks_created_at)."""
        try:
            result = await db.execute(select(Task).order_by(desc(Task.created_at)))
            return [TaskResponse.model_validate(task) for task in result.scalars().all()]
        except Exception as e:
            logger.error("Database error listing tasks: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve tasks. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def update_task(
        self,
        db: AsyncSession,
        task_id: str,
        title: Optional[str] = None,
        done: Optional[bool] = None,
    ) -> TaskResponse:
        """
        Apply a partial update.

        Only fields that were supplied change. title is trimmed but, unlike
        create, may end up empty.
        """
        try:
            result = await db.execute(select(Task).where(Task.id == task_id))
            task = result.scalar_one_or_none()
            if task is None:
                raise NotFoundError(resource="task", resource_id=task_id)

            if title is not None:
                task.title = title.strip()
            if done is not None:
                task.done = bool(done)
            task.updated_at = datetime.now(timezone.utc)

            await db.flush()
            return TaskResponse.model_validate(task)

        except TaskTrackError:
            raise
        except Exception as e:
            logger.error("Database error updating task %s: %s", task_id, str(e))
            raise DatabaseError(
                message="Could not update the task. Please try again.",
                context={"task_id": task_id},
            )

    async def delete_task(self, db: AsyncSession, task_id: str) -> None:
        """Delete by id; a zero row count means the task never existed."""
        try:
            result = await db.execute(delete(Task).where(Task.id == task_id))
            if result.rowcount != 1:
                raise NotFoundError(resource="task", resource_id=task_id)
            logger.info("Task deleted: %s", task_id)

        except TaskTrackError:
            raise
        except Exception as e:
            logger.error("Database error deleting task %s: %s", task_id, str(e))
            raise DatabaseError(
                message="Could not delete the task. Please try again.",
                context={"task_id": task_id},
            )


# Stateless; one shared instance
task_service = TaskService()
