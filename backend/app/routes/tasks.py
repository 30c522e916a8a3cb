"""
TaskTrack Backend — Task Route Handlers
=========================================

What:  CRUD endpoints for tasks under /api/tasks.
How:   Thin handlers: parse the body, delegate to TaskService, pick the
       status code. Errors surface through the global exception handlers.

Route Inventory:
    POST   /api/tasks        → 201 created task
    GET    /api/tasks        → 200 list, newest first
    PUT    /api/tasks/{id}   → 200 updated task | 404
    DELETE /api/tasks/{id}   → 204 | 404
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.task import ErrorResponse, TaskCreate, TaskResponse, TaskUpdate
from app.services.task_service import task_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Tasks"])


@router.post(
    "/tasks",
    status_code=201,
    response_model=TaskResponse,
    responses={400: {"description": "Missing or blank title", "model": ErrorResponse}},
    summary="Create a task",
)
async def create_task(
    body: TaskCreate,
    db: AsyncSession = Depends(get_db_session),
) -> TaskResponse:
    return await task_service.create_task(db=db, title=body.title, done=body.done)


@router.get(
    "/tasks",
    response_model=List[TaskResponse],
    summary="List all tasks, newest first",
)
async def list_tasks(db: AsyncSession = Depends(get_db_session)) -> List[TaskResponse]:
    return await task_service.list_tasks(db=db)


@router.put(
    "/tasks/{task_id}",
    response_model=TaskResponse,
    responses={404: {"description": "Task not found", "model": ErrorResponse}},
    summary="Update a task's title and/or done flag",
)
async def update_task(
    task_id: str,
    body: TaskUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> TaskResponse:
    return await task_service.update_task(
        db=db,
        task_id=task_id,
        title=body.title,
        done=body.done,
    )


@router.delete(
    "/tasks/{task_id}",
    status_code=204,
    response_class=Response,
    responses={404: {"description": "Task not found", "model": ErrorResponse}},
    summary="Delete a task",
)
async def delete_task(
    task_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await task_service.delete_task(db=db, task_id=task_id)
    return Response(status_code=204)
