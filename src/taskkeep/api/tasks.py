"""Task API routes.

Learn: Routes translate HTTP to TaskService calls and map its exceptions:
- TaskValidationError → 400
- TaskNotFoundError → 404 (same body whether the task is missing or
  belongs to somebody else)

The owner id always comes from the CurrentUser dependency; bodies never
carry one.

Paths match what the frontend calls:
  GET / · GET /completed · POST /add · PATCH /done
  PATCH /edit · DELETE /completed/delete
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from taskkeep.auth.dependencies import CurrentUser, get_current_user
from taskkeep.config import settings
from taskkeep.db.engine import get_db
from taskkeep.schemas.task import (
    MessageRead,
    TaskCreate,
    TaskEdit,
    TaskRead,
    TaskRef,
)
from taskkeep.services.task_service import (
    TaskNotFoundError,
    TaskService,
    TaskValidationError,
)

router = APIRouter()


def _task_svc(db: AsyncSession = Depends(get_db)) -> TaskService:
    return TaskService(db)


# ═══════════════════════════════════════════════════════════
# Read
# ═══════════════════════════════════════════════════════════


@router.get("/", response_model=list[TaskRead])
async def list_pending_tasks(
    current: CurrentUser = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Pending (not completed) tasks of the signed-in user."""
    tasks = await svc.list_pending(current.user_id)
    if not tasks and settings.empty_pending_404:
        raise HTTPException(status_code=404, detail="No tasks found")
    return tasks


@router.get("/completed", response_model=list[TaskRead])
async def list_completed_tasks(
    current: CurrentUser = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    return await svc.list_completed(current.user_id)


# ═══════════════════════════════════════════════════════════
# Write
# ═══════════════════════════════════════════════════════════


@router.post("/add", response_model=MessageRead, status_code=201)
async def add_task(
    body: TaskCreate,
    current: CurrentUser = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    try:
        await svc.create(current.user_id, body.title, body.content)
    except TaskValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Task added successfully"}


@router.patch("/done", response_model=MessageRead)
async def mark_task_done(
    body: TaskRef,
    current: CurrentUser = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Move a task from pending to completed. There is no way back."""
    try:
        await svc.mark_complete(current.user_id, body.id)
    except TaskValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Task marked as completed"}


@router.patch("/edit", response_model=MessageRead)
async def edit_task(
    body: TaskEdit,
    current: CurrentUser = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    try:
        await svc.update(current.user_id, body.id, body.title, body.content)
    except TaskValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Task updated successfully"}


@router.delete("/completed/delete", response_model=MessageRead)
async def delete_task(
    body: TaskRef,
    current: CurrentUser = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    try:
        await svc.delete(current.user_id, body.id)
    except TaskValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TaskNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Task deleted successfully"}
