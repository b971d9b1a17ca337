"""Task service — CRUD on tasks, always scoped to the owning user.

Learn: owner_id is a required positional argument on every method, and
every statement carries `WHERE user_id = :owner_id`. There is no code
path that reads or writes a task by id alone.

Mutations are single UPDATE/DELETE statements; the affected row count
(checked after the statement runs) is what decides 404. "No such task"
and "someone else's task" both match zero rows, so they look the same
to the caller.

The completion state machine is one-way:
  pending → completed
update() edits title/content in either state and never touches the flag.
"""

from typing import Optional

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskkeep.db.models import Task

logger = structlog.get_logger()


class TaskValidationError(Exception):
    """Raised when a required field is missing or blank."""
    pass


class TaskNotFoundError(Exception):
    """Raised when no task with this id belongs to the owner."""
    pass


def _require_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


class TaskService:
    """Business logic for one user's tasks."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Read ────────────────────────────────────────────

    async def _list(self, owner_id: int, completed: bool) -> list[Task]:
        result = await self.db.execute(
            select(Task)
            .where(Task.user_id == owner_id, Task.is_completed == completed)
            .order_by(Task.id)
        )
        return list(result.scalars().all())

    async def list_pending(self, owner_id: int) -> list[Task]:
        return await self._list(owner_id, completed=False)

    async def list_completed(self, owner_id: int) -> list[Task]:
        return await self._list(owner_id, completed=True)

    # ─── Create ──────────────────────────────────────────

    async def create(
        self, owner_id: int, title: Optional[str], content: Optional[str]
    ) -> None:
        """Add a pending task for `owner_id`."""
        if not _require_text(title) or not _require_text(content):
            raise TaskValidationError("Title and content are required")

        self.db.add(
            Task(title=title, content=content, is_completed=False, user_id=owner_id)
        )
        await self.db.commit()
        logger.info("task.created", user_id=owner_id)

    # ─── Update ──────────────────────────────────────────

    async def mark_complete(self, owner_id: int, task_id: Optional[int]) -> None:
        if task_id is None:
            raise TaskValidationError("ID is required")

        result = await self.db.execute(
            update(Task)
            .where(Task.id == task_id, Task.user_id == owner_id)
            .values(is_completed=True)
        )
        await self.db.commit()
        if result.rowcount == 0:
            raise TaskNotFoundError("Task not found")
        logger.info("task.completed", user_id=owner_id, task_id=task_id)

    async def update(
        self,
        owner_id: int,
        task_id: Optional[int],
        title: Optional[str],
        content: Optional[str],
    ) -> None:
        """Replace title and content. Completion flag is left alone."""
        if task_id is None or not _require_text(title) or not _require_text(content):
            raise TaskValidationError("ID, title, and content are required")

        result = await self.db.execute(
            update(Task)
            .where(Task.id == task_id, Task.user_id == owner_id)
            .values(title=title, content=content)
        )
        await self.db.commit()
        if result.rowcount == 0:
            raise TaskNotFoundError("Task not found")
        logger.info("task.updated", user_id=owner_id, task_id=task_id)

    # ─── Delete ──────────────────────────────────────────

    async def delete(self, owner_id: int, task_id: Optional[int]) -> None:
        if task_id is None:
            raise TaskValidationError("ID is required")

        result = await self.db.execute(
            delete(Task).where(Task.id == task_id, Task.user_id == owner_id)
        )
        await self.db.commit()
        if result.rowcount == 0:
            raise TaskNotFoundError("Task not found")
        logger.info("task.deleted", user_id=owner_id, task_id=task_id)
