"""Pydantic schemas for tasks and the current user.

Learn: Request bodies keep every field Optional so that a missing field
reaches the service layer, which answers 400 with a readable message.
None of the request schemas has a user_id field; ownership always
comes from the session, never from the body.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

# Task ids are 32-bit INTEGER primary keys
TASK_ID_MAX = 2**31 - 1


# ─── Tasks ───────────────────────────────────────────────

class TaskCreate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


class TaskRef(BaseModel):
    """Body of /done and /completed/delete."""
    id: Optional[int] = Field(default=None, ge=1, le=TASK_ID_MAX)


class TaskEdit(BaseModel):
    id: Optional[int] = Field(default=None, ge=1, le=TASK_ID_MAX)
    title: Optional[str] = None
    content: Optional[str] = None


class TaskRead(BaseModel):
    id: int
    title: str
    content: str
    is_completed: bool
    user_id: int

    model_config = {"from_attributes": True}


class MessageRead(BaseModel):
    message: str


# ─── Users ───────────────────────────────────────────────

class UserRead(BaseModel):
    id: int
    google_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
