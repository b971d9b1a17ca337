"""FastAPI auth dependencies — the authorization gate.

Learn: These are used as Depends() in route handlers to turn the session
cookie into a CurrentUser. The chain:

  cookie → get_login_session (SessionManager.resolve) → get_current_user

get_current_user is the gate. It raises LoginRequired when there is no
live session and InvalidSession when the session points at a user row
that no longer exists (that session is destroyed on the spot). Both are
turned into 401/403 JSON or a sign-in redirect by the handlers in
taskkeep.api.errors.

The user id handed to route handlers comes from the session only.
"""

from typing import Optional

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taskkeep.config import settings
from taskkeep.db.engine import get_db
from taskkeep.db.models import User
from taskkeep.db.redis import get_redis
from taskkeep.services.session_service import SessionManager
from taskkeep.services.session_store import (
    DatabaseSessionStore,
    RedisSessionStore,
    SessionRecord,
)

logger = structlog.get_logger()


class LoginRequired(Exception):
    """No live session on the request."""


class InvalidSession(Exception):
    """Session is live but its user record is gone."""


class CurrentUser:
    """The authenticated user making the request.

    Learn: Downstream code scopes every task query with user_id.
    """

    def __init__(self, user: User):
        self.user = user
        self.user_id = user.id


def session_token(request: Request) -> Optional[str]:
    return request.cookies.get(settings.session_cookie_name)


def get_session_store(db: AsyncSession = Depends(get_db)):
    """Pick the session backend from settings."""
    if settings.session_backend == "redis":
        return RedisSessionStore(get_redis())
    return DatabaseSessionStore(db)


def get_session_manager(store=Depends(get_session_store)) -> SessionManager:
    return SessionManager(store, max_age_seconds=settings.session_max_age_seconds)


async def get_login_session(
    request: Request,
    manager: SessionManager = Depends(get_session_manager),
) -> Optional[SessionRecord]:
    """Resolve the session cookie (soft — returns None if there is none)."""
    return await manager.resolve(session_token(request))


async def get_current_user(
    request: Request,
    record: Optional[SessionRecord] = Depends(get_login_session),
    manager: SessionManager = Depends(get_session_manager),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Require a signed-in user (hard — raises if there is none)."""
    if record is None or record.is_anonymous:
        raise LoginRequired()

    user = await db.get(User, record.user_id)
    if user is None:
        logger.warning("session.orphaned", user_id=record.user_id)
        await manager.destroy(session_token(request))
        raise InvalidSession()

    request.state.user_id = user.id
    structlog.contextvars.bind_contextvars(user_id=user.id)
    return CurrentUser(user)
