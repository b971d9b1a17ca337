"""Session manager — issue, resolve and destroy login sessions.

Learn: A login session is the only thing that turns an HTTP request into
"user N". The lifecycle:

  Google callback → create(user_id) → token in an HttpOnly cookie
  every request   → resolve(token) → SessionRecord or None
  sign-out        → destroy(token) → store entry removed

resolve() treats unknown, expired and destroyed tokens identically (None).
destroy() removes the server-side entry, so a copied cookie can't be
replayed after sign-out; if the store fails it raises instead of
pretending the sign-out worked.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from taskkeep.services.session_store import SessionRecord

logger = structlog.get_logger()


def hash_token(token: str) -> str:
    """Store key for a cookie token. The raw token is never persisted."""
    return hashlib.sha256(token.encode()).hexdigest()


class SessionManager:
    """Business logic for login sessions on top of a session store."""

    def __init__(self, store, max_age_seconds: int):
        self.store = store
        self.max_age = timedelta(seconds=max_age_seconds)

    async def create(self, user_id: int) -> str:
        """Start a session bound to `user_id`. Returns the cookie token."""
        token = secrets.token_urlsafe(32)
        now = datetime.now(timezone.utc)
        await self.store.save(
            SessionRecord(
                key=hash_token(token),
                user_id=user_id,
                created_at=now,
                expires_at=now + self.max_age,
            )
        )
        logger.info("session.created", user_id=user_id)
        return token

    async def resolve(self, token: Optional[str]) -> Optional[SessionRecord]:
        """Resolve a cookie token to a live session, or None."""
        if not token:
            return None

        record = await self.store.load(hash_token(token))
        if record is None:
            return None

        if record.is_expired():
            await self.store.delete(record.key)
            logger.info("session.expired", user_id=record.user_id)
            return None
        return record

    async def destroy(self, token: Optional[str]) -> None:
        """Remove the server-side session entry.

        Raises SessionStoreError when the store can't delete it.
        """
        if not token:
            return
        await self.store.delete(hash_token(token))
        logger.info("session.destroyed")

    async def purge_expired(self) -> int:
        count = await self.store.purge_expired()
        logger.info("session.purged", count=count)
        return count
