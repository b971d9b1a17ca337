"""Server-side session storage backends.

Learn: The browser only ever holds an opaque random token. What the
token means (which user, until when) lives here, keyed by the token's
SHA-256 digest. Two interchangeable backends:

- DatabaseSessionStore: rows in login_sessions, same database as tasks
- RedisSessionStore: one key per session, expiry enforced by Redis TTL

Both translate backend failures into SessionStoreError so callers can
tell "the store broke" apart from "no such session".
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskkeep.db.models import LoginSession


class SessionStoreError(Exception):
    """Raised when the session backend fails."""


@dataclass
class SessionRecord:
    key: str
    user_id: Optional[int]
    expires_at: datetime
    created_at: Optional[datetime] = None

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or datetime.now(timezone.utc))


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone=True columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DatabaseSessionStore:
    """Sessions as rows in the login_sessions table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def save(self, record: SessionRecord) -> None:
        try:
            self.db.add(
                LoginSession(
                    key=record.key,
                    user_id=record.user_id,
                    created_at=record.created_at or datetime.now(timezone.utc),
                    expires_at=record.expires_at,
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise SessionStoreError(f"Could not save session: {e}") from e

    async def load(self, key: str) -> Optional[SessionRecord]:
        try:
            result = await self.db.execute(
                select(LoginSession).where(LoginSession.key == key)
            )
            row = result.scalars().first()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise SessionStoreError(f"Could not load session: {e}") from e
        if row is None:
            return None
        return SessionRecord(
            key=row.key,
            user_id=row.user_id,
            expires_at=_aware(row.expires_at),
            created_at=_aware(row.created_at),
        )

    async def delete(self, key: str) -> None:
        try:
            await self.db.execute(delete(LoginSession).where(LoginSession.key == key))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise SessionStoreError(f"Could not delete session: {e}") from e

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete every expired session. Returns how many were removed."""
        cutoff = now or datetime.now(timezone.utc)
        try:
            result = await self.db.execute(
                delete(LoginSession).where(LoginSession.expires_at <= cutoff)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise SessionStoreError(f"Could not purge sessions: {e}") from e
        return result.rowcount or 0


class RedisSessionStore:
    """Sessions as JSON blobs under taskkeep:session:{key} with a TTL."""

    prefix = "taskkeep:session:"

    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    def _name(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def save(self, record: SessionRecord) -> None:
        created_at = record.created_at or datetime.now(timezone.utc)
        ttl = int((record.expires_at - created_at).total_seconds())
        payload = json.dumps({
            "user_id": record.user_id,
            "created_at": created_at.isoformat(),
            "expires_at": record.expires_at.isoformat(),
        })
        try:
            await self.redis.set(self._name(record.key), payload, ex=max(ttl, 1))
        except RedisError as e:
            raise SessionStoreError(f"Could not save session: {e}") from e

    async def load(self, key: str) -> Optional[SessionRecord]:
        try:
            raw = await self.redis.get(self._name(key))
        except RedisError as e:
            raise SessionStoreError(f"Could not load session: {e}") from e
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            return SessionRecord(
                key=key,
                user_id=data.get("user_id"),
                expires_at=datetime.fromisoformat(data["expires_at"]),
                created_at=datetime.fromisoformat(data["created_at"]),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise SessionStoreError(f"Corrupt session payload: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(self._name(key))
        except RedisError as e:
            raise SessionStoreError(f"Could not delete session: {e}") from e

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        # Redis drops expired keys on its own
        return 0
