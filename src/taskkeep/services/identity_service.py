"""Identity service — binds an external (Google) identity to a user row.

Learn: Lookup first, insert only when missing. The insert is
INSERT ... ON CONFLICT (google_id) DO NOTHING followed by a re-select, so
two browsers finishing their first login at the same moment both end up
with the same user row instead of racing into a duplicate.

Existing users are returned untouched: the profile captured at first
login is authoritative, later logins never overwrite it.
"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from taskkeep.auth.google import AuthenticationError, ExternalIdentity
from taskkeep.db.models import User

logger = structlog.get_logger()

# Dialects with INSERT ... ON CONFLICT support
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class IdentityService:
    """Resolve external identities to internal users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_google_id(self, google_id: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.google_id == google_id)
        )
        return result.scalars().first()

    async def resolve(self, identity: ExternalIdentity) -> User:
        """Return the user for `identity`, creating one on first login."""
        if not identity.subject:
            raise AuthenticationError("Identity provider returned no subject id")

        user = await self.get_by_google_id(identity.subject)
        if user:
            return user

        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Unsupported database dialect: {dialect}")

        stmt = (
            insert(User)
            .values(
                google_id=identity.subject,
                email=identity.email,
                name=identity.name,
            )
            .on_conflict_do_nothing(index_elements=[User.google_id])
        )
        result = await self.db.execute(stmt)
        await self.db.commit()

        user = await self.get_by_google_id(identity.subject)
        if user is None:
            # Row purged out of band between insert and select
            raise AuthenticationError("User record could not be resolved")

        if result.rowcount:
            logger.info("user.created", user_id=user.id, provider=identity.provider)
        return user
