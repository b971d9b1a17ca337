"""Identity service tests — first login, repeat login, and the duplicate race."""

import asyncio

import pytest
from sqlalchemy import func, select

from taskkeep.auth.google import AuthenticationError, ExternalIdentity
from taskkeep.db.models import User
from taskkeep.services.identity_service import IdentityService


def _identity(subject="g-42", email="x@example.com", name="X"):
    return ExternalIdentity(provider="google", subject=subject, email=email, name=name)


async def _count(db_session) -> int:
    return (await db_session.execute(select(func.count()).select_from(User))).scalar_one()


@pytest.mark.asyncio
async def test_first_login_creates_user(db_session):
    user = await IdentityService(db_session).resolve(_identity())
    assert user.id is not None
    assert user.google_id == "g-42"
    assert user.email == "x@example.com"
    assert user.name == "X"
    assert await _count(db_session) == 1


@pytest.mark.asyncio
async def test_optional_profile_fields(db_session):
    user = await IdentityService(db_session).resolve(
        _identity(email=None, name=None)
    )
    assert user.email is None
    assert user.name is None


@pytest.mark.asyncio
async def test_repeat_login_returns_same_user_unchanged(db_session):
    svc = IdentityService(db_session)
    first = await svc.resolve(_identity(email="first@example.com", name="First"))
    again = await svc.resolve(_identity(email="second@example.com", name="Second"))

    assert again.id == first.id
    assert again.email == "first@example.com"
    assert again.name == "First"
    assert await _count(db_session) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("subject", [None, ""])
async def test_missing_subject_fails_without_creating(db_session, subject):
    with pytest.raises(AuthenticationError):
        await IdentityService(db_session).resolve(_identity(subject=subject))
    assert await _count(db_session) == 0


@pytest.mark.asyncio
async def test_concurrent_first_logins_create_one_user(session_factory, db_session):
    """Two simultaneous first logins with one Google id → one row."""

    async def login():
        async with session_factory() as session:
            user = await IdentityService(session).resolve(_identity())
            return user.id

    ids = await asyncio.gather(login(), login())

    assert ids[0] == ids[1]
    assert await _count(db_session) == 1


@pytest.mark.asyncio
async def test_distinct_identities_get_distinct_users(db_session):
    svc = IdentityService(db_session)
    a = await svc.resolve(_identity(subject="g-a"))
    b = await svc.resolve(_identity(subject="g-b"))
    assert a.id != b.id
    assert await _count(db_session) == 2
