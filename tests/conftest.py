"""Test fixtures — a fresh database per test and real sign-in flows.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own engine and a freshly created schema. By default
   that is an aiosqlite file under tmp_path, so the suite runs without a
   database server; set TASKKEEP_TEST_DATABASE_URL to run it against
   PostgreSQL instead.
2. get_db is overridden so every request opens its own session from the
   test engine, exactly like production.
3. The Google provider is replaced by FakeIdentityProvider. Clients sign
   in through the real /auth/google → /auth/google/callback routes, so
   the session cookie, the state check and the identity service are all
   exercised.
"""

import os
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from taskkeep.auth.google import (
    AuthenticationError,
    ExternalIdentity,
    get_identity_provider,
)
from taskkeep.config import settings
from taskkeep.db.engine import get_db
from taskkeep.db.models import Base
from taskkeep.main import app


class FakeIdentityProvider:
    """Maps authorization codes to identities; no network."""

    name = "google"

    def __init__(self):
        self.identities: dict[str, ExternalIdentity] = {}

    def register(
        self,
        code: str,
        subject: Optional[str],
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> None:
        self.identities[code] = ExternalIdentity(
            provider=self.name, subject=subject, email=email, name=name
        )

    def authorization_url(self, state: str) -> str:
        return "https://accounts.example.test/auth?" + urlencode({"state": state})

    async def authenticate(self, code: str) -> ExternalIdentity:
        if code not in self.identities:
            raise AuthenticationError("Unknown authorization code")
        return self.identities[code]


@pytest_asyncio.fixture()
async def engine(tmp_path):
    url = os.environ.get("TASKKEEP_TEST_DATABASE_URL") or (
        f"sqlite+aiosqlite:///{tmp_path / 'taskkeep.db'}"
    )
    eng = create_async_engine(url, echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture()
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """A session for arranging and inspecting data directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest_asyncio.fixture()
async def make_client(session_factory, identity_provider):
    """Factory for HTTP clients sharing the test database.

    Learn: Each client has its own cookie jar, so two clients model two
    browsers (two different users, or a user and an attacker).
    """
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider

    clients = []

    def make(**kwargs) -> AsyncClient:
        c = AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test", **kwargs
        )
        clients.append(c)
        return c

    yield make

    for c in clients:
        await c.aclose()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(make_client):
    """Anonymous API client."""
    return make_client()


@pytest.fixture
def sign_in(identity_provider):
    """Run the full Google sign-in flow on a client.

    Returns the callback response (a redirect with the session cookie).
    """
    async def _sign_in(
        c: AsyncClient,
        subject: Optional[str],
        email: Optional[str] = None,
        name: Optional[str] = None,
        code: Optional[str] = None,
    ):
        code = code or f"code-{subject}"
        identity_provider.register(code, subject, email=email, name=name)

        start = await c.get("/auth/google")
        assert start.status_code == 302
        state = parse_qs(urlparse(start.headers["location"]).query)["state"][0]

        return await c.get(
            "/auth/google/callback", params={"code": code, "state": state}
        )

    return _sign_in


@pytest_asyncio.fixture()
async def alice(make_client, sign_in):
    c = make_client()
    r = await sign_in(c, "google-alice", email="alice@example.com", name="Alice")
    assert r.headers["location"] == settings.app_url
    return c


@pytest_asyncio.fixture()
async def bob(make_client, sign_in):
    c = make_client()
    r = await sign_in(c, "google-bob", email="bob@example.com", name="Bob")
    assert r.headers["location"] == settings.app_url
    return c
