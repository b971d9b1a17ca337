"""Google identity provider tests against httpx.MockTransport."""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from taskkeep.auth.google import AuthenticationError, GoogleIdentityProvider
from taskkeep.config import Settings

CONFIG = Settings(
    google_client_id="client-123",
    google_client_secret="shh",
    google_callback_url="https://api.example.com/auth/google/callback",
)


def _provider(handler) -> GoogleIdentityProvider:
    return GoogleIdentityProvider(CONFIG, transport=httpx.MockTransport(handler))


def _google(profile=None, token_status=200, info_status=200):
    """Build a handler that plays Google's token and userinfo endpoints."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == CONFIG.google_token_url:
            seen["token_form"] = parse_qs(request.content.decode())
            return httpx.Response(token_status, json={"access_token": "at-1"})
        if str(request.url) == CONFIG.google_userinfo_url:
            seen["authorization"] = request.headers.get("authorization")
            return httpx.Response(info_status, json=profile or {})
        return httpx.Response(404)

    return handler, seen


def test_authorization_url():
    url = GoogleIdentityProvider(CONFIG).authorization_url("st-1")
    parsed = urlparse(url)
    params = parse_qs(parsed.query)

    assert url.startswith(CONFIG.google_auth_url)
    assert params["client_id"] == ["client-123"]
    assert params["redirect_uri"] == [CONFIG.google_callback_url]
    assert params["response_type"] == ["code"]
    assert params["state"] == ["st-1"]
    assert set(params["scope"][0].split()) == {"openid", "email", "profile"}


@pytest.mark.asyncio
async def test_authenticate_success():
    handler, seen = _google(
        {"sub": "1098", "email": "ada@example.com", "name": "Ada"}
    )
    identity = await _provider(handler).authenticate("auth-code")

    assert identity.provider == "google"
    assert identity.subject == "1098"
    assert identity.email == "ada@example.com"
    assert identity.name == "Ada"
    assert seen["token_form"]["code"] == ["auth-code"]
    assert seen["token_form"]["grant_type"] == ["authorization_code"]
    assert seen["authorization"] == "Bearer at-1"


@pytest.mark.asyncio
async def test_authenticate_profile_without_optional_fields():
    handler, _ = _google({"sub": "1098"})
    identity = await _provider(handler).authenticate("auth-code")
    assert identity.subject == "1098"
    assert identity.email is None
    assert identity.name is None


@pytest.mark.asyncio
async def test_missing_subject_is_passed_through_as_none():
    """The identity service, not the provider, rejects a missing subject."""
    handler, _ = _google({"email": "x@example.com"})
    identity = await _provider(handler).authenticate("auth-code")
    assert identity.subject is None


@pytest.mark.asyncio
async def test_token_exchange_failure():
    handler, _ = _google({"sub": "1"}, token_status=400)
    with pytest.raises(AuthenticationError):
        await _provider(handler).authenticate("bad-code")


@pytest.mark.asyncio
async def test_userinfo_failure():
    handler, _ = _google({"sub": "1"}, info_status=401)
    with pytest.raises(AuthenticationError):
        await _provider(handler).authenticate("auth-code")


@pytest.mark.asyncio
async def test_network_error():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(AuthenticationError):
        await _provider(handler).authenticate("auth-code")


@pytest.mark.asyncio
@pytest.mark.parametrize("code", [None, ""])
async def test_missing_code(code):
    handler, _ = _google({"sub": "1"})
    with pytest.raises(AuthenticationError):
        await _provider(handler).authenticate(code)
