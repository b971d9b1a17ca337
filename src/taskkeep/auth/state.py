"""Signed OAuth `state` tokens.

Learn: The `state` parameter round-trips through Google untouched. We
make it a short-lived JWT carrying a random nonce; the same nonce is set
in a cookie on our domain. On callback both must match, so a callback
URL crafted by someone else (login CSRF) is rejected.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from taskkeep.config import settings

JWT_ALGORITHM = "HS256"


class TokenError(Exception):
    """Raised when a state token can't be verified."""


def new_nonce() -> str:
    return secrets.token_urlsafe(16)


def create_state_token(nonce: str, expires_minutes: Optional[int] = None) -> str:
    """Create a signed state token bound to `nonce`."""
    now = datetime.now(timezone.utc)
    payload = {
        "nonce": nonce,
        "type": "oauth_state",
        "exp": now + timedelta(
            minutes=expires_minutes or settings.state_token_expire_minutes
        ),
        "iat": now,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=JWT_ALGORITHM)


def verify_state_token(token: Optional[str], nonce: Optional[str]) -> dict:
    """Verify a state token against the nonce from the browser cookie.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    if not token or not nonce:
        raise TokenError("Missing OAuth state")
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise TokenError("OAuth state has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid OAuth state: {e}")

    if payload.get("type") != "oauth_state":
        raise TokenError("Not an OAuth state token")
    if not secrets.compare_digest(str(payload.get("nonce", "")), nonce):
        raise TokenError("OAuth state does not match this browser")
    return payload
