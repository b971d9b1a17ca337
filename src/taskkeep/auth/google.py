"""Google identity provider — the OAuth 2.0 authorization-code handshake.

Learn: The rest of the app only sees the IdentityProvider interface:
- authorization_url(state) → where to send the browser
- authenticate(code) → ExternalIdentity, or AuthenticationError

Everything Google-specific (endpoints, scopes, the token exchange and
the userinfo call) stays in this module, so tests swap in a fake
provider through FastAPI dependency overrides.
"""

from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import urlencode

import httpx
import structlog

from taskkeep.config import Settings, settings

logger = structlog.get_logger()


class AuthenticationError(Exception):
    """Raised when the identity provider step fails."""


@dataclass(frozen=True)
class ExternalIdentity:
    """Who the provider says the user is."""

    provider: str
    subject: Optional[str]
    email: Optional[str] = None
    name: Optional[str] = None


class IdentityProvider(Protocol):
    name: str

    def authorization_url(self, state: str) -> str: ...

    async def authenticate(self, code: str) -> ExternalIdentity: ...


class GoogleIdentityProvider:
    """OpenID Connect against Google's OAuth 2.0 endpoints."""

    name = "google"
    scopes = ("openid", "email", "profile")

    def __init__(
        self,
        config: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.config = config
        self._transport = transport
        self._timeout = timeout

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.config.google_client_id,
            "redirect_uri": self.config.google_callback_url,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "access_type": "offline",
            "state": state,
        }
        return f"{self.config.google_auth_url}?{urlencode(params)}"

    async def authenticate(self, code: str) -> ExternalIdentity:
        """Exchange the authorization code and fetch the user's profile."""
        if not code:
            raise AuthenticationError("Missing authorization code")

        async with httpx.AsyncClient(
            transport=self._transport, timeout=self._timeout
        ) as client:
            try:
                token_resp = await client.post(
                    self.config.google_token_url,
                    data={
                        "code": code,
                        "client_id": self.config.google_client_id,
                        "client_secret": self.config.google_client_secret,
                        "redirect_uri": self.config.google_callback_url,
                        "grant_type": "authorization_code",
                    },
                )
                if token_resp.status_code != 200:
                    logger.warning(
                        "google.token_exchange_failed",
                        status=token_resp.status_code,
                    )
                    raise AuthenticationError("Token exchange failed")

                access_token = token_resp.json().get("access_token")
                if not access_token:
                    raise AuthenticationError("No access token in provider response")

                info_resp = await client.get(
                    self.config.google_userinfo_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                if info_resp.status_code != 200:
                    logger.warning(
                        "google.userinfo_failed", status=info_resp.status_code
                    )
                    raise AuthenticationError("Could not fetch user profile")
                profile = info_resp.json()
            except httpx.HTTPError as e:
                logger.warning("google.unreachable", error=str(e))
                raise AuthenticationError(f"Identity provider unreachable: {e}")
            except ValueError:
                raise AuthenticationError("Malformed identity provider response")

        return ExternalIdentity(
            provider=self.name,
            subject=profile.get("sub"),
            email=profile.get("email"),
            name=profile.get("name"),
        )


def get_identity_provider() -> IdentityProvider:
    """FastAPI dependency — the configured identity provider."""
    return GoogleIdentityProvider(settings)
