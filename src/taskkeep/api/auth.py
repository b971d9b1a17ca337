"""Auth API — Google sign-in, sign-out and the sign-in page.

Learn: Routes for the login session lifecycle:
- GET /auth/google → redirect to Google with a signed `state`
- GET /auth/google/callback → code → identity → user row → new session
- GET /signOut → destroy the server-side session, clear the cookie
- GET /signIn → bounce signed-in users to the app, else show the sign-in page

Any failure in the callback (bad state, provider error, missing subject
id) sends the browser back to the sign-in screen without a session.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from taskkeep.auth.cookies import (
    STATE_COOKIE_NAME,
    clear_session_cookie,
    clear_state_cookie,
    set_session_cookie,
    set_state_cookie,
)
from taskkeep.auth.dependencies import (
    get_login_session,
    get_session_manager,
    session_token,
)
from taskkeep.auth.google import (
    AuthenticationError,
    IdentityProvider,
    get_identity_provider,
)
from taskkeep.auth.state import (
    TokenError,
    create_state_token,
    new_nonce,
    verify_state_token,
)
from taskkeep.config import settings
from taskkeep.db.engine import get_db
from taskkeep.services.identity_service import IdentityService
from taskkeep.services.session_service import SessionManager
from taskkeep.services.session_store import SessionRecord, SessionStoreError

logger = structlog.get_logger()

router = APIRouter()

SIGN_IN_PAGE = """<!doctype html>
<html>
  <head><meta charset="utf-8"><title>Sign in</title></head>
  <body>
    <h1>Sign in</h1>
    <p><a href="/auth/google">Sign in with Google</a></p>
  </body>
</html>
"""


def _to_sign_in() -> RedirectResponse:
    response = RedirectResponse(settings.sign_in_url, status_code=302)
    clear_state_cookie(response)
    return response


# ─── Google OAuth ───────────────────────────────────────


@router.get("/auth/google")
async def google_login(provider: IdentityProvider = Depends(get_identity_provider)):
    """Start the OAuth handshake."""
    nonce = new_nonce()
    response = RedirectResponse(
        provider.authorization_url(create_state_token(nonce)), status_code=302
    )
    set_state_cookie(response, nonce)
    return response


@router.get("/auth/google/callback")
async def google_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    provider: IdentityProvider = Depends(get_identity_provider),
    manager: SessionManager = Depends(get_session_manager),
    db: AsyncSession = Depends(get_db),
):
    """Finish the handshake and bind a fresh session to the user."""
    if error:
        logger.info("auth.provider_denied", error=error)
        return _to_sign_in()

    try:
        verify_state_token(state, request.cookies.get(STATE_COOKIE_NAME))
    except TokenError as e:
        logger.warning("auth.bad_state", error=str(e))
        return _to_sign_in()

    try:
        identity = await provider.authenticate(code)
        user = await IdentityService(db).resolve(identity)
    except AuthenticationError as e:
        logger.warning("auth.callback_failed", error=str(e))
        return _to_sign_in()

    # Never reuse a session id that existed before login
    await manager.destroy(session_token(request))
    token = await manager.create(user.id)

    logger.info("auth.signed_in", user_id=user.id)
    response = RedirectResponse(settings.app_url, status_code=302)
    set_session_cookie(response, token)
    clear_state_cookie(response)
    return response


# ─── Sign in / out ──────────────────────────────────────


@router.get("/signOut")
async def sign_out(
    request: Request,
    manager: SessionManager = Depends(get_session_manager),
):
    """Destroy the session server-side, then clear the cookie."""
    try:
        await manager.destroy(session_token(request))
    except SessionStoreError as e:
        logger.error("auth.sign_out_failed", error=str(e))
        return PlainTextResponse("Could not destroy session", status_code=500)

    response = RedirectResponse(settings.sign_in_url, status_code=302)
    clear_session_cookie(response)
    return response


@router.get("/signIn")
async def sign_in(record: Optional[SessionRecord] = Depends(get_login_session)):
    if record is not None and not record.is_anonymous:
        return RedirectResponse(settings.app_url, status_code=302)
    return HTMLResponse(SIGN_IN_PAGE)
