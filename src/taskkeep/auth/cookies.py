"""Session and OAuth-state cookie helpers."""

from starlette.responses import Response

from taskkeep.config import settings

STATE_COOKIE_NAME = "taskkeep_oauth_state"


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_max_age_seconds,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite=settings.cookie_samesite,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        settings.session_cookie_name,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite=settings.cookie_samesite,
    )


def set_state_cookie(response: Response, nonce: str) -> None:
    # Must be "lax": the callback is a top-level navigation from Google
    response.set_cookie(
        STATE_COOKIE_NAME,
        nonce,
        max_age=settings.state_token_expire_minutes * 60,
        path="/auth/google",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )


def clear_state_cookie(response: Response) -> None:
    response.delete_cookie(STATE_COOKIE_NAME, path="/auth/google")
