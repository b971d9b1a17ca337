"""App-level exception handlers.

Learn: The gate denies unconditionally; only the presentation depends on
who is asking. API clients (fetch/XHR asking for JSON) get a status code
and a JSON body; a browser navigating to the page gets a redirect to the
sign-in screen.

Store failures are logged here and answered with a bare 500 so that no
SQL or driver detail reaches the client.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from taskkeep.auth.cookies import clear_session_cookie
from taskkeep.auth.dependencies import InvalidSession, LoginRequired
from taskkeep.config import settings
from taskkeep.services.session_store import SessionStoreError

logger = structlog.get_logger()


def wants_json(request: Request) -> bool:
    """True unless the caller explicitly prefers HTML over JSON."""
    accept = request.headers.get("accept", "").lower()
    if not accept or "application/json" in accept:
        return True
    return "text/html" not in accept


def _deny(request: Request, status_code: int, detail: str, clear_cookie: bool):
    if wants_json(request):
        response = JSONResponse(status_code=status_code, content={"detail": detail})
    else:
        response = RedirectResponse(settings.sign_in_url, status_code=302)
    if clear_cookie:
        clear_session_cookie(response)
    return response


async def login_required_handler(request: Request, exc: LoginRequired):
    return _deny(request, 401, "Login required", clear_cookie=False)


async def invalid_session_handler(request: Request, exc: InvalidSession):
    return _deny(request, 403, "Invalid session", clear_cookie=True)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Malformed request body", "errors": jsonable_encoder(exc.errors())},
    )


async def store_error_handler(request: Request, exc: Exception):
    logger.error(
        "store.error",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LoginRequired, login_required_handler)
    app.add_exception_handler(InvalidSession, invalid_session_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SessionStoreError, store_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
