"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown of the process-wide
resources (database pool, Redis pool). Middleware, CORS, exception
handlers and routers all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskkeep import __version__
from taskkeep.api import api_router
from taskkeep.api.errors import register_exception_handlers
from taskkeep.config import settings
from taskkeep.db.redis import close_redis, init_redis

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown. Uvicorn triggers shutdown on SIGTERM/SIGINT, so the pools
    are closed cleanly on termination.
    """
    logger.info(
        "taskkeep.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        session_backend=settings.session_backend,
    )

    try:
        await init_redis()
        logger.info("taskkeep.redis_connected", url=settings.redis_url)
    except Exception as e:
        if settings.session_backend == "redis":
            logger.error("taskkeep.redis_required", error=str(e))
            raise
        # Redis is optional: only rate limiting is lost
        logger.warning("taskkeep.redis_unavailable", error=str(e))

    yield

    logger.info("taskkeep.shutdown")

    await close_redis()

    from taskkeep.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="taskkeep",
        description="Per-user task tracking with Google sign-in",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from taskkeep.middleware.rate_limit import RateLimitMiddleware
    from taskkeep.middleware.request_id import RequestIdMiddleware
    from taskkeep.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    # Exactly one browser origin may send credentials
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: taskkeep.main:app)
app = create_app()
