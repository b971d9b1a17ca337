"""taskkeep CLI — run the server and maintain login sessions.

Usage:
    taskkeep serve                    # Run the API with uvicorn
    taskkeep serve --reload           # Dev mode
    taskkeep purge-sessions           # Delete expired database sessions
"""

from __future__ import annotations

import asyncio
import concurrent.futures
from typing import Optional

import click

from taskkeep import __version__
from taskkeep.config import settings


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop: normal CLI invocation
        return asyncio.run(coro)
    else:
        # Already inside an event loop (e.g. test runner): run in a thread
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="taskkeep")
def main():
    """taskkeep — per-user task tracking backend."""


# ---------------------------------------------------------------------------
# taskkeep serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help=f"Bind address (default {settings.host})")
@click.option("--port", default=None, type=int, help=f"Port (default {settings.port})")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run(
        "taskkeep.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# taskkeep purge-sessions
# ---------------------------------------------------------------------------


@main.command("purge-sessions")
def purge_sessions():
    """Delete expired login sessions from the database."""
    if settings.session_backend != "database":
        click.echo("Session backend is Redis; expired sessions are dropped by TTL.")
        return

    count = _run(_purge_impl())
    click.secho(f"Purged {count} expired session(s)", fg="green")


async def _purge_impl(session_factory=None) -> int:
    from taskkeep.services.session_service import SessionManager
    from taskkeep.services.session_store import DatabaseSessionStore

    if session_factory is None:
        from taskkeep.db.engine import async_session_factory, engine

        session_factory = async_session_factory
    else:
        engine = None

    try:
        async with session_factory() as db:
            manager = SessionManager(
                DatabaseSessionStore(db),
                max_age_seconds=settings.session_max_age_seconds,
            )
            return await manager.purge_expired()
    finally:
        if engine is not None:
            await engine.dispose()


if __name__ == "__main__":
    main()
