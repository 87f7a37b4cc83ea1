"""SportsHub CLI — run the server and do one-off maintenance.

Usage:
    sportshub serve                      # Run the API + WebSocket server
    sportshub init-db                    # Create tables and seed an empty database
    sportshub init-db --no-seed          # Create tables only
    sportshub purge-tokens               # Delete expired refresh tokens once
    sportshub hash-password              # Print a bcrypt hash (prompts for input)
"""

from __future__ import annotations

import asyncio
import concurrent.futures
from typing import Optional

import click

from sportshub import __version__

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop — normal CLI invocation
        return asyncio.run(coro)
    else:
        # Already inside an event loop (e.g. test runner) — run in a thread
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


async def _init_db(seed: bool) -> list[str]:
    from sportshub.db.engine import async_session_factory, engine, init_db
    from sportshub.db.seed import seed_database

    try:
        await init_db()
        if not seed:
            return []
        async with async_session_factory() as db:
            return await seed_database(db)
    finally:
        await engine.dispose()


async def _purge() -> int:
    from sportshub.db.engine import engine
    from sportshub.services.token_purge_worker import purge_once

    try:
        return await purge_once()
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(__version__, prog_name="sportshub")
def cli():
    """SportsHub — college sports events, teams, notifications and chat."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: SPORTSHUB_HOST).")
@click.option("--port", default=None, type=int, help="Port (default: SPORTSHUB_PORT).")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes.")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP + WebSocket server with uvicorn."""
    import uvicorn

    from sportshub.config import settings

    uvicorn.run(
        "sportshub.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("init-db")
@click.option("--seed/--no-seed", default=True, help="Seed empty tables with defaults.")
def init_db_cmd(seed: bool):
    """Create the schema (and seed an empty database)."""
    seeded = _run(_init_db(seed))
    click.secho("Schema ready.", fg="green")
    if seeded:
        click.echo(f"Seeded: {', '.join(seeded)}")
    elif seed:
        click.echo("Nothing to seed: tables already populated.")


@cli.command("purge-tokens")
def purge_tokens():
    """Delete expired refresh-token records once."""
    removed = _run(_purge())
    click.echo(f"Removed {removed} expired refresh token(s).")


@cli.command("hash-password")
@click.password_option(help="Password to hash (prompted when omitted).")
def hash_password_cmd(password: str):
    """Print a bcrypt hash, e.g. to provision an admin by hand."""
    from sportshub.auth.password import hash_password

    click.echo(hash_password(password))


def main():
    cli()


if __name__ == "__main__":
    main()
