"""
Async database access for the reminder engine.

One lazily created engine (asyncpg in production) hands out short-lived
connections. There is no shared transaction: every write helper in
reminders.queries commits its own row before returning, so a run ledger
row, claim or delivery row is durable as soon as it is written and no
transaction is held open across an SMS gateway call.
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

APPLICATION_NAME = "shift-reminders"

_engine: AsyncEngine | None = None


def _get_database_url() -> str:
    """
    Async database URL from DATABASE_URL.

    A plain postgresql:// URL is switched to the asyncpg driver.
    """
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise ValueError("DATABASE_URL environment variable must be set.")

    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return database_url


def _engine_options(database_url: str) -> dict:
    """
    Engine keyword arguments for a URL.

    The engine runs one tick at a time and each step holds a connection
    only briefly, so the Postgres pool stays small.
    """
    options = {
        "echo": os.environ.get("SQL_ECHO", "").lower() == "true",
        "pool_pre_ping": True,  # Ticks are a minute apart; drop dead connections
    }
    if database_url.startswith("postgresql+asyncpg://"):
        options.update(
            pool_size=2,
            max_overflow=3,
            pool_timeout=30,
            pool_recycle=1800,
            connect_args={"server_settings": {"application_name": APPLICATION_NAME}},
        )
    return options


def get_engine() -> AsyncEngine:
    """Get or create the async SQLAlchemy engine singleton."""
    global _engine
    if _engine is None:
        database_url = _get_database_url()
        _engine = create_async_engine(database_url, **_engine_options(database_url))
    return _engine


@asynccontextmanager
async def get_connection() -> AsyncGenerator[AsyncConnection, None]:
    """
    Get a connection from the pool.

    Nothing is committed on exit; work the caller did not commit is
    rolled back when the connection returns to the pool.

    Usage:
        async with get_connection() as conn:
            claimed = await try_claim_run(conn, rule_id, target_date, kind)
    """
    async with get_engine().connect() as conn:
        yield conn


def set_engine(engine: AsyncEngine | None) -> None:
    """
    Replace the engine singleton.

    Tests use this to point get_connection() at an engine created on the
    test's own event loop.
    """
    global _engine
    _engine = engine


async def close_engine() -> None:
    """Close the engine and all connections. Call on shutdown."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def get_sync_database_url() -> str:
    """psycopg2 URL for Alembic, which migrates synchronously."""
    database_url = os.environ.get("DATABASE_URL", "")

    if "postgresql+asyncpg://" in database_url:
        return database_url.replace("postgresql+asyncpg://", "postgresql://")
    if database_url.startswith("postgresql://"):
        return database_url

    raise ValueError("DATABASE_URL must be set for migrations")
