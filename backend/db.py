"""
Database pool and RLS-scoped connections.

Route handlers and repositories reach Postgres only through user_conn() or
system_conn(); nothing else calls pool.acquire().
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from uuid import UUID

import asyncpg

from backend import config

pool: asyncpg.Pool | None = None

# Tables the application expects; /api/setup reports which of them exist.
APP_TABLES: tuple[str, ...] = (
    "profiles",
    "projects",
    "project_versions",
    "followers",
    "saved_projects",
    "posts",
    "reels",
)


async def init_pool() -> None:
    """Create the pool. Called once from the app lifespan."""
    global pool
    pool = await asyncpg.create_pool(
        dsn=config.settings.DATABASE_URL,
        min_size=1,
        max_size=10,
        command_timeout=30,
        init=_init_connection,
    )


async def close_pool() -> None:
    global pool
    if pool is not None:
        await pool.close()
        pool = None


async def _init_connection(conn: asyncpg.Connection) -> None:
    """UUIDs come back as uuid.UUID, JSON columns as Python objects."""
    await conn.set_type_codec(
        "uuid",
        encoder=str,
        decoder=lambda x: UUID(x),
        schema="pg_catalog",
    )
    for json_type in ("json", "jsonb"):
        await conn.set_type_codec(
            json_type,
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )


def _require_pool() -> asyncpg.Pool:
    if pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")
    return pool


@asynccontextmanager
async def user_conn(user_id: str | UUID):
    """
    A transaction whose RLS context is `user_id`.

    Policies read current_setting('app.user_id'), so every statement on this
    connection sees the caller's own rows plus whatever the policies make
    public (public projects, profiles, follower edges).

    Usage:
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow("SELECT * FROM projects WHERE id = $1", project_id)
    """
    async with _require_pool().acquire() as conn:
        async with conn.transaction():
            await conn.execute("SELECT set_config('app.user_id', $1, true)", str(user_id))
            yield conn


@asynccontextmanager
async def system_conn():
    """
    A transaction with no user scoping.

    For:
    - Schema introspection (setup status)
    - Public reads that span multiple users (explore, public profiles)

    A route that returns one user's private data should be on user_conn().
    """
    async with _require_pool().acquire() as conn:
        async with conn.transaction():
            # Empty app.user_id selects the system branch of each policy.
            # LOCAL (true) keeps it scoped to this transaction.
            await conn.execute("SELECT set_config('app.user_id', '', true)")
            yield conn


async def existing_tables(conn: asyncpg.Connection, names: tuple[str, ...] = APP_TABLES) -> set[str]:
    """Which of `names` exist in the public schema."""
    rows = await conn.fetch(
        "SELECT table_name FROM information_schema.tables WHERE table_schema = 'public' AND table_name = ANY($1::text[])",
        list(names),
    )
    return {row["table_name"] for row in rows}
