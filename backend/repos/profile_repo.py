"""Repository for profiles."""

from __future__ import annotations

import time
from uuid import UUID

import asyncpg

from backend.db import system_conn, user_conn
from backend.models.profile import Profile, UpsertProfileRequest


def _row_to_profile(row: asyncpg.Record) -> Profile:
    return Profile(
        id=row["id"],
        username=row["username"],
        bio=row["bio"],
        avatar_url=row["avatar_url"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def default_username() -> str:
    """Placeholder handle for a profile created on first access."""
    return f"user_{int(time.time() * 1000)}"


class ProfileRepo:
    async def get(self, user_id: UUID) -> Profile | None:
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow("SELECT * FROM profiles WHERE id = $1", user_id)
            return _row_to_profile(row) if row else None

    async def get_or_create(self, user_id: UUID) -> Profile:
        """Own profile, created with a placeholder username the first time."""
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO profiles (id, username)
                VALUES ($1, $2)
                ON CONFLICT (id) DO UPDATE SET id = EXCLUDED.id
                RETURNING *
                """,
                user_id,
                default_username(),
            )
            return _row_to_profile(row)

    async def upsert(self, user_id: UUID, req: UpsertProfileRequest) -> Profile:
        """Create or update own profile. A taken username surfaces as a unique violation (409)."""
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO profiles (id, username, bio, avatar_url)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (id) DO UPDATE
                SET username = EXCLUDED.username,
                    bio = EXCLUDED.bio,
                    avatar_url = EXCLUDED.avatar_url,
                    updated_at = now()
                RETURNING *
                """,
                user_id,
                req.username,
                req.bio,
                req.avatar_url,
            )
            return _row_to_profile(row)

    async def get_by_username(self, username: str) -> Profile | None:
        """Profiles are public; looked up case-insensitively."""
        async with system_conn() as conn:
            row = await conn.fetchrow("SELECT * FROM profiles WHERE lower(username) = lower($1)", username)
            return _row_to_profile(row) if row else None
