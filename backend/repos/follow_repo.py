"""Repository for follower edges."""

from __future__ import annotations

from uuid import UUID

from backend.db import system_conn, user_conn
from backend.models.profile import FollowCounts


class FollowRepo:
    async def follow(self, follower_id: UUID, following_id: UUID) -> bool:
        """Idempotent. The table's check constraint rejects self-follows."""
        async with user_conn(follower_id) as conn:
            result = await conn.execute(
                """
                INSERT INTO followers (follower_id, following_id)
                VALUES ($1, $2)
                ON CONFLICT (follower_id, following_id) DO NOTHING
                """,
                follower_id,
                following_id,
            )
            return result == "INSERT 0 1"

    async def unfollow(self, follower_id: UUID, following_id: UUID) -> bool:
        async with user_conn(follower_id) as conn:
            result = await conn.execute(
                "DELETE FROM followers WHERE follower_id = $1 AND following_id = $2",
                follower_id,
                following_id,
            )
            return result == "DELETE 1"

    async def is_following(self, follower_id: UUID, following_id: UUID) -> bool:
        async with user_conn(follower_id) as conn:
            return bool(
                await conn.fetchval(
                    "SELECT EXISTS (SELECT 1 FROM followers WHERE follower_id = $1 AND following_id = $2)",
                    follower_id,
                    following_id,
                )
            )

    async def counts(self, user_id: UUID) -> FollowCounts:
        async with system_conn() as conn:
            row = await conn.fetchrow(
                """
                SELECT
                    (SELECT count(*) FROM followers WHERE following_id = $1) AS followers,
                    (SELECT count(*) FROM followers WHERE follower_id = $1) AS following
                """,
                user_id,
            )
            return FollowCounts(followers=row["followers"], following=row["following"])
