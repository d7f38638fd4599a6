"""Repository for video reels."""

from __future__ import annotations

from uuid import UUID

import asyncpg

from backend.db import user_conn
from backend.models.content import CreateReelRequest, Reel, UpdateReelRequest


def _row_to_reel(row: asyncpg.Record) -> Reel:
    return Reel(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        description=row["description"] or "",
        video_url=row["video_url"],
        thumbnail_url=row["thumbnail_url"],
        aspect_ratio=row["aspect_ratio"],
        platform=row["platform"],
        quality=row["quality"],
        html=row["html"] or "",
        css=row["css"] or "",
        js=row["js"] or "",
        is_public=row["is_public"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class ReelRepo:
    async def create(
        self,
        user_id: UUID,
        reel_id: UUID,
        req: CreateReelRequest,
        video_url: str,
        thumbnail_url: str | None,
    ) -> Reel:
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO reels (id, user_id, title, description, video_url, thumbnail_url,
                                   aspect_ratio, platform, quality, html, css, js, is_public)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
                RETURNING *
                """,
                reel_id,
                user_id,
                req.title,
                req.description,
                video_url,
                thumbnail_url,
                req.aspect_ratio,
                req.platform,
                req.quality,
                req.html,
                req.css,
                req.js,
                req.is_public,
            )
            return _row_to_reel(row)

    async def get_visible(self, user_id: UUID, reel_id: UUID) -> Reel | None:
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                "SELECT * FROM reels WHERE id = $1 AND (user_id = $2 OR is_public)",
                reel_id,
                user_id,
            )
            return _row_to_reel(row) if row else None

    async def list_for_user(self, user_id: UUID) -> list[Reel]:
        async with user_conn(user_id) as conn:
            rows = await conn.fetch("SELECT * FROM reels WHERE user_id = $1 ORDER BY created_at DESC", user_id)
            return [_row_to_reel(row) for row in rows]

    async def update(self, user_id: UUID, reel_id: UUID, req: UpdateReelRequest) -> Reel | None:
        updates = req.model_dump(exclude_none=True)
        if not updates:
            return await self.get_visible(user_id, reel_id)

        set_clause = ", ".join(f"{k} = ${i + 3}" for i, k in enumerate(updates))
        async with user_conn(user_id) as conn:
            # S608/B608: keys come from UpdateReelRequest's declared fields
            row = await conn.fetchrow(
                f"""
                UPDATE reels
                SET {set_clause}, updated_at = now()
                WHERE id = $1 AND user_id = $2
                RETURNING *
                """,  # nosec B608
                reel_id,
                user_id,
                *updates.values(),
            )
            return _row_to_reel(row) if row else None

    async def delete(self, user_id: UUID, reel_id: UUID) -> Reel | None:
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                "DELETE FROM reels WHERE id = $1 AND user_id = $2 RETURNING *",
                reel_id,
                user_id,
            )
            return _row_to_reel(row) if row else None
