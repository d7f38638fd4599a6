"""Repository for image posts."""

from __future__ import annotations

from uuid import UUID

import asyncpg

from backend.db import user_conn
from backend.models.content import CreatePostRequest, Post


def _row_to_post(row: asyncpg.Record) -> Post:
    return Post(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        description=row["description"] or "",
        image_url=row["image_url"],
        thumbnail_url=row["thumbnail_url"],
        aspect_ratio=row["aspect_ratio"],
        html=row["html"] or "",
        css=row["css"] or "",
        js=row["js"] or "",
        is_public=row["is_public"],
        created_at=row["created_at"],
    )


class PostRepo:
    async def create(self, user_id: UUID, post_id: UUID, req: CreatePostRequest, image_url: str) -> Post:
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO posts (id, user_id, title, description, image_url, thumbnail_url,
                                   aspect_ratio, html, css, js, is_public)
                VALUES ($1, $2, $3, $4, $5, $5, $6, $7, $8, $9, $10)
                RETURNING *
                """,
                post_id,
                user_id,
                req.title,
                req.description,
                image_url,
                req.aspect_ratio,
                req.html,
                req.css,
                req.js,
                req.is_public,
            )
            return _row_to_post(row)

    async def list_for_user(self, user_id: UUID) -> list[Post]:
        async with user_conn(user_id) as conn:
            rows = await conn.fetch("SELECT * FROM posts WHERE user_id = $1 ORDER BY created_at DESC", user_id)
            return [_row_to_post(row) for row in rows]

    async def delete(self, user_id: UUID, post_id: UUID) -> Post | None:
        """Delete an owned post; returns the deleted row so its image can be removed."""
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                "DELETE FROM posts WHERE id = $1 AND user_id = $2 RETURNING *",
                post_id,
                user_id,
            )
            return _row_to_post(row) if row else None
