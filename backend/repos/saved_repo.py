"""Repository for saved (bookmarked) projects."""

from __future__ import annotations

from uuid import UUID

from backend.db import user_conn
from backend.models.project import Project
from backend.repos.project_repo import _row_to_project


class SavedProjectRepo:
    async def save(self, user_id: UUID, project_id: UUID) -> bool:
        """Bookmark a project. Idempotent; True if a new bookmark was created."""
        async with user_conn(user_id) as conn:
            result = await conn.execute(
                """
                INSERT INTO saved_projects (user_id, project_id)
                VALUES ($1, $2)
                ON CONFLICT (user_id, project_id) DO NOTHING
                """,
                user_id,
                project_id,
            )
            return result == "INSERT 0 1"

    async def unsave(self, user_id: UUID, project_id: UUID) -> bool:
        async with user_conn(user_id) as conn:
            result = await conn.execute(
                "DELETE FROM saved_projects WHERE user_id = $1 AND project_id = $2",
                user_id,
                project_id,
            )
            return result == "DELETE 1"

    async def list_for_user(self, user_id: UUID) -> list[Project]:
        """Bookmarked projects still visible to the user, most recently saved first."""
        async with user_conn(user_id) as conn:
            rows = await conn.fetch(
                """
                SELECT p.*
                FROM saved_projects s
                JOIN projects p ON p.id = s.project_id
                WHERE s.user_id = $1 AND (p.is_public OR p.user_id = $1)
                ORDER BY s.created_at DESC
                """,
                user_id,
            )
            return [_row_to_project(row) for row in rows]
