"""Repository for project operations."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID, uuid4

import asyncpg

from backend.db import system_conn, user_conn
from backend.models.project import (
    VERSION_HISTORY_LIMIT,
    CreateProjectRequest,
    Project,
    ProjectFile,
    ProjectVersion,
    UpdateProjectRequest,
)


class StaleProjectError(Exception):
    """The stored project changed after the client last read it."""

    def __init__(self, project_id: UUID, current_updated_at: datetime) -> None:
        super().__init__(f"Project {project_id} was modified at {current_updated_at.isoformat()}")
        self.project_id = project_id
        self.current_updated_at = current_updated_at


def _row_to_project(row: asyncpg.Record) -> Project:
    """Convert a database row to a Project model."""
    return Project(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        description=row["description"] or "",
        html=row["html"] or "",
        css=row["css"] or "",
        js=row["js"] or "",
        thumbnail=row["thumbnail"],
        is_public=row["is_public"],
        mode=row["mode"],
        tags=list(row["tags"] or []),
        files=[ProjectFile(**f) for f in row["files"] or []],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_version(row: asyncpg.Record) -> ProjectVersion:
    return ProjectVersion(
        id=row["id"],
        project_id=row["project_id"],
        title=row["title"],
        html=row["html"] or "",
        css=row["css"] or "",
        js=row["js"] or "",
        mode=row["mode"],
        files=[ProjectFile(**f) for f in row["files"] or []],
        saved_at=row["saved_at"],
    )


def _files_json(files: list[ProjectFile]) -> list[dict[str, str]]:
    return [f.model_dump() for f in files]


async def _record_version(conn: asyncpg.Connection, project: Project) -> None:
    """Snapshot `project` into its history, inside the caller's transaction."""
    await conn.execute(
        """
        INSERT INTO project_versions (project_id, user_id, title, html, css, js, mode, files)
        VALUES (# Columns an update may touch, in SET order.
_UPDATABLE = ("description", "html", "css", "js", "thumbnail", "is_public", "mode", "tags", , , , , , , )
        """,
        project.id,
        project.user_id,
        project.title,
        project.html,
        project.css,
        project.js,
        project.mode,
        _files_json(project.files),
    )


# Columns an update may touch, in SET order.
_UPDATABLE = ("description", "html", "css", "js", "thumbnail", "is_public", "mode", "tags", "files")


class ProjectRepo:
    """All project-related database operations."""

    async def create(self, user_id: UUID, req: CreateProjectRequest) -> Project:
        project_id = uuid4()
        now = datetime.now(UTC)

        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO projects (id, user_id, title, description, html, css, js,
                                      thumbnail, is_public, mode, tags, files, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $13)
                RETURNING *
                """,
                project_id,
                user_id,
                req.title.strip(),
                req.description,
                req.html,
                req.css,
                req.js,
                req.thumbnail,
                req.is_public,
                req.mode,
                req.tags,
                _files_json(req.files),
                now,
            )
            project = _row_to_project(row)
            await _record_version(conn, project)
            return project

    async def get_visible(self, user_id: UUID | None, project_id: UUID) -> Project | None:
        """
        A project the caller may read: their own, or any public one.
        Anonymous callers (user_id None) only see public projects.
        """
        if user_id is None:
            async with system_conn() as conn:
                row = await conn.fetchrow("SELECT * FROM projects WHERE id = $1 AND is_public", project_id)
                return _row_to_project(row) if row else None

        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                "SELECT * FROM projects WHERE id = $1 AND (user_id = $2 OR is_public)",
                project_id,
                user_id,
            )
            return _row_to_project(row) if row else None

    async def list_for_user(self, user_id: UUID) -> list[Project]:
        """Own projects, most recently updated first."""
        async with user_conn(user_id) as conn:
            rows = await conn.fetch(
                "SELECT * FROM projects WHERE user_id = $1 ORDER BY updated_at DESC",
                user_id,
            )
            return [_row_to_project(row) for row in rows]

    async def list_public(self, limit: int = 50, offset: int = 0, tag: str | None = None) -> list[tuple[Project, str | None]]:
        """Public projects, newest first, with the author's username when they have a profile."""
        async with system_conn() as conn:
            rows = await conn.fetch(
                """
                SELECT p.*, pr.username AS author
                FROM projects p
                LEFT JOIN profiles pr ON pr.id = p.user_id
                WHERE p.is_public AND ($3::text IS NULL OR $3 = ANY(p.tags))
                ORDER BY p.created_at DESC
                LIMIT $1 OFFSET $2
                """,
                limit,
                offset,
                tag,
            )
            return [(_row_to_project(row), row["author"]) for row in rows]

    async def list_public_for_user(self, owner_id: UUID) -> list[Project]:
        async with system_conn() as conn:
            rows = await conn.fetch(
                "SELECT * FROM projects WHERE user_id = $1 AND is_public ORDER BY updated_at DESC",
                owner_id,
            )
            return [_row_to_project(row) for row in rows]

    async def update(self, user_id: UUID, project_id: UUID, req: UpdateProjectRequest) -> Project | None:
        """
        Update an owned project.

        Returns None when the project does not exist or is not the caller's.

        Raises:
            StaleProjectError: expected_updated_at was given and no longer matches
        """
        updates: dict[str, object] = {"title": req.title.strip()}
        for column in _UPDATABLE:
            value = getattr(req, column)
            if value is not None:
                updates[column] = _files_json(value) if column == "files" else value

        set_clause = ", ".join(f"{k} = ${i + 4}" for i, k in enumerate(updates))

        async with user_conn(user_id) as conn:
            # S608/B608: set_clause only contains column names from _UPDATABLE
            row = await conn.fetchrow(
                f"""
                UPDATE projects
                SET {set_clause}, updated_at = now()
                WHERE id = $1 AND user_id = $2
                  AND ($3::timestamptz IS NULL OR updated_at = $3)
                RETURNING *
                """,  # nosec B608
                project_id,
                user_id,
                req.expected_updated_at,
                *updates.values(),
            )
            if row:
                project = _row_to_project(row)
                await _record_version(conn, project)
                return project

            if req.expected_updated_at is not None:
                current = await conn.fetchval(
                    "SELECT updated_at FROM projects WHERE id = $1 AND user_id = $2",
                    project_id,
                    user_id,
                )
                if current is not None:
                    raise StaleProjectError(project_id, current)
            return None

    async def delete(self, user_id: UUID, project_id: UUID) -> bool:
        """Owner-only delete. True if a row was removed."""
        async with user_conn(user_id) as conn:
            result = await conn.execute(
                "DELETE FROM projects WHERE id = $1 AND user_id = $2",
                project_id,
                user_id,
            )
            return result == "DELETE 1"

    async def fork(self, user_id: UUID, project_id: UUID) -> Project | None:
        """Copy a visible project into the caller's account as a private project."""
        source = await self.get_visible(user_id, project_id)
        if source is None:
            return None
        return await self.create(
            user_id,
            CreateProjectRequest(
                title=f"{source.title} (fork)"[:200],
                description=source.description,
                html=source.html,
                css=source.css,
                js=source.js,
                thumbnail=source.thumbnail,
                is_public=False,
                mode=source.mode,
                tags=source.tags,
                files=source.files,
            ),
        )

    async def list_versions(self, user_id: UUID, project_id: UUID, limit: int = VERSION_HISTORY_LIMIT) -> list[ProjectVersion] | None:
        """
        Latest saves of an owned project, newest first.

        Returns None when the project does not exist or is not the caller's.
        """
        async with user_conn(user_id) as conn:
            owned = await conn.fetchval(
                "SELECT 1 FROM projects WHERE id = $1 AND user_id = $2",
                project_id,
                user_id,
            )
            if owned is None:
                return None
            rows = await conn.fetch(
                """
                SELECT * FROM project_versions
                WHERE project_id = $1
                ORDER BY saved_at DESC
                LIMIT $2
                """,
                project_id,
                limit,
            )
            return [_row_to_version(row) for row in rows]

    async def restore_version(self, user_id: UUID, project_id: UUID, version_id: UUID) -> Project | None:
        """
        Write a saved version back into its project.

        The restore is itself a save, so it lands at the top of the history.
        Returns None when the project or version is missing or not the caller's.
        """
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                """
                UPDATE projects p
                SET title = v.title, html = v.html, css = v.css, js = v.js,
                    mode = v.mode, files = v.files, updated_at = now()
                FROM project_versions v
                WHERE p.id = $1 AND p.user_id = $2
                  AND v.id = $3 AND v.project_id = p.id
                RETURNING p.*
                """,
                project_id,
                user_id,
                version_id,
            )
            if row is None:
                return None
            project = _row_to_project(row)
            await _record_version(conn, project)
            return project
