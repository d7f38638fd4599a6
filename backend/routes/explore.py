"""Public project listing."""

from __future__ import annotations

from fastapi import APIRouter, Query

from backend.models.project import ProjectResponse
from backend.repos.project_repo import ProjectRepo

router = APIRouter(prefix="/api/explore", tags=["explore"])
project_repo = ProjectRepo()


@router.get("", status_code=200)
async def explore(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    tag: str | None = Query(default=None, max_length=50),
) -> list[ProjectResponse]:
    """Public projects, newest first. No sign-in required."""
    rows = await project_repo.list_public(limit=limit, offset=offset, tag=tag)
    return [ProjectResponse.from_model(project, author=author) for project, author in rows]
