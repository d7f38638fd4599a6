"""Project routes: CRUD, fork, bookmarks, version history and the sandboxed preview document."""

from __future__ import annotations

import logging
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import HTMLResponse

from backend.auth import get_current_user, get_optional_user
from backend.errors import is_missing_table
from backend.models.project import (
    CreateProjectRequest,
    ProjectResponse,
    ProjectVersion,
    UpdateProjectRequest,
    save_validation_error,
)
from backend.models.user import User
from backend.repos.project_repo import ProjectRepo, StaleProjectError
from backend.repos.saved_repo import SavedProjectRepo
from engine.preview.builder import build_preview_document
from engine.preview.sandbox import sandbox_headers
from engine.preview.types import BuildOptions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])
project_repo = ProjectRepo()
saved_repo = SavedProjectRepo()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")


@router.get("", status_code=200)
async def list_projects(user: User = Depends(get_current_user)) -> list[ProjectResponse]:
    """List the caller's projects, most recently updated first."""
    try:
        projects = await project_repo.list_for_user(user.id)
    except asyncpg.PostgresError as e:
        # A fresh install shows an empty dashboard rather than an error
        if is_missing_table(e):
            logger.warning("projects: table missing, returning empty list")
            return []
        raise
    return [ProjectResponse.from_model(p) for p in projects]


@router.post("", status_code=201)
async def create_project(
    req: CreateProjectRequest,
    user: User = Depends(get_current_user),
) -> ProjectResponse:
    """Create a project. Title required, and at least one buffer must have content."""
    error = save_validation_error(req.title, req.html, req.css, req.js)
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)
    project = await project_repo.create(user.id, req)
    logger.info("projects: created %s for user=%s", project.id, user.id)
    return ProjectResponse.from_model(project)


@router.get("/saved", status_code=200)
async def list_saved_projects(user: User = Depends(get_current_user)) -> list[ProjectResponse]:
    """Projects the caller bookmarked, newest bookmark first."""
    projects = await saved_repo.list_for_user(user.id)
    return [ProjectResponse.from_model(p) for p in projects]


@router.get("/{project_id}", status_code=200)
async def get_project(
    project_id: UUID,
    user: User | None = Depends(get_optional_user),
) -> ProjectResponse:
    """Own project, or anyone's public project."""
    project = await project_repo.get_visible(user.id if user else None, project_id)
    if not project:
        raise _not_found()
    return ProjectResponse.from_model(project)


@router.put("/{project_id}", status_code=200)
async def update_project(
    project_id: UUID,
    req: UpdateProjectRequest,
    user: User = Depends(get_current_user),
) -> ProjectResponse:
    """
    Update an owned project.

    With expected_updated_at, the write only lands if nobody saved in between;
    otherwise 409 and the client reloads. Without it the last write wins.
    """
    error = save_validation_error(req.title, req.html, req.css, req.js)
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)
    try:
        project = await project_repo.update(user.id, project_id, req)
    except StaleProjectError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Project was changed in another session. Reload to continue.",
        ) from e
    if not project:
        raise _not_found()
    return ProjectResponse.from_model(project)


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: UUID,
    user: User = Depends(get_current_user),
) -> None:
    deleted = await project_repo.delete(user.id, project_id)
    if not deleted:
        raise _not_found()
    logger.info("projects: deleted %s for user=%s", project_id, user.id)


@router.post("/{project_id}/fork", status_code=201)
async def fork_project(
    project_id: UUID,
    user: User = Depends(get_current_user),
) -> ProjectResponse:
    """Copy a visible project into the caller's account as a private project."""
    project = await project_repo.fork(user.id, project_id)
    if not project:
        raise _not_found()
    return ProjectResponse.from_model(project)


@router.get("/{project_id}/versions", status_code=200)
async def list_versions(
    project_id: UUID,
    user: User = Depends(get_current_user),
) -> list[ProjectVersion]:
    """The latest saves of an owned project, newest first."""
    versions = await project_repo.list_versions(user.id, project_id)
    if versions is None:
        raise _not_found()
    return versions


@router.post("/{project_id}/versions/{version_id}/restore", status_code=200)
async def restore_version(
    project_id: UUID,
    version_id: UUID,
    user: User = Depends(get_current_user),
) -> ProjectResponse:
    """Write a saved version back into the project. The restore is recorded as a new version."""
    project = await project_repo.restore_version(user.id, project_id, version_id)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Version not found.")
    logger.info("projects: restored %s to version %s for user=%s", project_id, version_id, user.id)
    return ProjectResponse.from_model(project)

@router.post("/{project_id}/save", status_code=204)
async def save_project(
    project_id: UUID,
    user: User = Depends(get_current_user),
) -> None:
    """Bookmark a project. Saving twice is a no-op."""
    if not await project_repo.get_visible(user.id, project_id):
        raise _not_found()
    await saved_repo.save(user.id, project_id)


@router.delete("/{project_id}/save", status_code=204)
async def unsave_project(
    project_id: UUID,
    user: User = Depends(get_current_user),
) -> None:
    await saved_repo.unsave(user.id, project_id)


@router.get("/{project_id}/preview", status_code=200)
async def preview_project(
    project_id: UUID,
    user: User | None = Depends(get_optional_user),
) -> HTMLResponse:
    """
    The project's preview document, served with a CSP sandbox so that opening
    it directly is as restricted as mounting it in the preview frame.
    """
    project = await project_repo.get_visible(user.id if user else None, project_id)
    if not project:
        raise _not_found()
    document = build_preview_document(project.buffers, BuildOptions(mode=project.mode, title=project.title))
    return HTMLResponse(content=document, headers=sandbox_headers())
