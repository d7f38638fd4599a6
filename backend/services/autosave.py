"""
Auto-save for an editor session.

Persists the session's EditorStore after AUTOSAVE_DELAY seconds with no
further edits, through the same DebouncedScheduler the auto-run loop uses.
Saves are serialized; an edit that lands during a save leaves the store dirty
and its own notify_edit() arms the next save.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

import asyncpg

from backend.errors import classify_postgres_error
from backend.models.project import CreateProjectRequest, Project, UpdateProjectRequest, save_validation_error
from backend.models.user import User
from backend.repos.project_repo import ProjectRepo, StaleProjectError
from engine.preview.scheduler import DebouncedScheduler
from engine.preview.store import EditorState, EditorStore
from engine.preview.types import AUTOSAVE_DELAY

logger = logging.getLogger(__name__)

# (save state, project id, error message)
SaveStateCallback = Callable[[str, UUID | None, str | None], Awaitable[None]]

STALE_MESSAGE = "Project was changed in another session. Reload to continue."


class SaveRejected(Exception):
    """A manual save was refused before reaching the database."""


class AutoSaver:
    def __init__(
        self,
        user: User,
        store: EditorStore,
        on_state: SaveStateCallback,
        repo: ProjectRepo | None = None,
        delay: float = AUTOSAVE_DELAY,
    ) -> None:
        self.user = user
        self.store = store
        self.repo = repo or ProjectRepo()
        self._on_state = on_state
        self._scheduler = DebouncedScheduler(delay, self._autosave, name="autosave")
        self._lock = asyncio.Lock()

    @property
    def pending(self) -> bool:
        return self._scheduler.pending

    def notify_edit(self) -> None:
        self._scheduler.schedule()

    async def save_now(self) -> Project | None:
        """
        Manual save: supersedes a pending auto-save.

        Raises:
            SaveRejected: title or content missing
        """
        self._scheduler.cancel()
        return await self._save(manual=True)

    async def flush(self) -> None:
        """Run a pending auto-save now (used when the session ends)."""
        await self._scheduler.flush()

    async def close(self) -> None:
        """Run a pending auto-save and let one already in flight finish."""
        await self._scheduler.flush()
        await self._scheduler.wait()

    async def _autosave(self) -> None:
        await self._save(manual=False)

    async def _save(self, manual: bool) -> Project | None:
        async with self._lock:
            state = self.store.state
            if not manual and not state.dirty:
                return None

            error = save_validation_error(state.title, state.buffers.html, state.buffers.css, state.buffers.js)
            if error:
                if manual:
                    raise SaveRejected(error)
                logger.debug("autosave: skipped, %s", error)
                return None

            self.store.dispatch({"type": "save.started"})
            await self._on_state("saving", state.project_id, None)

            try:
                project = await self._persist(state)
            except StaleProjectError:
                return await self._failed(state, STALE_MESSAGE)
            except asyncpg.PostgresError as e:
                _, message = classify_postgres_error(e)
                logger.warning("autosave: project=%s failed: %s", state.project_id, e)
                return await self._failed(state, message)

            if project is None:
                return await self._failed(state, "Project not found.")

            self.store.dispatch(
                {
                    "type": "save.succeeded",
                    "project_id": project.id,
                    "updated_at": project.updated_at,
                    "revision": state.revision,
                }
            )
            logger.info("autosave: saved project=%s revision=%d", project.id, state.revision)
            await self._on_state(self.store.state.save_state, project.id, None)
            return project

    async def _persist(self, state: EditorState) -> Project | None:
        buffers = state.buffers
        if state.project_id is None:
            return await self.repo.create(
                self.user.id,
                CreateProjectRequest(title=state.title, html=buffers.html, css=buffers.css, js=buffers.js, mode=state.mode),
            )
        return await self.repo.update(
            self.user.id,
            state.project_id,
            UpdateProjectRequest(
                title=state.title,
                html=buffers.html,
                css=buffers.css,
                js=buffers.js,
                mode=state.mode,
                expected_updated_at=state.updated_at,
            ),
        )

    async def _failed(self, state: EditorState, message: str) -> None:
        self.store.dispatch({"type": "save.failed", "error": message})
        await self._on_state("error", state.project_id, message)
        return None
