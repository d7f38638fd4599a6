"""
One live editor connection.

Owns the session's EditorStore, console bridge, auto-run loop, the latest
snippet capture and (for signed in users) auto-saver, and translates client
frames into store actions. A session opened without a project starts from a
starter template.

Protocol:
  Client → server:
    {"type": "buffer.update", "buffer": "html"|"css"|"js", "value": "..."}
    {"type": "title.update", "title": "..."}
    {"type": "mode.update", "mode": "html"|"react"|"vue"|"nextjs"|"astro"|"python"|"markdown"}
    {"type": "run"}
    {"type": "console.message", "origin": "...", "data": {...}}
    {"type": "console.clear"}
    {"type": "save"}
    {"type": "capture.image", "aspect_ratio": "portrait"|..., "quality": "standard"|...}
    {"type": "capture.discard"}

  Server → client:
    {"type": "session.ready", ...}
    {"type": "preview.loading", "loading": bool}
    {"type": "preview.document", "html": "...", "sequence": n}
    {"type": "console.append", "message": {...}}
    {"type": "console.cleared"}
    {"type": "save.state", "state": "...", "project_id": "...", "error"?: "..."}
    {"type": "capture.ready", "kind": "image", "mime_type": "...", "data_uri": "..."}
    {"type": "capture.discarded"}
    {"type": "error", "error": "..."}
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

import asyncpg

from backend.config import settings
from backend.errors import classify_postgres_error
from backend.middleware.rate_limit import rate_limiter
from backend.models.project import Project
from backend.models.user import User
from backend.repos.project_repo import ProjectRepo
from backend.services.autosave import AutoSaver, SaveRejected
from backend.services.capture import CaptureService, CaptureUnavailable, capture_service
from engine.capture.artifacts import ArtifactSlot
from engine.capture.types import ASPECT_DIMENSIONS, QUALITY_SCALE, CaptureError, CaptureSettings
from engine.preview.autorun import AutoRunLoop
from engine.preview.console import ConsoleBridge
from engine.preview.store import EditorStore
from engine.preview.templates import default_template, get_template
from engine.preview.types import AUTORUN_DELAY, AUTOSAVE_DELAY, MIN_LOADING_DURATION, BuildOptions, RenderResult

logger = logging.getLogger(__name__)

Send = Callable[[dict[str, Any]], Awaitable[None]]


class EditorSession:
    def __init__(
        self,
        send: Send,
        user: User | None,
        repo: ProjectRepo | None = None,
        host_origin: str | None = None,
        autorun_delay: float = AUTORUN_DELAY,
        autosave_delay: float = AUTOSAVE_DELAY,
        min_loading: float = MIN_LOADING_DURATION,
        capture: CaptureService | None = None,
    ) -> None:
        self.user = user
        self.repo = repo or ProjectRepo()
        self.store = EditorStore()
        self.console = ConsoleBridge(host_origin or settings.PREVIEW_HOST_ORIGIN)
        self.autorun = AutoRunLoop(
            self.store,
            on_render=self._send_render,
            on_loading=self._send_loading,
            delay=autorun_delay,
            min_loading=min_loading,
        )
        self.autosaver: AutoSaver | None = None
        if user is not None:
            self.autosaver = AutoSaver(user, self.store, self._send_save_state, repo=self.repo, delay=autosave_delay)
        self.capture = capture or capture_service
        self.captures = ArtifactSlot()

        self._send = send
        self._send_lock = asyncio.Lock()
        self._closed = False
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[None]]] = {
            "buffer.update": self._on_buffer_update,
            "title.update": self._on_title_update,
            "mode.update": self._on_mode_update,
            "run": self._on_run,
            "console.message": self._on_console_message,
            "console.clear": self._on_console_clear,
            "save": self._on_save,
            "capture.image": self._on_capture_image,
            "capture.discard": self._on_capture_discard,
        }

    # -- lifecycle ---------------------------------------------------------

    async def open(self, project_id: UUID | None = None, template_id: str | None = None) -> None:
        """Load the project (or a starter template), announce the session and render once."""
        if project_id is None:
            await self._load_template(template_id)
        else:
            project = await self._load(project_id)
            if project is not None:
                owned = self.user is not None and project.user_id == self.user.id
                self.store.dispatch(
                    {
                        "type": "project.load",
                        # Someone else's public project opens as an unsaved copy
                        "project_id": project.id if owned else None,
                        "title": project.title,
                        "mode": project.mode,
                        "html": project.html,
                        "css": project.css,
                        "js": project.js,
                        "updated_at": project.updated_at if owned else None,
                    }
                )

        state = self.store.state
        await self.emit(
            {
                "type": "session.ready",
                "project_id": str(state.project_id) if state.project_id else None,
                "title": state.title,
                "mode": state.mode,
                "buffers": state.buffers.to_dict(),
                "save_state": state.save_state,
                "can_save": self.autosaver is not None,
            }
        )
        await self.autorun.run_now()

    async def close(self) -> None:
        """Finish pending and in-flight saves, then cancel every timer."""
        self._closed = True
        if self.autosaver is not None:
            await self.autosaver.close()
        await self.autorun.close()
        self.captures.release()

    async def emit(self, frame: dict[str, Any]) -> None:
        if self._closed:
            return
        async with self._send_lock:
            await self._send(frame)

    # -- dispatch ----------------------------------------------------------

    async def handle(self, msg: dict[str, Any]) -> None:
        msg_type = msg.get("type")
        handler = self._handlers.get(msg_type) if isinstance(msg_type, str) else None
        if handler is None:
            logger.debug("editor: unknown message type %r", msg_type)
            await self._error(f"Unknown message type: {msg_type!r}")
            return
        await handler(msg)

    async def _on_buffer_update(self, msg: dict[str, Any]) -> None:
        await self._apply_edit({"type": "buffer.set", "buffer": msg.get("buffer"), "value": msg.get("value")}, rerun=True)

    async def _on_title_update(self, msg: dict[str, Any]) -> None:
        await self._apply_edit({"type": "title.set", "title": msg.get("title")}, rerun=False)

    async def _on_mode_update(self, msg: dict[str, Any]) -> None:
        await self._apply_edit({"type": "mode.set", "mode": msg.get("mode")}, rerun=True)

    async def _on_run(self, msg: dict[str, Any]) -> None:
        await self.autorun.run_now()

    async def _on_console_message(self, msg: dict[str, Any]) -> None:
        entry = self.console.receive(msg.get("origin"), msg.get("data"))
        if entry is not None:
            await self.emit({"type": "console.append", "message": entry.to_dict()})

    async def _on_console_clear(self, msg: dict[str, Any]) -> None:
        self.console.clear()
        await self.emit({"type": "console.cleared"})

    async def _on_save(self, msg: dict[str, Any]) -> None:
        if self.autosaver is None:
            await self._error("Sign in to save projects.")
            return
        try:
            project = await self.autosaver.save_now()
        except SaveRejected as e:
            await self._error(str(e))
            return
        if project is not None:
            notice = self.console.add("info", "Project saved")
            if notice is not None:
                await self.emit({"type": "console.append", "message": notice.to_dict()})

    async def _on_capture_image(self, msg: dict[str, Any]) -> None:
        if self.user is None:
            await self._error("Sign in to capture snippets.")
            return
        aspect_ratio = msg.get("aspect_ratio", "portrait")
        quality = msg.get("quality", "high")
        if not (isinstance(aspect_ratio, str) and isinstance(quality, str)) or (
            aspect_ratio not in ASPECT_DIMENSIONS or quality not in QUALITY_SCALE
        ):
            await self._error("Unknown aspect ratio or quality.")
            return
        if not rate_limiter.check_rate_limit(f"capture:{self.user.id}", settings.CAPTURE_RATE_LIMIT_PER_HOUR):
            await self._error("Too many requests. Please wait and try again.")
            return

        state = self.store.state
        try:
            artifact = await self.capture.capture_image(
                state.buffers,
                CaptureSettings(aspect_ratio=aspect_ratio, quality=quality),
                BuildOptions(mode=state.mode, title=state.title),
            )
        except (CaptureUnavailable, CaptureError) as e:
            logger.warning("editor: capture failed user=%s: %s", self.user.id, e)
            await self._error(str(e))
            return
        if self._closed:
            artifact.release()
            return

        self.captures.replace(artifact)
        await self.emit(
            {
                "type": "capture.ready",
                "kind": artifact.kind,
                "mime_type": artifact.mime_type,
                "data_uri": artifact.data_uri(),
            }
        )

    async def _on_capture_discard(self, msg: dict[str, Any]) -> None:
        self.captures.release()
        await self.emit({"type": "capture.discarded"})

    # -- helpers -----------------------------------------------------------

    async def _apply_edit(self, action: dict[str, Any], rerun: bool) -> None:
        before = self.store.state
        result = self.store.dispatch(action)
        if not result.accepted:
            await self._error(result.reason or "Edit rejected")
            return
        if result.state.revision == before.revision:
            return

        if rerun:
            self.autorun.notify_edit()
        if self.autosaver is not None:
            self.autosaver.notify_edit()
        if result.state.save_state != before.save_state:
            await self._send_save_state(result.state.save_state, result.state.project_id, None)

    async def _load_template(self, template_id: str | None) -> None:
        template = get_template(template_id) if template_id else default_template()
        if template is None:
            await self._error("Unknown template.")
            template = default_template()
        self.store.dispatch({"type": "project.load", "project_id": None, "mode": template.mode, **template.buffers.to_dict()})

    async def _load(self, project_id: UUID) -> Project | None:
        try:
            project = await self.repo.get_visible(self.user.id if self.user else None, project_id)
        except asyncpg.PostgresError as e:
            _, message = classify_postgres_error(e)
            logger.warning("editor: could not load project=%s: %s", project_id, e)
            await self._error(message)
            return None
        if project is None:
            await self._error("Project not found.")
        return project

    async def _send_render(self, result: RenderResult) -> None:
        await self.emit({"type": "preview.document", "html": result.document, "sequence": result.sequence})

    async def _send_loading(self, loading: bool) -> None:
        await self.emit({"type": "preview.loading", "loading": loading})

    async def _send_save_state(self, state: str, project_id: UUID | None, error: str | None) -> None:
        frame: dict[str, Any] = {
            "type": "save.state",
            "state": state,
            "project_id": str(project_id) if project_id else None,
        }
        if error:
            frame["error"] = error
        await self.emit(frame)

    async def _error(self, message: str) -> None:
        await self.emit({"type": "error", "error": message})
