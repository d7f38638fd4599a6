"""
CodeNANO Preview — Editor Store

Explicit per-session state container. State changes only through
reduce(state, action) → ReduceResult, a pure function; EditorStore wraps the
current state, applies actions and notifies subscribers.

Actions are plain dicts keyed by "type":
  buffer.set      {buffer, value}
  title.set       {title}
  mode.set        {mode}
  project.load    {project_id, title, mode, html, css, js, updated_at}
  save.started    {}
  save.succeeded  {project_id, updated_at, revision}
  save.failed     {error}
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from engine.preview.types import BUFFER_NAMES, PROJECT_MODES, ProjectMode, SourceBuffers

logger = logging.getLogger(__name__)

SaveState = Literal["saved", "unsaved", "saving", "error"]


@dataclass(frozen=True)
class EditorState:
    buffers: SourceBuffers = field(default_factory=SourceBuffers)
    title: str = "Untitled Project"
    mode: ProjectMode = "html"
    project_id: UUID | None = None
    updated_at: datetime | None = None
    # Bumped on every content change; lets a finished save tell whether it
    # persisted the latest edits.
    revision: int = 0
    dirty: bool = False
    save_state: SaveState = "saved"
    last_error: str | None = None


class ReduceResult:
    """
    Result of applying one action.
    Never throws — always returns one of these.
    """

    __slots__ = ("state", "accepted", "reason")

    def __init__(self, state: EditorState, accepted: bool, reason: str | None = None) -> None:
        self.state = state
        self.accepted = accepted
        self.reason = reason

    def __repr__(self) -> str:  # pragma: no cover
        if self.accepted:
            return "ReduceResult(accepted=True)"
        return f"ReduceResult(accepted=False, reason={self.reason!r})"


def _reject(state: EditorState, reason: str) -> ReduceResult:
    return ReduceResult(state=state, accepted=False, reason=reason)


def _ok(state: EditorState) -> ReduceResult:
    return ReduceResult(state=state, accepted=True)


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------


def reduce(state: EditorState, action: dict[str, Any]) -> ReduceResult:
    """Pure function: (state, action) → ReduceResult."""
    action_type = action.get("type")

    if action_type == "buffer.set":
        name = action.get("buffer")
        value = action.get("value")
        if name not in BUFFER_NAMES:
            return _reject(state, f"unknown buffer: {name!r}")
        if not isinstance(value, str):
            return _reject(state, "buffer value must be a string")
        if getattr(state.buffers, name) == value:
            return _ok(state)
        return _ok(
            replace(
                state,
                buffers=state.buffers.with_buffer(name, value),
                revision=state.revision + 1,
                dirty=True,
                save_state="unsaved",
            )
        )

    if action_type == "title.set":
        title = action.get("title")
        if not isinstance(title, str) or not title.strip():
            return _reject(state, "title must be a non-empty string")
        return _ok(replace(state, title=title.strip(), revision=state.revision + 1, dirty=True, save_state="unsaved"))

    if action_type == "mode.set":
        mode = action.get("mode")
        if mode not in PROJECT_MODES:
            return _reject(state, f"unknown mode: {mode!r}")
        return _ok(replace(state, mode=mode, revision=state.revision + 1, dirty=True, save_state="unsaved"))

    if action_type == "project.load":
        mode = action.get("mode") or "html"
        if mode not in PROJECT_MODES:
            return _reject(state, f"unknown mode: {mode!r}")
        return _ok(
            EditorState(
                buffers=SourceBuffers(
                    html=action.get("html") or "",
                    css=action.get("css") or "",
                    js=action.get("js") or "",
                ),
                title=action.get("title") or "Untitled Project",
                mode=mode,
                project_id=action.get("project_id"),
                updated_at=action.get("updated_at"),
            )
        )

    if action_type == "save.started":
        return _ok(replace(state, save_state="saving", last_error=None))

    if action_type == "save.succeeded":
        saved_revision = action.get("revision", state.revision)
        caught_up = saved_revision == state.revision
        return _ok(
            replace(
                state,
                project_id=action.get("project_id", state.project_id),
                updated_at=action.get("updated_at", state.updated_at),
                dirty=not caught_up,
                save_state="saved" if caught_up else "unsaved",
            )
        )

    if action_type == "save.failed":
        return _ok(replace(state, save_state="error", last_error=action.get("error")))

    return _reject(state, f"unknown action type: {action_type!r}")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

Listener = Callable[[EditorState, dict[str, Any]], None]


class EditorStore:
    """Holds one editor session's state. Created per session and passed to its collaborators."""

    def __init__(self, state: EditorState | None = None) -> None:
        self._state = state or EditorState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def buffers(self) -> SourceBuffers:
        return self._state.buffers

    def dispatch(self, action: dict[str, Any]) -> ReduceResult:
        result = reduce(self._state, action)
        if not result.accepted:
            logger.debug("store: rejected %s: %s", action.get("type"), result.reason)
            return result
        if result.state is not self._state:
            self._state = result.state
            for listener in list(self._listeners):
                listener(self._state, action)
        return result

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
