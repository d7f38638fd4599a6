"""
CodeNANO Preview — Auto-Run Loop

Decides when to rebuild the preview:

    Idle ──edit──▶ PendingRebuild ──quiet period──▶ Rebuilding ──▶ Idle
                        ▲    │
                        └edit┘   (each edit restarts the timer)

A manual run skips the quiet period. Edits that land while a rebuild is in
progress re-arm the timer once the rebuild, loading flag included, is done,
so rebuilds never overlap. Every rebuild reconstructs the whole document.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace

from engine.preview.builder import build_preview_document
from engine.preview.scheduler import DebouncedScheduler
from engine.preview.store import EditorStore
from engine.preview.types import AUTORUN_DELAY, MIN_LOADING_DURATION, BuildOptions, RenderResult

logger = logging.getLogger(__name__)

RenderCallback = Callable[[RenderResult], Awaitable[None]]
LoadingCallback = Callable[[bool], Awaitable[None]]


class RunState(enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    REBUILDING = "rebuilding"


class AutoRunLoop:
    def __init__(
        self,
        store: EditorStore,
        on_render: RenderCallback,
        on_loading: LoadingCallback | None = None,
        options: BuildOptions | None = None,
        delay: float = AUTORUN_DELAY,
        min_loading: float = MIN_LOADING_DURATION,
    ) -> None:
        self.store = store
        self.options = options or BuildOptions()
        self.min_loading = min_loading
        self.state = RunState.IDLE
        self.rebuild_count = 0
        self._on_render = on_render
        self._on_loading = on_loading
        self._scheduler = DebouncedScheduler(delay, self._rebuild, name="autorun")
        self._lock = asyncio.Lock()
        self._edited_during_rebuild = False
        self._closed = False

    def notify_edit(self) -> None:
        """An edit landed in one of the buffers."""
        if self._closed:
            return
        if self.state is RunState.REBUILDING:
            self._edited_during_rebuild = True
            return
        self.state = RunState.PENDING
        self._scheduler.schedule()

    async def run_now(self) -> RenderResult:
        """Manual run: supersede any pending timer and rebuild immediately."""
        self._scheduler.cancel()
        return await self._rebuild()

    async def close(self) -> None:
        """Stop for good; a rebuild cut short here does not re-arm the timer."""
        self._closed = True
        await self._scheduler.close()
        self.state = RunState.IDLE

    async def _rebuild(self) -> RenderResult:
        async with self._lock:
            self.state = RunState.REBUILDING
            self._edited_during_rebuild = False
            try:
                if self._on_loading is not None:
                    await self._on_loading(True)

                state = self.store.state
                options = self.options if self.options.mode == state.mode else _with_mode(self.options, state.mode)
                document = build_preview_document(state.buffers, options)
                self.rebuild_count += 1
                result = RenderResult(document=document, sequence=self.rebuild_count, buffers=state.buffers)

                await self._on_render(result)
                await asyncio.sleep(self.min_loading)
                logger.debug("autorun: rebuild #%d (%d bytes)", result.sequence, len(document))
                return result
            finally:
                if self._on_loading is not None:
                    await self._on_loading(False)
                if self._edited_during_rebuild and not self._closed:
                    self.state = RunState.PENDING
                    self._scheduler.schedule()
                else:
                    self.state = RunState.IDLE


def _with_mode(options: BuildOptions, mode: str) -> BuildOptions:
    return replace(options, mode=mode)
