"""
CodeNANO Capture — A recording in progress.

Wraps one strategy run in a task so the caller can start it, stop it early
or wait for it to finish. The recording stops by itself once
`settings.max_seconds` of wall-clock time has passed.
"""

from __future__ import annotations

import asyncio

from engine.capture.frames import FrameSource
from engine.capture.strategies import RecordingStrategy
from engine.capture.types import CaptureError, CapturedArtifact, CaptureSettings


class Recording:
    def __init__(self, strategy: RecordingStrategy, source: FrameSource, settings: CaptureSettings) -> None:
        self.strategy = strategy
        self.source = source
        self.settings = settings
        self._stop = asyncio.Event()
        self._task: asyncio.Task[CapturedArtifact] | None = None
        self._deadline: asyncio.TimerHandle | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            raise CaptureError("Recording already started")
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self.strategy.record(self.source, self.settings, self._stop))
        self._deadline = loop.call_later(self.settings.max_seconds, self._stop.set)

    def request_stop(self) -> None:
        """End after the frame in flight; whoever awaits wait() gets the result."""
        self._stop.set()

    async def stop(self) -> CapturedArtifact:
        """Request a stop; the frame in flight is kept."""
        self.request_stop()
        return await self.wait()

    async def wait(self) -> CapturedArtifact:
        if self._task is None:
            raise CaptureError("Recording was never started")
        try:
            return await self._task
        finally:
            if self._deadline is not None:
                self._deadline.cancel()
