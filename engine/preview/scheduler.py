"""
CodeNANO Preview — Debounced Scheduler

One asyncio-based debounce primitive shared by the auto-run loop and the
auto-saver. Every schedule() restarts the quiet period; the callback fires
once the period elapses with no further schedule() call.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class DebouncedScheduler:
    """
    Debounce (not throttle) an async callback.

    schedule()  restart the timer
    cancel()    drop the pending call, if any
    flush()     drop the timer and run the callback now (no-op when nothing is pending)
    wait()      let a callback that already fired run to completion
    close()     drop the timer and cancel a running callback
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]], name: str = "debounce") -> None:
        self.delay = delay
        self.name = name
        self._callback = callback
        self._timer: asyncio.Task[None] | None = None
        self._running: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def running(self) -> bool:
        return self._running is not None and not self._running.done()

    def schedule(self) -> None:
        self.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._fire_later())

    def cancel(self) -> bool:
        """Returns True when a pending call was dropped."""
        timer, self._timer = self._timer, None
        if timer is None or timer.done():
            return False
        timer.cancel()
        return True

    async def flush(self) -> None:
        if self.cancel():
            await self._invoke()

    async def wait(self) -> None:
        """Wait for a callback that is currently running (not for a pending timer)."""
        if self._running is not None:
            await asyncio.shield(self._running)

    async def close(self) -> None:
        self.cancel()
        if self._running is not None and not self._running.done():
            self._running.cancel()
            try:
                await self._running
            except asyncio.CancelledError:
                pass

    async def _fire_later(self) -> None:
        await asyncio.sleep(self.delay)
        # Detach before running so a schedule() from inside the callback
        # arms a fresh timer instead of cancelling the running call.
        self._timer = None
        self._running = asyncio.current_task()
        await self._invoke()

    async def _invoke(self) -> None:
        try:
            await self._callback()
        except Exception:
            logger.exception("%s: scheduled callback failed", self.name)
