"""
Headless capture service.

Owns one Chromium instance for the process (launched on first use) and runs
previews, stills and recordings against it. Each request gets its own
browser context, so sessions never share a page.
"""

from __future__ import annotations

import asyncio
import logging

from playwright.async_api import Browser, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from backend.config import settings
from engine.capture.codecs import detect_codecs
from engine.capture.frames import PageFrameSource, open_capture_page
from engine.capture.recorder import Recording
from engine.capture.still import capture_still
from engine.capture.strategies import select_strategy
from engine.capture.types import VIDEO_SCALE, CaptureError, CapturedArtifact, CaptureSettings, RecordingMethod
from engine.preview.builder import build_preview_document
from engine.preview.runner import PreviewRunner
from engine.preview.types import BuildOptions, ConsoleMessage, SourceBuffers

logger = logging.getLogger(__name__)


class CaptureUnavailable(Exception):
    """The headless browser could not be started."""


class RecordingBusy(Exception):
    """The owner already has a recording running."""


class CaptureService:
    def __init__(self) -> None:
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()
        # owner -> running recording; None while the page is still loading
        self._recordings: dict[str, Recording | None] = {}

    async def browser(self) -> Browser:
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            try:
                if self._playwright is None:
                    self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(headless=True)
            except PlaywrightError as e:
                logger.error("capture: could not launch Chromium: %s", e)
                raise CaptureUnavailable("Headless browser is not available") from e
            logger.info("capture: Chromium launched")
            return self._browser

    async def close(self) -> None:
        async with self._lock:
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None

    async def run_preview(self, buffers: SourceBuffers, options: BuildOptions | None = None) -> list[ConsoleMessage]:
        """Load the buffers headlessly and return what reached the console."""
        runner = PreviewRunner(
            await self.browser(),
            host_origin=settings.PREVIEW_HOST_ORIGIN,
            settle=settings.PREVIEW_RUN_SETTLE_SECONDS,
        )
        try:
            return await runner.run(buffers, options)
        except PlaywrightError as e:
            raise CaptureError(f"Preview run failed: {e}") from e

    async def capture_image(
        self,
        buffers: SourceBuffers,
        capture: CaptureSettings,
        options: BuildOptions | None = None,
    ) -> CapturedArtifact:
        """PNG of the rendered preview at the quality tier's scale."""
        document = build_preview_document(buffers, options)
        browser = await self.browser()
        try:
            async with open_capture_page(browser, document, capture, capture.still_scale) as page:
                return await capture_still(PageFrameSource(page))
        except PlaywrightError as e:
            raise CaptureError(f"Image capture failed: {e}") from e

    def stop_recording(self, owner: str) -> bool:
        """Ask `owner`'s running recording to finish early. False when none is running."""
        recording = self._recordings.get(owner)
        if recording is None or not recording.active:
            return False
        recording.request_stop()
        logger.info("capture: stop requested for %s", owner)
        return True

    async def record_video(
        self,
        buffers: SourceBuffers,
        capture: CaptureSettings,
        options: BuildOptions | None = None,
        method: RecordingMethod = "hybrid",
        owner: str | None = None,
    ) -> tuple[CapturedArtifact, CapturedArtifact]:
        """
        Thumbnail still plus a recording of the running preview.

        With an `owner`, the recording can be ended early through
        stop_recording(owner), and a second one for the same owner is refused
        while it runs.

        Returns (thumbnail, video). The caller owns both and releases them.

        Raises:
            RecordingBusy: `owner` already has a recording running
        """
        if owner is not None:
            if owner in self._recordings:
                raise RecordingBusy("A recording is already in progress.")
            self._recordings[owner] = None
        try:
            return await self._record(buffers, capture, options, method, owner)
        finally:
            if owner is not None:
                self._recordings.pop(owner, None)

    async def _record(
        self,
        buffers: SourceBuffers,
        capture: CaptureSettings,
        options: BuildOptions | None,
        method: RecordingMethod,
        owner: str | None,
    ) -> tuple[CapturedArtifact, CapturedArtifact]:
        document = build_preview_document(buffers, options)
        strategy = select_strategy(detect_codecs(), method, workdir=settings.CAPTURE_WORKDIR)
        browser = await self.browser()
        logger.info("capture: recording with %s (%s), up to %.1fs", strategy.name, strategy.codec, capture.max_seconds)

        try:
            async with open_capture_page(browser, document, capture, VIDEO_SCALE) as page:
                source = PageFrameSource(page)
                thumbnail = await capture_still(source)
                try:
                    recording = Recording(strategy, source, capture)
                    recording.start()
                    if owner is not None:
                        self._recordings[owner] = recording
                    video = await recording.wait()
                except BaseException:
                    thumbnail.release()
                    raise
        except PlaywrightError as e:
            raise CaptureError(f"Video capture failed: {e}") from e
        return thumbnail, video


capture_service = CaptureService()
