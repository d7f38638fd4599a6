"""
CodeNANO Preview — Headless Runner

Loads a preview document the way the editor does: a host page at a fixed
origin mounts the document in a sandboxed iframe and relays every `message`
event (origin + data) to the Console Bridge. Runs in headless Chromium via
Playwright; used by the run endpoint and by the capture pipeline.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from playwright.async_api import Browser, Page, Route, async_playwright

from engine.preview.builder import build_preview_document
from engine.preview.console import ConsoleBridge
from engine.preview.sandbox import FrameMode, render_frame
from engine.preview.types import AUTORUN_DELAY, BuildOptions, ConsoleMessage, SourceBuffers

logger = logging.getLogger(__name__)

HOST_ORIGIN = "http://preview.codenano.local"

_RELAY_BINDING = "__codenanoRelay"

HOST_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>CodeNANO</title>
<style>
html, body { margin: 0; padding: 0; width: 100%%; height: 100%%; background: #ffffff; overflow: hidden; }
iframe { border: 0; width: 100%%; height: 100%%; display: block; }
</style>
</head>
<body>
<script>
window.addEventListener("message", function (event) {
  if (window.%(binding)s) window.%(binding)s(event.origin, event.data);
});
</script>
%(frame)s
</body>
</html>"""


def render_host_page(document: str, frame_mode: FrameMode = "srcdoc") -> str:
    """Host page that listens for bridge messages, then mounts the sandboxed frame."""
    return HOST_PAGE % {"binding": _RELAY_BINDING, "frame": render_frame(document, mode=frame_mode)}


@asynccontextmanager
async def headless_browser() -> AsyncIterator[Browser]:
    """Launch headless Chromium for the duration of the block."""
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=True)
        try:
            yield browser
        finally:
            await browser.close()


async def mount_preview(
    page: Page,
    document: str,
    host_origin: str = HOST_ORIGIN,
    frame_mode: FrameMode = "srcdoc",
    relay: Callable[[str, Any], Any] | None = None,
) -> None:
    """Serve the host page at `host_origin` and load it into `page`."""
    host_html = render_host_page(document, frame_mode)

    async def fulfill(route: Route) -> None:
        await route.fulfill(status=200, content_type="text/html; charset=utf-8", body=host_html)

    if relay is not None:

        def forward(origin: str, data: Any) -> None:
            relay(origin, data)

        await page.expose_function(_RELAY_BINDING, forward)
    await page.route(f"{host_origin}/", fulfill)
    await page.goto(f"{host_origin}/", wait_until="load")


class PreviewRunner:
    """Runs source buffers headlessly and collects what the console bridge accepted."""

    def __init__(
        self,
        browser: Browser,
        host_origin: str = HOST_ORIGIN,
        settle: float = AUTORUN_DELAY,
        frame_mode: FrameMode = "srcdoc",
    ) -> None:
        self.browser = browser
        self.host_origin = host_origin
        self.settle = settle
        self.frame_mode = frame_mode

    async def run(self, buffers: SourceBuffers, options: BuildOptions | None = None) -> list[ConsoleMessage]:
        document = build_preview_document(buffers, options)
        bridge = ConsoleBridge(self.host_origin)

        context = await self.browser.new_context()
        try:
            page = await context.new_page()
            await mount_preview(page, document, self.host_origin, self.frame_mode, relay=bridge.receive)
            await page.wait_for_timeout(self.settle * 1000)
        finally:
            await context.close()

        logger.info("runner: collected %d console messages", len(bridge.log))
        return bridge.log.messages
