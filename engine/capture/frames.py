"""
CodeNANO Capture — Frame sources and raster helpers.

A frame source hands back one PNG per capture() call. The page-backed source
screenshots a headless page that mounts the preview through the same
sandboxed host page the runner uses.
"""

from __future__ import annotations

import io
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol

import numpy as np
from PIL import Image
from playwright.async_api import Browser, Page

from engine.capture.types import CaptureSettings
from engine.preview.runner import mount_preview


class FrameSource(Protocol):
    async def capture(self) -> bytes: ...


class PageFrameSource:
    """Screenshots of a mounted preview page, transparent where the page paints nothing."""

    def __init__(self, page: Page) -> None:
        self.page = page

    async def capture(self) -> bytes:
        return await self.page.screenshot(type="png", omit_background=True)


@asynccontextmanager
async def open_capture_page(browser: Browser, document: str, settings: CaptureSettings, scale: int) -> AsyncIterator[Page]:
    """A page sized for `settings` with the preview document mounted and loaded."""
    context = await browser.new_context(viewport=settings.viewport, device_scale_factor=scale)
    try:
        page = await context.new_page()
        await mount_preview(page, document)
        yield page
    finally:
        await context.close()


def flatten_on_white(png: bytes) -> Image.Image:
    """Composite a (possibly transparent) PNG onto a white background."""
    image = Image.open(io.BytesIO(png)).convert("RGBA")
    background = Image.new("RGBA", image.size, (255, 255, 255, 255))
    background.alpha_composite(image)
    return background.convert("RGB")


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def frame_to_array(png: bytes, size: tuple[int, int] | None = None) -> np.ndarray:
    """Decode a frame to an RGB uint8 array, resized to `size` (width, height) when given."""
    image = flatten_on_white(png)
    if size is not None and image.size != size:
        image = image.resize(size)
    return np.asarray(image, dtype=np.uint8)
