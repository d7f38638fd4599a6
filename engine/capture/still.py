"""CodeNANO Capture — still image of the preview, flattened onto white."""

from __future__ import annotations

import asyncio
import logging

from engine.capture.frames import FrameSource, encode_png, flatten_on_white
from engine.capture.types import CapturedArtifact

logger = logging.getLogger(__name__)


async def capture_still(source: FrameSource) -> CapturedArtifact:
    png = await source.capture()
    image = await asyncio.to_thread(flatten_on_white, png)
    data = await asyncio.to_thread(encode_png, image)
    logger.info("capture: still %dx%d (%d bytes)", image.width, image.height, len(data))
    return CapturedArtifact(kind="image", mime_type="image/png", extension="png", data=data)
