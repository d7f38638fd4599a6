"""
CodeNANO Capture — Shared Types

Settings, quality tiers and the artifact handed back by every capture path.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

logger = logging.getLogger(__name__)

AspectRatio = Literal["portrait", "square", "landscape"]
Quality = Literal["standard", "high", "ultra"]
RecordingMethod = Literal["hybrid", "stream", "frame_sequence"]

# Output size in device pixels for each aspect ratio.
ASPECT_DIMENSIONS: dict[str, tuple[int, int]] = {
    "portrait": (1080, 1920),
    "square": (1080, 1080),
    "landscape": (1080, 608),
}

# Still images rasterize at 1x/2x/3x of the CSS viewport.
QUALITY_SCALE: dict[str, int] = {"standard": 1, "high": 2, "ultra": 3}

QUALITY_BITRATE: dict[str, str] = {"standard": "2500k", "high": "5000k", "ultra": "8000k"}

DEFAULT_FPS = 30
DEFAULT_MAX_SECONDS = 15.0
MAX_RECORDING_SECONDS = 60.0

# Video frames are rendered at 2x a half-size CSS viewport, which lands on
# the target dimensions exactly.
VIDEO_SCALE = 2


class CaptureError(Exception):
    """A capture step failed in a way the caller should report."""


@dataclass(frozen=True)
class CaptureSettings:
    aspect_ratio: AspectRatio = "portrait"
    quality: Quality = "high"
    fps: int = DEFAULT_FPS
    max_seconds: float = DEFAULT_MAX_SECONDS

    def __post_init__(self) -> None:
        if self.fps <= 0:
            raise ValueError("fps must be positive")
        if not 0 < self.max_seconds <= MAX_RECORDING_SECONDS:
            raise ValueError(f"max_seconds must be in (0, {MAX_RECORDING_SECONDS:g}]")

    @property
    def viewport(self) -> dict[str, int]:
        """CSS viewport: half the target dimensions."""
        width, height = ASPECT_DIMENSIONS[self.aspect_ratio]
        return {"width": width // 2, "height": height // 2}

    @property
    def still_scale(self) -> int:
        return QUALITY_SCALE[self.quality]

    @property
    def bitrate(self) -> str:
        return QUALITY_BITRATE[self.quality]

    @property
    def frame_interval(self) -> float:
        return 1.0 / self.fps

    @property
    def max_frames(self) -> int:
        return max(1, round(self.max_seconds * self.fps))


@dataclass
class CapturedArtifact:
    """
    A still image (bytes in memory) or a video (temporary file).

    Owners call release() when the artifact is replaced or no longer shown;
    video files are removed from disk at that point.
    """

    kind: Literal["image", "video"]
    mime_type: str
    extension: str
    data: bytes | None = None
    path: Path | None = None
    frame_count: int = 0
    released: bool = False

    def read_bytes(self) -> bytes:
        if self.released:
            raise CaptureError("Artifact has been released")
        if self.data is not None:
            return self.data
        if self.path is not None:
            return self.path.read_bytes()
        raise CaptureError("Artifact has no content")

    def data_uri(self) -> str:
        encoded = base64.b64encode(self.read_bytes()).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self.data = None
        if self.path is not None:
            try:
                self.path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("capture: could not remove %s: %s", self.path, e)
