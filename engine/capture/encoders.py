"""CodeNANO Capture — video encoders fed one frame at a time."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Protocol

import numpy as np
from moviepy.video.io.ffmpeg_writer import FFMPEG_VideoWriter


class VideoEncoder(Protocol):
    def write(self, frame: np.ndarray) -> None: ...

    def close(self) -> None: ...


# (output path, (width, height), fps, codec, bitrate) → encoder
EncoderFactory = Callable[[Path, tuple[int, int], int, str, str], VideoEncoder]


class FfmpegEncoder:
    """Pipes RGB frames into ffmpeg through moviepy's writer."""

    def __init__(self, path: Path, size: tuple[int, int], fps: int, codec: str, bitrate: str) -> None:
        self._writer = FFMPEG_VideoWriter(str(path), size, fps, codec=codec, bitrate=bitrate)

    def write(self, frame: np.ndarray) -> None:
        self._writer.write_frame(frame)

    def close(self) -> None:
        self._writer.close()
