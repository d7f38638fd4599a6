"""
CodeNANO Capture — Codec detection.

Asks the bundled ffmpeg which video encoders it has. MP4 needs H.264
(libx264); WEBM needs VP8 (libvpx).
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from functools import lru_cache

import imageio_ffmpeg

logger = logging.getLogger(__name__)

MP4_ENCODER = "libx264"
WEBM_ENCODER = "libvpx"


@dataclass(frozen=True)
class CodecSupport:
    mp4: bool = False
    webm: bool = False

    @property
    def streaming(self) -> bool:
        """True when at least one encoder can take frames as they are captured."""
        return self.mp4 or self.webm


def parse_encoders(output: str) -> CodecSupport:
    """
    Parse `ffmpeg -encoders` output.

    Encoder lines look like ` V....D libx264   libx264 H.264 / AVC ...`: a
    six-character flag field whose first letter is the media type, then the name.
    """
    names: set[str] = set()
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 2 and len(parts[0]) == 6 and parts[0].startswith("V"):
            names.add(parts[1])
    return CodecSupport(mp4=MP4_ENCODER in names, webm=WEBM_ENCODER in names)


@lru_cache(maxsize=1)
def detect_codecs() -> CodecSupport:
    """Detect once per process."""
    try:
        ffmpeg = imageio_ffmpeg.get_ffmpeg_exe()
    except RuntimeError as e:
        logger.warning("capture: ffmpeg not found: %s", e)
        return CodecSupport()

    try:
        result = subprocess.run(  # noqa: S603
            [ffmpeg, "-hide_banner", "-encoders"],
            capture_output=True,
            text=True,
            timeout=10,
            check=True,
        )
    except (subprocess.SubprocessError, OSError) as e:
        logger.warning("capture: could not list ffmpeg encoders: %s", e)
        return CodecSupport()

    support = parse_encoders(result.stdout)
    logger.info("capture: codec support mp4=%s webm=%s", support.mp4, support.webm)
    return support
