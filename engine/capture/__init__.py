"""
CodeNANO Capture — still images and short videos of a running preview.

  types       settings, quality tiers, CapturedArtifact
  frames      frame sources (Playwright screenshots) and raster helpers (PIL, numpy)
  still       one-shot PNG capture
  codecs      which encoders the bundled ffmpeg offers
  encoders    moviepy-backed frame writer
  strategies  stream vs frame-sequence recording, hybrid selection
  recorder    start / stop / wait around a strategy run
  artifacts   ownership and release of temporary outputs
"""

from engine.capture.artifacts import ArtifactSlot
from engine.capture.codecs import CodecSupport, detect_codecs
from engine.capture.recorder import Recording
from engine.capture.still import capture_still
from engine.capture.strategies import FrameSequenceStrategy, RecordingStrategy, StreamCaptureStrategy, select_strategy
from engine.capture.types import CaptureError, CapturedArtifact, CaptureSettings

__all__ = [
    "ArtifactSlot",
    "CodecSupport",
    "detect_codecs",
    "Recording",
    "capture_still",
    "FrameSequenceStrategy",
    "RecordingStrategy",
    "StreamCaptureStrategy",
    "select_strategy",
    "CaptureError",
    "CapturedArtifact",
    "CaptureSettings",
]
