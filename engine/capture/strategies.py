"""
CodeNANO Capture — Recording strategies.

Two ways to turn a frame source into a video:

  StreamCaptureStrategy    encode each frame as it is grabbed (needs an MP4 or WEBM encoder)
  FrameSequenceStrategy    grab PNGs into memory first, encode them at the target fps afterwards

A frame that fails to capture is logged and skipped; recording continues.
An encoder failure removes the partial file and surfaces as CaptureError.
Both strategies stop after max_frames frames; Recording adds the wall-clock cap.
Stopping is cooperative: the frame in flight when stop is requested finishes
and is written before the encoder closes.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from engine.capture.codecs import MP4_ENCODER, WEBM_ENCODER, CodecSupport
from engine.capture.encoders import EncoderFactory, FfmpegEncoder, VideoEncoder
from engine.capture.frames import FrameSource, frame_to_array
from engine.capture.types import CaptureError, CapturedArtifact, CaptureSettings, RecordingMethod

logger = logging.getLogger(__name__)

_CONTAINER_MIME = {"mp4": "video/mp4", "webm": "video/webm"}


class RecordingStrategy(ABC):
    name = "base"

    def __init__(
        self,
        codec: str,
        container: str,
        encoder_factory: EncoderFactory = FfmpegEncoder,
        workdir: str | None = None,
    ) -> None:
        if container not in _CONTAINER_MIME:
            raise ValueError(f"Unsupported container: {container}")
        self.codec = codec
        self.container = container
        self.encoder_factory = encoder_factory
        self.workdir = workdir

    @property
    def mime_type(self) -> str:
        return _CONTAINER_MIME[self.container]

    @abstractmethod
    async def record(self, source: FrameSource, settings: CaptureSettings, stop: asyncio.Event) -> CapturedArtifact:
        """Record until `stop` is set or `settings.max_frames` frames are in hand."""

    def _new_output_path(self) -> Path:
        fd, name = tempfile.mkstemp(prefix="codenano-", suffix=f".{self.container}", dir=self.workdir)
        os.close(fd)
        return Path(name)

    def _open_encoder(self, path: Path, size: tuple[int, int], settings: CaptureSettings) -> VideoEncoder:
        return self.encoder_factory(path, size, settings.fps, self.codec, settings.bitrate)

    def _artifact(self, path: Path, frame_count: int) -> CapturedArtifact:
        return CapturedArtifact(
            kind="video",
            mime_type=self.mime_type,
            extension=self.container,
            path=path,
            frame_count=frame_count,
        )


class StreamCaptureStrategy(RecordingStrategy):
    name = "stream"

    async def record(self, source: FrameSource, settings: CaptureSettings, stop: asyncio.Event) -> CapturedArtifact:
        path = self._new_output_path()
        try:
            written = await self._stream(source, settings, stop, path)
        except asyncio.CancelledError:
            path.unlink(missing_ok=True)
            raise
        except Exception as e:
            path.unlink(missing_ok=True)
            raise CaptureError(f"Video encoding failed: {e}") from e

        if written == 0:
            path.unlink(missing_ok=True)
            raise CaptureError("No frames were captured")

        logger.info("capture: stream recorded %d frames (%s)", written, self.codec)
        return self._artifact(path, written)

    async def _stream(self, source: FrameSource, settings: CaptureSettings, stop: asyncio.Event, path: Path) -> int:
        loop = asyncio.get_running_loop()
        encoder: VideoEncoder | None = None
        size: tuple[int, int] | None = None
        written = 0
        index = 0

        try:
            while not stop.is_set() and written < settings.max_frames:
                started = loop.time()
                png = await _grab(source, index)
                index += 1
                if png is not None:
                    frame = await asyncio.to_thread(frame_to_array, png, size)
                    if encoder is None:
                        size = (frame.shape[1], frame.shape[0])
                        encoder = self._open_encoder(path, size, settings)
                    await asyncio.to_thread(encoder.write, frame)
                    written += 1
                await _wait_next_frame(stop, started, settings.frame_interval)
        finally:
            if encoder is not None:
                await asyncio.to_thread(encoder.close)
        return written


class FrameSequenceStrategy(RecordingStrategy):
    name = "frame_sequence"

    async def record(self, source: FrameSource, settings: CaptureSettings, stop: asyncio.Event) -> CapturedArtifact:
        loop = asyncio.get_running_loop()
        frames: list[bytes] = []

        for index in range(settings.max_frames):
            if stop.is_set():
                break
            started = loop.time()
            png = await _grab(source, index)
            if png is not None:
                frames.append(png)
            await _wait_next_frame(stop, started, settings.frame_interval)

        if not frames:
            raise CaptureError("No frames were captured")

        path = self._new_output_path()
        try:
            await asyncio.to_thread(self._encode, frames, path, settings)
        except Exception as e:
            path.unlink(missing_ok=True)
            raise CaptureError(f"Video encoding failed: {e}") from e

        logger.info("capture: frame sequence encoded %d frames (%s)", len(frames), self.codec)
        return self._artifact(path, len(frames))

    def _encode(self, frames: list[bytes], path: Path, settings: CaptureSettings) -> None:
        first = frame_to_array(frames[0])
        size = (first.shape[1], first.shape[0])
        encoder = self._open_encoder(path, size, settings)
        try:
            encoder.write(first)
            for png in frames[1:]:
                encoder.write(frame_to_array(png, size))
        finally:
            encoder.close()


async def _grab(source: FrameSource, index: int) -> bytes | None:
    try:
        return await source.capture()
    except Exception as e:
        logger.warning("capture: frame %d failed: %s", index, e)
        return None


async def _wait_next_frame(stop: asyncio.Event, started: float, interval: float) -> None:
    remaining = interval - (asyncio.get_running_loop().time() - started)
    if remaining <= 0:
        return
    try:
        await asyncio.wait_for(stop.wait(), timeout=remaining)
    except TimeoutError:
        pass


def select_strategy(
    support: CodecSupport,
    method: RecordingMethod = "hybrid",
    encoder_factory: EncoderFactory = FfmpegEncoder,
    workdir: str | None = None,
) -> RecordingStrategy:
    """
    hybrid          MP4 stream, else WEBM stream, else frame sequence to WEBM
    stream          MP4 or WEBM stream, error when neither encoder exists
    frame_sequence  always buffer frames; MP4 when available
    """
    if method == "frame_sequence":
        codec, container = (MP4_ENCODER, "mp4") if support.mp4 else (WEBM_ENCODER, "webm")
        return FrameSequenceStrategy(codec, container, encoder_factory, workdir)

    if support.mp4:
        return StreamCaptureStrategy(MP4_ENCODER, "mp4", encoder_factory, workdir)
    if support.webm:
        return StreamCaptureStrategy(WEBM_ENCODER, "webm", encoder_factory, workdir)
    if method == "stream":
        raise CaptureError("No streaming video encoder is available")
    return FrameSequenceStrategy(WEBM_ENCODER, "webm", encoder_factory, workdir)

