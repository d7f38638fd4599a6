"""
CodeNANO Capture -- Pipeline Tests

Uses an in-memory frame source (PIL-generated PNGs) and a fake encoder, so
no browser or ffmpeg is needed. Covers:
  - still capture flattens transparency onto white
  - stream and frame-sequence recording honour max frames
  - a frame that throws is skipped and recording continues
  - an encoder that breaks mid-recording leaves no temporary file behind
  - stop() keeps the in-flight frame and closes the encoder
  - hybrid strategy selection from codec support
  - ffmpeg encoder list parsing
  - artifact release removes temporary files
"""

import asyncio
import io

import numpy as np
import pytest
from PIL import Image

from engine.capture.artifacts import ArtifactSlot
from engine.capture.codecs import CodecSupport, parse_encoders
from engine.capture.frames import flatten_on_white, frame_to_array
from engine.capture.recorder import Recording
from engine.capture.still import capture_still
from engine.capture.strategies import FrameSequenceStrategy, StreamCaptureStrategy, select_strategy
from engine.capture.types import CaptureError, CapturedArtifact, CaptureSettings

# ============================================================================
# Fakes
# ============================================================================


def png_bytes(color=(255, 0, 0, 255), size=(8, 4)):
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeSource:
    """Returns a PNG per call; raises on the call numbers listed in `fail_on` (1-based)."""

    def __init__(self, fail_on=(), delay=0.0):
        self.calls = 0
        self.fail_on = set(fail_on)
        self.delay = delay

    async def capture(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.calls in self.fail_on:
            raise RuntimeError("page detached")
        return png_bytes()


class FakeEncoder:
    instances = []

    def __init__(self, path, size, fps, codec, bitrate):
        self.path = path
        self.size = size
        self.fps = fps
        self.codec = codec
        self.bitrate = bitrate
        self.frames = []
        self.closed = False
        FakeEncoder.instances.append(self)

    def write(self, frame):
        assert not self.closed
        self.frames.append(frame)

    def close(self):
        self.closed = True
        self.path.write_bytes(b"video")


class BrokenEncoder(FakeEncoder):
    """Fails on the given write, the way ffmpeg does when its pipe closes."""

    fail_at = 3

    def write(self, frame):
        if len(self.frames) + 1 == self.fail_at:
            raise OSError("broken pipe from ffmpeg")
        super().write(frame)


@pytest.fixture(autouse=True)
def reset_encoders():
    FakeEncoder.instances = []
    yield


def fast_settings(frames=10):
    # fps=100 keeps the test short; frames/100 seconds of recording
    return CaptureSettings(aspect_ratio="square", quality="standard", fps=100, max_seconds=frames / 100)


# ============================================================================
# Settings
# ============================================================================


class TestSettings:
    def test_viewport_and_frames(self):
        settings = CaptureSettings(aspect_ratio="portrait", quality="ultra", fps=30, max_seconds=15)
        assert settings.viewport == {"width": 540, "height": 960}
        assert settings.still_scale == 3
        assert settings.bitrate == "8000k"
        assert settings.max_frames == 450

    def test_landscape(self):
        assert CaptureSettings(aspect_ratio="landscape").viewport == {"width": 540, "height": 304}

    @pytest.mark.parametrize("seconds", [0, -1, 61])
    def test_duration_bounds(self, seconds):
        with pytest.raises(ValueError):
            CaptureSettings(max_seconds=seconds)

    def test_fps_positive(self):
        with pytest.raises(ValueError):
            CaptureSettings(fps=0)


# ============================================================================
# Raster helpers and still capture
# ============================================================================


class TestStill:
    def test_transparent_becomes_white(self):
        image = flatten_on_white(png_bytes(color=(0, 0, 0, 0)))
        assert image.mode == "RGB"
        assert image.getpixel((0, 0)) == (255, 255, 255)

    def test_frame_to_array_resizes(self):
        array = frame_to_array(png_bytes(size=(8, 4)), size=(4, 2))
        assert array.shape == (2, 4, 3)
        assert array.dtype == np.uint8

    @pytest.mark.asyncio
    async def test_capture_still(self):
        artifact = await capture_still(FakeSource())
        assert artifact.kind == "image"
        assert artifact.mime_type == "image/png"
        assert artifact.data_uri().startswith("data:image/png;base64,")
        image = Image.open(io.BytesIO(artifact.read_bytes()))
        assert image.size == (8, 4)
        assert image.getpixel((0, 0)) == (255, 0, 0)


# ============================================================================
# Recording strategies
# ============================================================================


class TestStreamCapture:
    @pytest.mark.asyncio
    async def test_records_max_frames(self, tmp_path):
        strategy = StreamCaptureStrategy("libx264", "mp4", FakeEncoder, str(tmp_path))
        artifact = await strategy.record(FakeSource(), fast_settings(10), asyncio.Event())
        encoder = FakeEncoder.instances[0]
        assert artifact.frame_count == 10
        assert len(encoder.frames) == 10
        assert encoder.closed
        assert encoder.size == (8, 4)
        assert artifact.mime_type == "video/mp4"
        assert artifact.path.suffix == ".mp4"
        assert artifact.read_bytes() == b"video"

    @pytest.mark.asyncio
    async def test_failed_frame_is_skipped(self, tmp_path):
        strategy = StreamCaptureStrategy("libvpx", "webm", FakeEncoder, str(tmp_path))
        source = FakeSource(fail_on={3})
        artifact = await strategy.record(source, fast_settings(10), asyncio.Event())
        # capture continues after the failure until max frames are written
        assert source.calls == 11
        assert artifact.frame_count == 10

    @pytest.mark.asyncio
    async def test_no_frames_raises_and_cleans_up(self, tmp_path):
        strategy = StreamCaptureStrategy("libx264", "mp4", FakeEncoder, str(tmp_path))
        stop = asyncio.Event()
        source = FakeSource(fail_on=range(1, 1000))

        async def stop_soon():
            await asyncio.sleep(0.005)
            stop.set()

        asyncio.get_running_loop().create_task(stop_soon())
        with pytest.raises(CaptureError):
            await strategy.record(source, fast_settings(1), stop)
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_encoder_failure_cleans_up(self, tmp_path):
        strategy = StreamCaptureStrategy("libvpx", "webm", BrokenEncoder, str(tmp_path))
        with pytest.raises(CaptureError, match="broken pipe") as excinfo:
            await strategy.record(FakeSource(), fast_settings(10), asyncio.Event())
        assert isinstance(excinfo.value.__cause__, OSError)
        assert FakeEncoder.instances[0].closed
        assert list(tmp_path.iterdir()) == []


class TestFrameSequence:
    @pytest.mark.asyncio
    async def test_one_throwing_frame_yields_max_minus_one(self, tmp_path):
        strategy = FrameSequenceStrategy("libvpx", "webm", FakeEncoder, str(tmp_path))
        artifact = await strategy.record(FakeSource(fail_on={3}), fast_settings(10), asyncio.Event())
        assert artifact.frame_count == 9
        assert len(FakeEncoder.instances[0].frames) == 9
        assert FakeEncoder.instances[0].fps == 100
        assert artifact.mime_type == "video/webm"

    @pytest.mark.asyncio
    async def test_all_frames_fail(self, tmp_path):
        strategy = FrameSequenceStrategy("libvpx", "webm", FakeEncoder, str(tmp_path))
        with pytest.raises(CaptureError):
            await strategy.record(FakeSource(fail_on=range(1, 20)), fast_settings(5), asyncio.Event())
        assert FakeEncoder.instances == []

    @pytest.mark.asyncio
    async def test_encoder_failure_cleans_up(self, tmp_path):
        strategy = FrameSequenceStrategy("libx264", "mp4", BrokenEncoder, str(tmp_path))
        with pytest.raises(CaptureError, match="broken pipe"):
            await strategy.record(FakeSource(), fast_settings(5), asyncio.Event())
        assert list(tmp_path.iterdir()) == []


class TestRecording:
    @pytest.mark.asyncio
    async def test_stop_keeps_in_flight_frame(self, tmp_path):
        strategy = StreamCaptureStrategy("libx264", "mp4", FakeEncoder, str(tmp_path))
        source = FakeSource(delay=0.03)
        settings = CaptureSettings(aspect_ratio="square", quality="standard", fps=10, max_seconds=10)
        recording = Recording(strategy, source, settings)
        recording.start()
        assert recording.active
        await asyncio.sleep(0.01)

        artifact = await recording.stop()
        assert not recording.active
        assert source.calls == 1
        assert artifact.frame_count == 1
        assert FakeEncoder.instances[0].closed

    @pytest.mark.asyncio
    async def test_request_stop_ends_waiting_recording(self, tmp_path):
        strategy = StreamCaptureStrategy("libx264", "mp4", FakeEncoder, str(tmp_path))
        settings = CaptureSettings(aspect_ratio="square", quality="standard", fps=10, max_seconds=10)
        recording = Recording(strategy, FakeSource(delay=0.01), settings)
        recording.start()
        waiter = asyncio.get_running_loop().create_task(recording.wait())

        await asyncio.sleep(0.25)
        recording.request_stop()
        artifact = await asyncio.wait_for(waiter, timeout=1)

        assert 1 <= artifact.frame_count < settings.max_frames
        assert not recording.active

    @pytest.mark.asyncio
    async def test_wait_hits_duration_cap(self, tmp_path):
        strategy = FrameSequenceStrategy("libvpx", "webm", FakeEncoder, str(tmp_path))
        # slow frames: the wall-clock cap ends the recording well before max_frames
        settings = fast_settings(12)
        recording = Recording(strategy, FakeSource(delay=0.05), settings)
        recording.start()
        artifact = await recording.wait()
        assert 1 <= artifact.frame_count <= 4 < settings.max_frames

    @pytest.mark.asyncio
    async def test_double_start(self, tmp_path):
        strategy = FrameSequenceStrategy("libvpx", "webm", FakeEncoder, str(tmp_path))
        recording = Recording(strategy, FakeSource(), fast_settings(1))
        recording.start()
        with pytest.raises(CaptureError):
            recording.start()
        await recording.wait()

    @pytest.mark.asyncio
    async def test_wait_before_start(self, tmp_path):
        strategy = FrameSequenceStrategy("libvpx", "webm", FakeEncoder, str(tmp_path))
        with pytest.raises(CaptureError):
            await Recording(strategy, FakeSource(), fast_settings(1)).wait()


# ============================================================================
# Strategy selection and codec detection
# ============================================================================


class TestSelection:
    def test_hybrid_prefers_mp4_stream(self):
        strategy = select_strategy(CodecSupport(mp4=True, webm=True))
        assert isinstance(strategy, StreamCaptureStrategy)
        assert strategy.container == "mp4"

    def test_hybrid_falls_back_to_webm_stream(self):
        strategy = select_strategy(CodecSupport(webm=True))
        assert isinstance(strategy, StreamCaptureStrategy)
        assert strategy.codec == "libvpx"

    def test_hybrid_falls_back_to_frame_sequence(self):
        strategy = select_strategy(CodecSupport())
        assert isinstance(strategy, FrameSequenceStrategy)
        assert strategy.container == "webm"

    def test_stream_without_codecs_errors(self):
        with pytest.raises(CaptureError):
            select_strategy(CodecSupport(), method="stream")

    def test_forced_frame_sequence(self):
        strategy = select_strategy(CodecSupport(mp4=True), method="frame_sequence")
        assert isinstance(strategy, FrameSequenceStrategy)
        assert strategy.container == "mp4"

    def test_unknown_container(self):
        with pytest.raises(ValueError):
            StreamCaptureStrategy("libx264", "avi")


class TestCodecParsing:
    SAMPLE = """Encoders:
 V..... = Video
 A..... = Audio
 ------
 V....D libx264              libx264 H.264 / AVC / MPEG-4 AVC (codec h264)
 V....D libvpx               libvpx VP8 (codec vp8)
 A....D aac                  AAC (Advanced Audio Coding)
"""

    def test_both(self):
        assert parse_encoders(self.SAMPLE) == CodecSupport(mp4=True, webm=True)

    def test_none(self):
        support = parse_encoders(" A....D aac   AAC\n")
        assert support == CodecSupport()
        assert not support.streaming

    def test_legend_lines_ignored(self):
        assert parse_encoders(" V..... = Video\n") == CodecSupport()


# ============================================================================
# Artifacts
# ============================================================================


class TestArtifacts:
    def test_release_removes_file(self, tmp_path):
        path = tmp_path / "clip.webm"
        path.write_bytes(b"x")
        artifact = CapturedArtifact(kind="video", mime_type="video/webm", extension="webm", path=path)
        artifact.release()
        assert not path.exists()
        assert artifact.released
        with pytest.raises(CaptureError):
            artifact.read_bytes()
        artifact.release()

    def test_slot_replace_releases_previous(self, tmp_path):
        first_path = tmp_path / "a.mp4"
        first_path.write_bytes(b"a")
        first = CapturedArtifact(kind="video", mime_type="video/mp4", extension="mp4", path=first_path)
        second = CapturedArtifact(kind="image", mime_type="image/png", extension="png", data=b"png")

        with ArtifactSlot() as slot:
            slot.replace(first)
            previous = slot.replace(second)
            assert previous is first
            assert first.released
            assert not first_path.exists()
            assert slot.current is second
        assert second.released
