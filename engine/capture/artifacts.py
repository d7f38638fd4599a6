"""
CodeNANO Capture — Artifact ownership.

A slot holds at most one artifact. Replacing or releasing it frees the
previous one, so a session never leaks temporary video files.
"""

from __future__ import annotations

from engine.capture.types import CapturedArtifact


class ArtifactSlot:
    def __init__(self) -> None:
        self._current: CapturedArtifact | None = None

    @property
    def current(self) -> CapturedArtifact | None:
        return self._current

    def replace(self, artifact: CapturedArtifact) -> CapturedArtifact | None:
        """Store `artifact`, releasing and returning whatever was there before."""
        previous, self._current = self._current, artifact
        if previous is not None and previous is not artifact:
            previous.release()
        return previous

    def release(self) -> None:
        current, self._current = self._current, None
        if current is not None:
            current.release()

    def __enter__(self) -> ArtifactSlot:
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()
