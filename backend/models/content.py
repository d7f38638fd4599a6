"""Social content made from snippets: image posts and video reels."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from backend.models.project import MAX_BUFFER_LENGTH, ProjectMode
from engine.capture.types import MAX_RECORDING_SECONDS, AspectRatio, Quality, RecordingMethod
from engine.preview.types import SourceBuffers

Platform = Literal["instagram", "tiktok", "youtube", "twitter", "linkedin", "other"]


class _SnippetRequest(BaseModel):
    """The code being captured and how to frame it."""

    model_config = {"extra": "forbid"}

    html: str = Field(default="", max_length=MAX_BUFFER_LENGTH)
    css: str = Field(default="", max_length=MAX_BUFFER_LENGTH)
    js: str = Field(default="", max_length=MAX_BUFFER_LENGTH)
    mode: ProjectMode = "html"
    aspect_ratio: AspectRatio = "portrait"
    quality: Quality = "high"

    def to_buffers(self) -> SourceBuffers:
        return SourceBuffers(html=self.html, css=self.css, js=self.js)


class CaptureImageRequest(_SnippetRequest):
    """POST /api/capture/image."""


class CreatePostRequest(_SnippetRequest):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    is_public: bool = True


class CreateReelRequest(_SnippetRequest):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    platform: Platform = "instagram"
    is_public: bool = True
    max_seconds: float = Field(default=15.0, gt=0, le=MAX_RECORDING_SECONDS)
    method: RecordingMethod = "hybrid"


class UpdateReelRequest(BaseModel):
    """Metadata only; the video itself is immutable."""

    model_config = {"extra": "forbid"}

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    platform: Platform | None = None
    is_public: bool | None = None


class Post(BaseModel):
    """Represents a row in the posts table."""

    id: UUID
    user_id: UUID
    title: str
    description: str = ""
    image_url: str
    thumbnail_url: str | None = None
    aspect_ratio: AspectRatio = "portrait"
    html: str = ""
    css: str = ""
    js: str = ""
    is_public: bool = True
    created_at: datetime


class Reel(BaseModel):
    """Represents a row in the reels table."""

    id: UUID
    user_id: UUID
    title: str
    description: str = ""
    video_url: str
    thumbnail_url: str | None = None
    aspect_ratio: AspectRatio = "portrait"
    platform: Platform = "instagram"
    quality: Quality = "high"
    html: str = ""
    css: str = ""
    js: str = ""
    is_public: bool = True
    created_at: datetime
    updated_at: datetime
