"""Project models: the saved HTML/CSS/JS playground."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from engine.preview.types import SourceBuffers

ProjectMode = Literal["html", "react", "vue", "nextjs", "astro", "python", "markdown"]

MAX_BUFFER_LENGTH = 500_000
MAX_PROJECT_FILES = 20

# The version history panel shows this many of the latest saves.
VERSION_HISTORY_LIMIT = 20

_EXTENSION_LANGUAGES = {
    "html": "html",
    "htm": "html",
    "css": "css",
    "js": "javascript",
    "jsx": "jsx",
    "ts": "typescript",
    "tsx": "tsx",
    "py": "python",
    "md": "markdown",
    "vue": "vue",
    "svelte": "svelte",
    "astro": "astro",
    "json": "json",
}


def language_for_file(name: str) -> str:
    """Editor language for a file name, from its extension."""
    _, dot, ext = name.rpartition(".")
    return _EXTENSION_LANGUAGES.get(ext.lower(), "plaintext") if dot else "plaintext"


class ProjectFile(BaseModel):
    """A named file stored alongside the three buffers."""

    name: str = Field(min_length=1, max_length=200)
    content: str = Field(default="", max_length=MAX_BUFFER_LENGTH)
    language: str = ""

    @model_validator(mode="after")
    def _default_language(self) -> ProjectFile:
        if not self.language:
            self.language = language_for_file(self.name)
        return self


class Project(BaseModel):
    """Core project model. Represents a row in the projects table."""

    id: UUID
    user_id: UUID
    title: str
    description: str = ""
    html: str = ""
    css: str = ""
    js: str = ""
    thumbnail: str | None = None
    is_public: bool = False
    mode: ProjectMode = "html"
    tags: list[str] = Field(default_factory=list)
    files: list[ProjectFile] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @property
    def buffers(self) -> SourceBuffers:
        return SourceBuffers(html=self.html, css=self.css, js=self.js)


class CreateProjectRequest(BaseModel):
    """What the client sends to create a project."""

    model_config = {"extra": "forbid"}

    title: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=2000)
    html: str = Field(default="", max_length=MAX_BUFFER_LENGTH)
    css: str = Field(default="", max_length=MAX_BUFFER_LENGTH)
    js: str = Field(default="", max_length=MAX_BUFFER_LENGTH)
    thumbnail: str | None = None
    is_public: bool = False
    mode: ProjectMode = "html"
    tags: list[str] = Field(default_factory=list, max_length=20)
    files: list[ProjectFile] = Field(default_factory=list, max_length=MAX_PROJECT_FILES)


class UpdateProjectRequest(BaseModel):
    """
    What the client sends to update a project.

    Title is required; other fields left as None keep their stored value.
    expected_updated_at, when given, must match the stored updated_at or the
    write is rejected as stale.
    """

    model_config = {"extra": "forbid"}

    title: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    html: str | None = Field(default=None, max_length=MAX_BUFFER_LENGTH)
    css: str | None = Field(default=None, max_length=MAX_BUFFER_LENGTH)
    js: str | None = Field(default=None, max_length=MAX_BUFFER_LENGTH)
    thumbnail: str | None = None
    is_public: bool | None = None
    mode: ProjectMode | None = None
    tags: list[str] | None = Field(default=None, max_length=20)
    files: list[ProjectFile] | None = Field(default=None, max_length=MAX_PROJECT_FILES)
    expected_updated_at: datetime | None = None


class ProjectResponse(BaseModel):
    """What the API returns."""

    id: UUID
    user_id: UUID
    title: str
    description: str
    html: str
    css: str
    js: str
    thumbnail: str | None
    is_public: bool
    mode: ProjectMode
    tags: list[str]
    files: list[ProjectFile]
    created_at: datetime
    updated_at: datetime
    author: str | None = None  # username, on explore listings

    @classmethod
    def from_model(cls, project: Project, author: str | None = None) -> ProjectResponse:
        """Convert internal Project model to public API response."""
        return cls(
            id=project.id,
            user_id=project.user_id,
            title=project.title,
            description=project.description,
            html=project.html,
            css=project.css,
            js=project.js,
            thumbnail=project.thumbnail,
            is_public=project.is_public,
            mode=project.mode,
            tags=project.tags,
            files=project.files,
            created_at=project.created_at,
            updated_at=project.updated_at,
            author=author,
        )



class ProjectVersion(BaseModel):
    """A snapshot written on every save. Restoring one writes the snapshot back."""

    id: UUID
    project_id: UUID
    title: str
    html: str = ""
    css: str = ""
    js: str = ""
    mode: ProjectMode = "html"
    files: list[ProjectFile] = Field(default_factory=list)
    saved_at: datetime

def save_validation_error(title: str | None, html: str | None, css: str | None, js: str | None) -> str | None:
    """
    Why a save must be refused, or None when it may proceed.

    Buffers passed as None are not being changed and do not count as empty.
    """
    if not title or not title.strip():
        return "Project title is required"
    buffers = [b for b in (html, css, js) if b is not None]
    if len(buffers) == 3 and not any(b.strip() for b in buffers):
        return "Project needs HTML, CSS or JavaScript content"
    return None
