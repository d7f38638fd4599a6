"""Preview request/response models."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from backend.models.project import MAX_BUFFER_LENGTH, ProjectMode
from engine.preview.templates import Template
from engine.preview.types import BuildOptions, ConsoleMessage, SourceBuffers


class PreviewRequest(BaseModel):
    """Buffers plus build options, as the editor sends them."""

    model_config = {"extra": "forbid"}

    html: str = Field(default="", max_length=MAX_BUFFER_LENGTH)
    css: str = Field(default="", max_length=MAX_BUFFER_LENGTH)
    js: str = Field(default="", max_length=MAX_BUFFER_LENGTH)
    mode: ProjectMode = "html"
    framework: Literal["none", "tailwind"] = "none"
    css_reset: bool = False
    error_shim: Literal["forward", "silent"] = "forward"
    title: str = Field(default="CodeNANO Preview", max_length=200)

    def to_buffers(self) -> SourceBuffers:
        return SourceBuffers(html=self.html, css=self.css, js=self.js)

    def to_options(self) -> BuildOptions:
        return BuildOptions(
            mode=self.mode,
            framework=self.framework,
            css_reset=self.css_reset,
            error_shim=self.error_shim,
            title=self.title,
        )


class PreviewResponse(BaseModel):
    document: str
    frame: str


class ConsoleMessageResponse(BaseModel):
    id: str
    type: Literal["log", "error", "warn", "info"]
    content: str
    timestamp: datetime

    @classmethod
    def from_message(cls, message: ConsoleMessage) -> ConsoleMessageResponse:
        return cls(id=message.id, type=message.type, content=message.content, timestamp=message.timestamp)


class RunResponse(BaseModel):
    messages: list[ConsoleMessageResponse]


class TemplateSummary(BaseModel):
    id: str
    name: str
    description: str
    mode: ProjectMode


class TemplateDetail(TemplateSummary):
    html: str
    css: str
    js: str

    @classmethod
    def from_template(cls, template: Template) -> TemplateDetail:
        return cls(**template.summary(), **template.buffers.to_dict())
