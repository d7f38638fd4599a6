"""
CodeNANO Preview — Shared Types

Value objects passed between the builder, the sandbox, the console bridge,
the auto-run loop and the editor store.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Literal

# ---------------------------------------------------------------------------
# Timing constants
# ---------------------------------------------------------------------------

# Quiet period after the last edit before the preview is rebuilt (seconds).
AUTORUN_DELAY: float = 1.0

# Quiet period after the last edit before the project is persisted (seconds).
AUTOSAVE_DELAY: float = 3.0

# Minimum time the loading flag stays raised during a rebuild (seconds).
MIN_LOADING_DURATION: float = 0.2

# Console list capacity and duplicate suppression window (seconds).
CONSOLE_CAPACITY: int = 100
CONSOLE_DEDUPE_WINDOW: float = 1.0

# ---------------------------------------------------------------------------
# Literals
# ---------------------------------------------------------------------------

BufferName = Literal["html", "css", "js"]
BUFFER_NAMES: tuple[str, ...] = ("html", "css", "js")

ProjectMode = Literal["html", "react", "vue", "nextjs", "astro", "python", "markdown"]
PROJECT_MODES: tuple[str, ...] = ("html", "react", "vue", "nextjs", "astro", "python", "markdown")

ConsoleKind = Literal["log", "error", "warn", "info"]
CONSOLE_KINDS: tuple[str, ...] = ("log", "error", "warn", "info")

ErrorShim = Literal["forward", "silent"]
CssFramework = Literal["none", "tailwind"]


# ---------------------------------------------------------------------------
# Source buffers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SourceBuffers:
    """The three editor buffers. Replaced wholesale on every edit."""

    html: str = ""
    css: str = ""
    js: str = ""

    def with_buffer(self, name: str, value: str) -> SourceBuffers:
        if name not in BUFFER_NAMES:
            raise ValueError(f"Unknown buffer: {name!r}")
        return replace(self, **{name: value})

    def is_empty(self) -> bool:
        return not (self.html.strip() or self.css.strip() or self.js.strip())

    def to_dict(self) -> dict[str, str]:
        return {"html": self.html, "css": self.css, "js": self.js}


@dataclass(frozen=True)
class BuildOptions:
    """
    Knobs for build_preview_document().

    mode:          runtime the buffers target (plain, React/JSX, Vue, Next page,
                   Astro component, Python via Pyodide, Markdown)
    framework:     CSS framework runtime injected into <head>
    css_reset:     prefix the CSS buffer with a small reset
    error_shim:    "forward" posts uncaught errors to the host,
                   "silent" routes them through console.error and suppresses them
    title:         <title> of the preview document
    """

    mode: ProjectMode = "html"
    framework: CssFramework = "none"
    css_reset: bool = False
    error_shim: ErrorShim = "forward"
    title: str = "CodeNANO Preview"


# ---------------------------------------------------------------------------
# Console
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConsoleMessage:
    """One entry in the console panel."""

    id: str
    type: ConsoleKind
    content: str
    timestamp: datetime

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "type": self.type,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class RenderResult:
    """What one rebuild produced."""

    document: str
    sequence: int
    buffers: SourceBuffers = field(default_factory=SourceBuffers)
