"""
CodeNANO Preview — Sandboxed Renderer

Produces the markup and headers that mount a preview document in an
isolated frame. The frame may run scripts and keep its origin (so it can
postMessage to the host) but may never navigate the top-level page.
"""

from __future__ import annotations

from html import escape
from typing import Literal
from urllib.parse import quote

FrameMode = Literal["srcdoc", "data_uri"]

SANDBOX_PERMISSIONS: tuple[str, ...] = ("allow-scripts", "allow-same-origin")

# Origin reported by frames loaded from a data: URI.
NULL_ORIGIN = "null"

# Characters encodeURIComponent leaves alone.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def sandbox_attribute() -> str:
    """Value of the iframe sandbox attribute."""
    return " ".join(SANDBOX_PERMISSIONS)


def sandbox_headers() -> dict[str, str]:
    """
    Response headers for a preview document served over HTTP.

    The CSP sandbox directive applies the same restrictions as the iframe
    attribute when the document is opened directly.
    """
    return {
        "Content-Security-Policy": f"sandbox {sandbox_attribute()}",
        "Cache-Control": "no-store",
        "X-Content-Type-Options": "nosniff",
    }


def to_data_uri(document: str) -> str:
    """Encode a document as a data: URI, percent-encoded like encodeURIComponent."""
    return "data:text/html;charset=utf-8," + quote(document, safe=_URI_COMPONENT_SAFE)


def render_frame(document: str, mode: FrameMode = "srcdoc", title: str = "Preview") -> str:
    """
    Return <iframe> markup that mounts `document` in the sandbox.

    srcdoc frames inherit the host origin; data: URI frames report "null".
    """
    attrs = f'title="{escape(title)}" sandbox="{sandbox_attribute()}" class="codenano-preview"'
    if mode == "data_uri":
        return f'<iframe {attrs} src="{escape(to_data_uri(document))}"></iframe>'
    return f'<iframe {attrs} srcdoc="{escape(document, quote=True)}"></iframe>'
