"""
CodeNANO Preview — the live preview pipeline.

  builder    — (SourceBuffers, BuildOptions) → preview document (pure, deterministic)
  sandbox    — iframe markup, data: URIs and sandbox headers
  console    — console bridge: wire schema, origin filter, dedup, bounded list
  scheduler  — debounced scheduler shared by auto-run and auto-save
  autorun    — Idle → PendingRebuild → Rebuilding state machine
  store      — per-session editor state container
  runner     — headless host page (Playwright) that loads the sandboxed frame
"""

from engine.preview.autorun import AutoRunLoop, RunState
from engine.preview.builder import build_preview_document, extract_body_content
from engine.preview.console import ConsoleBridge, ConsoleLog, parse_bridge_message
from engine.preview.sandbox import render_frame, sandbox_headers, to_data_uri
from engine.preview.scheduler import DebouncedScheduler
from engine.preview.store import EditorState, EditorStore, reduce
from engine.preview.types import BuildOptions, ConsoleMessage, SourceBuffers

__all__ = [
    "build_preview_document",
    "extract_body_content",
    "render_frame",
    "sandbox_headers",
    "to_data_uri",
    "ConsoleBridge",
    "ConsoleLog",
    "parse_bridge_message",
    "DebouncedScheduler",
    "AutoRunLoop",
    "RunState",
    "EditorState",
    "EditorStore",
    "reduce",
    "BuildOptions",
    "ConsoleMessage",
    "SourceBuffers",
]
