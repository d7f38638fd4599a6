"""
CodeNANO Preview — Document Builder

Pure function: (SourceBuffers, BuildOptions?) → complete HTML document string.
No IO. No clock. No randomness. Same input → byte-identical output.

The document carries:
- a <style> block with the CSS buffer (optionally prefixed by a reset)
- the HTML buffer's body content, verbatim
- one <script> block that installs the console bridge shim, installs the
  selected error shim, then runs the JS buffer inside try/catch

Runtime modes mirror the editor templates: plain HTML, React (JSX through
Babel standalone), Vue 3 (global build) and a Next.js page adapted to run
in the browser. Three modes reinterpret a buffer:

- markdown: the HTML buffer is Markdown, rendered by marked into an article
- python: the JS buffer is Python, run by Pyodide with stdout/stderr routed
  to console.log/console.error
- astro: the HTML buffer is an .astro component. Its frontmatter runs as
  plain JavaScript (import lines dropped) and {expression} holes in the
  markup are filled from that scope
"""

from __future__ import annotations

import json
import re
from html import escape

from engine.preview.types import BuildOptions, SourceBuffers

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_preview_document(buffers: SourceBuffers, options: BuildOptions | None = None) -> str:
    """
    Assemble a self-contained preview document.
    Pure function. No side effects. No IO.
    """
    opts = options or BuildOptions()

    body = _render_body(buffers, opts)
    head_scripts = _render_head_scripts(opts)
    css = (CSS_RESET + "\n" + buffers.css) if opts.css_reset else buffers.css

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{escape(opts.title)}</title>
{head_scripts}<style>
{css}
</style>
</head>
<body>
{body}
{_render_scripts(buffers, opts)}
</body>
</html>"""


_BODY_RE = re.compile(r"<body[^>]*>(.*?)</body>", re.IGNORECASE | re.DOTALL)


def extract_body_content(html: str) -> str:
    """
    Best-effort extraction of the <body> inner content.

    Returns the whole string unchanged when no <body> element is found.
    """
    match = _BODY_RE.search(html)
    if match:
        return match.group(1)
    return html


# ---------------------------------------------------------------------------
# Head: framework runtimes
# ---------------------------------------------------------------------------

REACT_RUNTIME = """<script crossorigin src="https://unpkg.com/react@18/umd/react.development.js"></script>
<script crossorigin src="https://unpkg.com/react-dom@18/umd/react-dom.development.js"></script>
<script src="https://unpkg.com/@babel/standalone/babel.min.js"></script>
"""

VUE_RUNTIME = """<script src="https://unpkg.com/vue@3/dist/vue.global.js"></script>
"""

MARKDOWN_RUNTIME = """<script src="https://cdn.jsdelivr.net/npm/marked/marked.min.js"></script>
"""

PYODIDE_RUNTIME = """<script src="https://cdn.jsdelivr.net/pyodide/v0.26.4/full/pyodide.js"></script>
"""

TAILWIND_RUNTIME = """<script src="https://cdn.tailwindcss.com"></script>
<script>
tailwind.config = {
  darkMode: 'class',
  theme: {
    extend: {
      colors: {
        codenano: {
          dark: '#0a0a0a',
          accent: '#1a1a1a',
          primary: '#00ff88',
          secondary: '#00ccff',
          text: '#e0e0e0',
          border: '#333333'
        }
      }
    }
  }
}
</script>
"""

CSS_RESET = """*, *::before, *::after { box-sizing: border-box; }
html, body { margin: 0; padding: 0; }
img, video, canvas, svg { display: block; max-width: 100%; }"""


def _render_head_scripts(opts: BuildOptions) -> str:
    parts: list[str] = []
    if opts.framework == "tailwind":
        parts.append(TAILWIND_RUNTIME)
    if opts.mode in ("react", "nextjs"):
        parts.append(REACT_RUNTIME)
    elif opts.mode == "vue":
        parts.append(VUE_RUNTIME)
    elif opts.mode == "markdown":
        parts.append(MARKDOWN_RUNTIME)
    elif opts.mode == "python":
        parts.append(PYODIDE_RUNTIME)
    return "".join(parts)


def _render_body(buffers: SourceBuffers, opts: BuildOptions) -> str:
    if opts.mode == "markdown":
        return '<article id="markdown" class="markdown-body"></article>'
    if opts.mode == "astro":
        _, markup = split_astro_component(buffers.html)
        return f'<div id="astro-root"></div>\n<template id="astro-template">{markup}</template>'
    return _ensure_mount_point(extract_body_content(buffers.html), opts.mode)


def _ensure_mount_point(body: str, mode: str) -> str:
    if mode in ("react", "nextjs") and 'id="root"' not in body:
        return '<div id="root"></div>\n' + body
    if mode == "vue" and 'id="app"' not in body:
        return '<div id="app"></div>\n' + body
    return body


# ---------------------------------------------------------------------------
# Body: console bridge shim + user code
# ---------------------------------------------------------------------------

# Forwards console.* calls to the parent document. Non-string arguments go
# through JSON.stringify, so a cyclic object throws into the caller.
CONSOLE_SHIM = """(function () {
  var send = function (kind, content) {
    window.parent.postMessage(
      { type: "console-" + kind, content: content, timestamp: new Date().toISOString() },
      "*"
    );
  };
  var format = function (args) {
    return Array.prototype.map.call(args, function (arg) {
      if (typeof arg === "string") return arg;
      var json = JSON.stringify(arg);
      return json === undefined ? String(arg) : json;
    }).join(" ");
  };
  ["log", "error", "warn", "info"].forEach(function (kind) {
    var original = console[kind];
    console[kind] = function () {
      if (original) original.apply(console, arguments);
      send(kind, format(arguments));
    };
  });
%(error_shim)s
})();"""

FORWARD_ERROR_SHIM = """  window.addEventListener("error", function (event) {
    send("error", event.message + " at line " + event.lineno + ":" + event.colno);
  });
  window.addEventListener("unhandledrejection", function (event) {
    var reason = event.reason && event.reason.message ? event.reason.message : String(event.reason);
    send("error", "Unhandled promise rejection: " + reason);
  });"""

SILENT_ERROR_SHIM = """  window.onerror = function (message) {
    console.error(message);
    return true;
  };"""

_USER_CODE_WRAPPER = """try {
%s
} catch (error) {
  console.error("JavaScript Error: " + (error && error.message ? error.message : String(error)));
}"""

PYTHON_RUNNER = """(async function () {
  try {
    var pyodide = await loadPyodide({
      stdout: function (line) { console.log(line); },
      stderr: function (line) { console.error(line); }
    });
    await pyodide.runPythonAsync(%s);
  } catch (error) {
    console.error("Python Error: " + (error && error.message ? error.message : String(error)));
  }
})();"""

MARKDOWN_RENDER = 'document.getElementById("markdown").innerHTML = marked.parse(%s);'

# Frontmatter and markup expressions share one closure scope.
ASTRO_RENDER = """var Astro = { props: {} };
var evaluate = (function () {
%(frontmatter)s
  return function (expression) { return eval(expression); };
})();
var markup = document.getElementById("astro-template").innerHTML;
document.getElementById("astro-root").innerHTML = markup.replace(/\\{([^{}]+)\\}/g, function (hole, expression) {
  var value = evaluate(expression);
  if (Array.isArray(value)) return value.join("");
  return value === undefined || value === null || value === false ? "" : String(value);
});"""


def js_string(text: str) -> str:
    """Quote text as a JavaScript string literal that is safe inside <script>."""
    return json.dumps(text).replace("</", "<\\/")


def _render_scripts(buffers: SourceBuffers, opts: BuildOptions) -> str:
    js = buffers.js
    error_shim = FORWARD_ERROR_SHIM if opts.error_shim == "forward" else SILENT_ERROR_SHIM
    shim = CONSOLE_SHIM % {"error_shim": error_shim}

    if opts.mode == "react":
        return f"<script>\n{shim}\n</script>\n" f'<script type="text/babel">\n{_USER_CODE_WRAPPER % js}\n</script>'

    if opts.mode == "nextjs":
        return (
            f"<script>\n{shim}\n</script>\n"
            f'<script type="text/babel">\n{_USER_CODE_WRAPPER % adapt_nextjs_page(js)}\n</script>'
        )

    if opts.mode == "python":
        return f"<script>\n{shim}\n{PYTHON_RUNNER % js_string(js)}\n</script>"

    if opts.mode == "markdown":
        render = MARKDOWN_RENDER % js_string(buffers.html)
        return f"<script>\n{shim}\n{_USER_CODE_WRAPPER % render}\n{_USER_CODE_WRAPPER % js}\n</script>"

    if opts.mode == "astro":
        frontmatter, _ = split_astro_component(buffers.html)
        render = ASTRO_RENDER % {"frontmatter": _IMPORT_LINE_RE.sub("", frontmatter)}
        return f"<script>\n{shim}\n{_USER_CODE_WRAPPER % render}\n{_USER_CODE_WRAPPER % js}\n</script>"

    return f"<script>\n{shim}\n{_USER_CODE_WRAPPER % js}\n</script>"


# ---------------------------------------------------------------------------
# Next.js page adaptation
# ---------------------------------------------------------------------------

_USE_CLIENT_RE = re.compile(r"""^\s*['"]use client['"];?[ \t]*$""", re.MULTILINE)
_REACT_IMPORT_RE = re.compile(r"""^\s*import[^\n]*from\s*['"]react['"];?[ \t]*$""", re.MULTILINE)
_EXPORT_DEFAULT_RE = re.compile(r"export\s+default\s+function\s+(\w+)")


def adapt_nextjs_page(source: str) -> str:
    """
    Rewrite a Next.js page module so it runs as a plain Babel script.

    Drops the 'use client' directive and React imports, turns the default
    export into a local function and renders it into #root.
    """
    code = _USE_CLIENT_RE.sub("", source)
    code = _REACT_IMPORT_RE.sub("", code)

    match = _EXPORT_DEFAULT_RE.search(code)
    component = match.group(1) if match else "Home"
    code = _EXPORT_DEFAULT_RE.sub(r"function \1", code, count=1)

    return (
        "const { useState, useEffect } = React;\n"
        f"{code.strip()}\n"
        f"ReactDOM.createRoot(document.getElementById('root')).render(React.createElement({component}));"
    )


# ---------------------------------------------------------------------------
# Astro components
# ---------------------------------------------------------------------------

_ASTRO_FENCE_RE = re.compile(r"\A\s*---[ \t]*\n(.*?)^---[ \t]*$\n?", re.DOTALL | re.MULTILINE)
_IMPORT_LINE_RE = re.compile(r"^\s*import\s[^\n]*$", re.MULTILINE)


def split_astro_component(source: str) -> tuple[str, str]:
    """Split an .astro component into (frontmatter, markup)."""
    match = _ASTRO_FENCE_RE.match(source)
    if not match:
        return "", source
    return match.group(1), source[match.end():]
