"""
CodeNANO Preview -- Document Builder Tests

The builder is a pure function: same buffers and options in, byte-identical
document out. These tests cover:
  - determinism and the absence of hidden state
  - body extraction (with and without a <body> element)
  - CSS placement and the optional reset
  - the console bridge shim and both error shims
  - the try/catch wrapper around user code
  - framework modes (React, Vue, Next.js) and the Tailwind runtime
  - buffer-reinterpreting modes (Markdown, Python, Astro)
"""

import pytest

from engine.preview.builder import (
    CSS_RESET,
    MARKDOWN_RUNTIME,
    PYODIDE_RUNTIME,
    REACT_RUNTIME,
    TAILWIND_RUNTIME,
    VUE_RUNTIME,
    adapt_nextjs_page,
    build_preview_document,
    extract_body_content,
    js_string,
    split_astro_component,
)
from engine.preview.types import PROJECT_MODES, BuildOptions, SourceBuffers

# ============================================================================
# Determinism
# ============================================================================


class TestDeterminism:
    def test_same_input_same_output(self):
        buffers = SourceBuffers(html="<h1>Hi</h1>", css="h1 { color: red; }", js="console.log('x')")
        first = build_preview_document(buffers)
        for _ in range(50):
            assert build_preview_document(buffers) == first

    def test_equal_buffers_from_different_instances(self):
        a = SourceBuffers(html="<p>a</p>", css="", js="1+1")
        b = SourceBuffers(html="<p>a</p>", css="", js="1+1")
        assert build_preview_document(a) == build_preview_document(b)

    def test_options_default_matches_explicit_default(self):
        buffers = SourceBuffers(html="<p>x</p>")
        assert build_preview_document(buffers) == build_preview_document(buffers, BuildOptions())

    def test_every_mode_is_deterministic(self):
        buffers = SourceBuffers(html="<div></div>", js="const a = 1;")
        for mode in PROJECT_MODES:
            opts = BuildOptions(mode=mode)
            assert build_preview_document(buffers, opts) == build_preview_document(buffers, opts)


# ============================================================================
# Body extraction
# ============================================================================


class TestBodyExtraction:
    def test_extracts_inner_body(self):
        html = "<html><head><title>x</title></head><body class='a'><h1>Hello</h1></body></html>"
        assert extract_body_content(html) == "<h1>Hello</h1>"

    def test_case_insensitive_and_multiline(self):
        html = "<BODY>\n<p>one</p>\n<p>two</p>\n</BODY>"
        assert extract_body_content(html) == "\n<p>one</p>\n<p>two</p>\n"

    def test_fragment_passes_through(self):
        assert extract_body_content("<h1>Hi</h1>") == "<h1>Hi</h1>"

    def test_empty_string(self):
        assert extract_body_content("") == ""

    def test_document_places_only_body_content(self):
        html = "<!DOCTYPE html><html><head><title>Mine</title></head><body><main>Content</main></body></html>"
        doc = build_preview_document(SourceBuffers(html=html))
        assert "<main>Content</main>" in doc
        assert "<title>Mine</title>" not in doc
        assert doc.count("<body>") == 1


# ============================================================================
# Document structure
# ============================================================================


class TestStructure:
    def test_minimal_document_shape(self):
        doc = build_preview_document(SourceBuffers())
        assert doc.startswith("<!DOCTYPE html>")
        assert '<meta charset="UTF-8">' in doc
        assert "<style>" in doc
        assert doc.rstrip().endswith("</html>")

    def test_css_goes_inside_style(self):
        doc = build_preview_document(SourceBuffers(css="body { background: #000; }"))
        style = doc.split("<style>", 1)[1].split("</style>", 1)[0]
        assert "body { background: #000; }" in style

    def test_css_reset_is_optional(self):
        buffers = SourceBuffers(css="p { margin: 1px; }")
        assert CSS_RESET not in build_preview_document(buffers)
        doc = build_preview_document(buffers, BuildOptions(css_reset=True))
        assert doc.index(CSS_RESET) < doc.index("p { margin: 1px; }")

    def test_title_is_escaped(self):
        doc = build_preview_document(SourceBuffers(), BuildOptions(title="<Tom & Jerry>"))
        assert "<title>&lt;Tom &amp; Jerry&gt;</title>" in doc

    def test_html_buffer_is_verbatim(self):
        html = '<button onclick="go()">Go &amp; see</button>'
        assert html in build_preview_document(SourceBuffers(html=html))

    def test_buffers_all_empty_still_builds(self):
        doc = build_preview_document(SourceBuffers())
        assert "console-" in doc


# ============================================================================
# Console shim and user code
# ============================================================================


class TestScripts:
    def test_console_shim_posts_to_parent(self):
        doc = build_preview_document(SourceBuffers(js="console.log('hi')"))
        assert "window.parent.postMessage" in doc
        assert '"console-" + kind' in doc
        for kind in ("log", "error", "warn", "info"):
            assert f'"{kind}"' in doc

    def test_shim_runs_before_user_code(self):
        doc = build_preview_document(SourceBuffers(js="console.log('user code')"))
        assert doc.index("window.parent.postMessage") < doc.index("console.log('user code')")

    def test_user_code_wrapped_in_try_catch(self):
        doc = build_preview_document(SourceBuffers(js="throw new Error('boom')"))
        code_at = doc.index("throw new Error('boom')")
        assert doc.rindex("try {", 0, code_at) < code_at
        assert '"JavaScript Error: "' in doc[code_at:]

    def test_forward_error_shim_is_default(self):
        doc = build_preview_document(SourceBuffers())
        assert 'addEventListener("error"' in doc
        assert 'addEventListener("unhandledrejection"' in doc
        assert "window.onerror" not in doc

    def test_silent_error_shim(self):
        doc = build_preview_document(SourceBuffers(), BuildOptions(error_shim="silent"))
        assert "window.onerror" in doc
        assert "return true;" in doc
        assert 'addEventListener("unhandledrejection"' not in doc

    def test_script_closes_once_per_block(self):
        doc = build_preview_document(SourceBuffers(js="var x = 1;"))
        assert doc.count("<script>") == doc.count("</script>")


# ============================================================================
# Framework modes
# ============================================================================


class TestModes:
    def test_html_mode_loads_no_runtime(self):
        doc = build_preview_document(SourceBuffers(js="1"))
        assert REACT_RUNTIME not in doc
        assert VUE_RUNTIME not in doc
        assert "text/babel" not in doc

    def test_react_mode(self):
        doc = build_preview_document(SourceBuffers(js="const App = () => <h1/>;"), BuildOptions(mode="react"))
        assert REACT_RUNTIME in doc
        assert '<div id="root"></div>' in doc
        assert '<script type="text/babel">' in doc

    def test_react_mode_keeps_existing_root(self):
        doc = build_preview_document(SourceBuffers(html='<div id="root" class="x"></div>'), BuildOptions(mode="react"))
        assert doc.count('id="root"') == 1

    def test_vue_mode(self):
        doc = build_preview_document(SourceBuffers(js="Vue.createApp({}).mount('#app')"), BuildOptions(mode="vue"))
        assert VUE_RUNTIME in doc
        assert '<div id="app"></div>' in doc
        assert "text/babel" not in doc

    def test_nextjs_mode_adapts_page(self):
        source = "'use client'\nimport { useState } from 'react'\nexport default function Page() { return <p>hi</p>; }"
        doc = build_preview_document(SourceBuffers(js=source), BuildOptions(mode="nextjs"))
        assert REACT_RUNTIME in doc
        assert "export default" not in doc
        assert "React.createElement(Page)" in doc

    def test_tailwind_runtime(self):
        doc = build_preview_document(SourceBuffers(), BuildOptions(framework="tailwind"))
        assert TAILWIND_RUNTIME in doc
        assert doc.index(TAILWIND_RUNTIME) < doc.index("<style>")


class TestNextjsAdapter:
    def test_strips_directive_and_imports(self):
        out = adapt_nextjs_page('"use client";\nimport React, { useState } from "react";\nexport default function Home() {}')
        assert "use client" not in out
        assert 'from "react"' not in out
        assert "function Home() {}" in out

    def test_defaults_component_name(self):
        out = adapt_nextjs_page("const x = 1;")
        assert out.endswith("render(React.createElement(Home));")

    @pytest.mark.parametrize("name", ["Dashboard", "Page2"])
    def test_uses_exported_name(self, name):
        out = adapt_nextjs_page(f"export default function {name}() {{ return null; }}")
        assert f"React.createElement({name})" in out


class TestMarkdownMode:
    def test_renders_html_buffer_as_markdown(self):
        doc = build_preview_document(SourceBuffers(html="# Title\n\nSome *text*"), BuildOptions(mode="markdown"))
        assert MARKDOWN_RUNTIME in doc
        assert '<article id="markdown" class="markdown-body"></article>' in doc
        assert 'marked.parse("# Title\\n\\nSome *text*")' in doc

    def test_markdown_source_cannot_close_the_script(self):
        doc = build_preview_document(SourceBuffers(html="</script><b>x</b>"), BuildOptions(mode="markdown"))
        assert doc.count("</script>") == 2
        assert "<\\/script>" in doc

    def test_js_runs_after_render(self):
        doc = build_preview_document(SourceBuffers(html="# Hi", js="console.log('after')"), BuildOptions(mode="markdown"))
        assert doc.index("marked.parse") < doc.index("console.log('after')")


class TestPythonMode:
    def test_runs_js_buffer_through_pyodide(self):
        doc = build_preview_document(SourceBuffers(js="print('hi')"), BuildOptions(mode="python"))
        assert PYODIDE_RUNTIME in doc
        assert "loadPyodide" in doc
        assert 'runPythonAsync("print(\'hi\')")' in doc
        assert "JavaScript Error" not in doc

    def test_stdout_and_stderr_reach_console(self):
        doc = build_preview_document(SourceBuffers(js="print(1)"), BuildOptions(mode="python"))
        assert "stdout: function (line) { console.log(line); }" in doc
        assert "stderr: function (line) { console.error(line); }" in doc
        assert '"Python Error: "' in doc

    def test_html_buffer_supplies_markup(self):
        doc = build_preview_document(SourceBuffers(html="<pre id='out'></pre>", js="pass"), BuildOptions(mode="python"))
        assert "<pre id='out'></pre>" in doc


class TestAstroMode:
    COMPONENT = '---\nimport Layout from "../layouts/Layout.astro";\nconst name = "Astro";\n---\n<h1>Hello {name}</h1>\n'

    def test_splits_frontmatter_and_markup(self):
        frontmatter, markup = split_astro_component(self.COMPONENT)
        assert 'const name = "Astro";' in frontmatter
        assert markup == "<h1>Hello {name}</h1>\n"

    def test_component_without_frontmatter(self):
        assert split_astro_component("<p>{1 + 1}</p>") == ("", "<p>{1 + 1}</p>")

    def test_empty_frontmatter(self):
        assert split_astro_component("---\n---\n<p>x</p>") == ("", "<p>x</p>")

    def test_document_places_markup_in_template(self):
        doc = build_preview_document(SourceBuffers(html=self.COMPONENT), BuildOptions(mode="astro"))
        assert '<div id="astro-root"></div>' in doc
        assert '<template id="astro-template"><h1>Hello {name}</h1>\n</template>' in doc
        assert 'const name = "Astro";' in doc
        assert "import Layout" not in doc
        assert "---" not in doc

    def test_render_errors_reach_console(self):
        doc = build_preview_document(SourceBuffers(html=self.COMPONENT), BuildOptions(mode="astro"))
        code_at = doc.index('const name = "Astro";')
        assert doc.rindex("try {", 0, code_at) < code_at
        assert '"JavaScript Error: "' in doc[code_at:]


def test_js_string_escapes_closing_tags():
    assert js_string('a</script>"b') == '"a<\\/script>\\"b"'
