"""
CodeNANO Preview -- Headless Runner Tests

End-to-end through a real Chromium: build a document, mount it in the
sandboxed frame under the host page and check what the console bridge
collected. Skipped when Playwright's Chromium is not installed.
"""

import pytest
import pytest_asyncio

from engine.preview.runner import HOST_PAGE, PreviewRunner, headless_browser, render_host_page
from engine.preview.types import BuildOptions, SourceBuffers


@pytest_asyncio.fixture
async def browser():
    try:
        async with headless_browser() as browser:
            yield browser
    except Exception as e:  # noqa: BLE001
        if "Executable doesn't exist" in str(e) or "playwright install" in str(e):
            pytest.skip(f"Chromium not available: {e}")
        raise


class TestHostPage:
    def test_host_page_mounts_frame(self):
        page = render_host_page("<p>x</p>")
        assert "__codenanoRelay" in page
        assert 'srcdoc="&lt;p&gt;x&lt;/p&gt;"' in page
        assert "width: 100%;" in page

    def test_data_uri_mode(self):
        page = render_host_page("<p>x</p>", frame_mode="data_uri")
        assert 'src="data:text/html' in page

    def test_template_placeholders(self):
        assert "%(frame)s" in HOST_PAGE


class TestRunnerEndToEnd:
    @pytest.mark.asyncio
    async def test_console_log_reaches_bridge(self, browser):
        runner = PreviewRunner(browser, settle=0.5)
        messages = await runner.run(SourceBuffers(html="<h1>Hi</h1>", js="console.log('ready')"))
        assert [(m.type, m.content) for m in messages] == [("log", "ready")]

    @pytest.mark.asyncio
    async def test_thrown_error_is_reported(self, browser):
        runner = PreviewRunner(browser, settle=0.5)
        messages = await runner.run(SourceBuffers(js="throw new Error('boom')"))
        assert any(m.type == "error" and "JavaScript Error: boom" in m.content for m in messages)

    @pytest.mark.asyncio
    async def test_objects_are_stringified(self, browser):
        runner = PreviewRunner(browser, settle=0.5)
        messages = await runner.run(SourceBuffers(js="console.warn({a: 1}, 'x')"))
        assert [(m.type, m.content) for m in messages] == [("warn", '{"a":1} x')]

    @pytest.mark.asyncio
    async def test_data_uri_frame_reports_null_origin(self, browser):
        runner = PreviewRunner(browser, settle=0.5, frame_mode="data_uri")
        messages = await runner.run(SourceBuffers(js="console.info('from data uri')"), BuildOptions())
        assert [m.content for m in messages] == ["from data uri"]
