"""Tests for /api/preview and /api/preview/run (headless browser mocked)."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

from backend.services.capture import CaptureUnavailable
from engine.capture.types import CaptureError
from engine.preview.types import ConsoleMessage


class TestBuildPreview:
    async def test_document_and_frame(self, async_client):
        res = await async_client.post(
            "/api/preview",
            json={"html": "<h1>Hello</h1>", "css": "h1 { color: teal; }", "js": "console.log('ready')"},
        )

        assert res.status_code == 200
        data = res.json()
        assert data["document"].startswith("<!DOCTYPE html>")
        assert "<h1>Hello</h1>" in data["document"]
        assert 'sandbox="allow-scripts allow-same-origin"' in data["frame"]

    async def test_same_input_same_document(self, async_client):
        body = {"html": "<p>x</p>", "css": "p{}", "js": "1+1", "mode": "react"}
        first = await async_client.post("/api/preview", json=body)
        second = await async_client.post("/api/preview", json=body)
        assert first.json()["document"] == second.json()["document"]

    async def test_anonymous_allowed(self, async_client):
        res = await async_client.post("/api/preview", json={})
        assert res.status_code == 200

    async def test_unknown_mode_rejected(self, async_client):
        res = await async_client.post("/api/preview", json={"mode": "cobol"})
        assert res.status_code == 422


class TestRunPreview:
    async def test_returns_console_messages(self, async_client, auth_cookies):
        message = ConsoleMessage(id="m1", type="log", content="ready", timestamp=datetime.now(UTC))
        with patch("backend.routes.preview.capture_service") as service:
            service.run_preview = AsyncMock(return_value=[message])
            res = await async_client.post("/api/preview/run", json={"js": "console.log('ready')"}, cookies=auth_cookies)

        assert res.status_code == 200
        assert res.json()["messages"][0]["content"] == "ready"
        assert res.json()["messages"][0]["type"] == "log"
        buffers = service.run_preview.await_args.args[0]
        assert buffers.js == "console.log('ready')"

    async def test_requires_auth(self, async_client):
        res = await async_client.post("/api/preview/run", json={})
        assert res.status_code == 401

    async def test_browser_unavailable_is_503(self, async_client, auth_cookies):
        with patch("backend.routes.preview.capture_service") as service:
            service.run_preview = AsyncMock(side_effect=CaptureUnavailable("Headless browser is not available"))
            res = await async_client.post("/api/preview/run", json={}, cookies=auth_cookies)

        assert res.status_code == 503

    async def test_run_failure_is_500(self, async_client, auth_cookies):
        with patch("backend.routes.preview.capture_service") as service:
            service.run_preview = AsyncMock(side_effect=CaptureError("page crashed"))
            res = await async_client.post("/api/preview/run", json={}, cookies=auth_cookies)

        assert res.status_code == 500

    async def test_rate_limited(self, async_client, auth_cookies):
        with (
            patch("backend.routes.preview.capture_service") as service,
            patch("backend.routes.preview.settings.PREVIEW_RUN_RATE_LIMIT_PER_MINUTE", 2),
        ):
            service.run_preview = AsyncMock(return_value=[])
            codes = [
                (await async_client.post("/api/preview/run", json={}, cookies=auth_cookies)).status_code
                for _ in range(3)
            ]

        assert codes == [200, 200, 429]


class TestTemplates:
    async def test_lists_catalog(self, async_client):
        res = await async_client.get("/api/templates")

        assert res.status_code == 200
        data = res.json()
        ids = [t["id"] for t in data]
        assert ids[0] == "html-starter"
        assert {"react-counter", "python-basics", "markdown-doc", "nextjs-app", "astro-page"} <= set(ids)
        assert set(data[0]) == {"id", "name", "description", "mode"}

    async def test_detail_carries_buffers(self, async_client):
        res = await async_client.get("/api/templates/python-basics")

        assert res.status_code == 200
        data = res.json()
        assert data["mode"] == "python"
        assert "print(" in data["js"]

    async def test_unknown_template_is_404(self, async_client):
        res = await async_client.get("/api/templates/cobol-mainframe")
        assert res.status_code == 404
        assert res.json()["detail"] == "Template not found."
