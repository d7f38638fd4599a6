"""
WebSocket endpoint for the live editor.

Accepts connections at /ws/editor?project_id=<uuid> or /ws/editor?template=<id>
(a starter template; html-starter when neither is given). Each connection gets its
own EditorSession (store, console bridge, auto-run, auto-save); see
backend.services.editor_session for the frame protocol.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from backend.auth import user_from_websocket
from backend.repos.project_repo import ProjectRepo
from backend.services.editor_session import EditorSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])
project_repo = ProjectRepo()


def _parse_project_id(raw: str | None) -> UUID | None:
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError:
        return None


@router.websocket("/ws/editor")
async def editor_websocket(websocket: WebSocket) -> None:
    """
    Live editing session.

    Anonymous connections get preview and console; saving needs a session
    cookie or a `token` query parameter.
    """
    await websocket.accept()
    user = user_from_websocket(websocket)
    raw_project_id = websocket.query_params.get("project_id")
    project_id = _parse_project_id(raw_project_id)
    logger.info("ws: editor accepted user=%s project=%s", user.id if user else None, project_id)

    async def send(frame: dict[str, Any]) -> None:
        await websocket.send_text(json.dumps(frame))

    session = EditorSession(send, user, repo=project_repo)
    try:
        if raw_project_id and project_id is None:
            await session.emit({"type": "error", "error": "Invalid project id."})
        await session.open(project_id, template_id=websocket.query_params.get("template"))

        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("ws: malformed message from client: %r", raw[:200])
                await session.emit({"type": "error", "error": "Malformed message."})
                continue
            if not isinstance(msg, dict):
                await session.emit({"type": "error", "error": "Malformed message."})
                continue
            await session.handle(msg)

    except WebSocketDisconnect:
        logger.info("ws: editor disconnected user=%s project=%s", user.id if user else None, project_id)
    finally:
        await session.close()
