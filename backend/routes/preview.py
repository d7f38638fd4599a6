"""Stateless preview endpoints: build a document, or run it headlessly."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from backend.auth import get_current_user
from backend.config import settings
from backend.middleware.rate_limit import rate_limiter
from backend.models.preview import ConsoleMessageResponse, PreviewRequest, PreviewResponse, RunResponse
from backend.models.user import User
from backend.services.capture import CaptureUnavailable, capture_service
from engine.capture.types import CaptureError
from engine.preview.builder import build_preview_document
from engine.preview.sandbox import render_frame

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/preview", tags=["preview"])


@router.post("", status_code=200)
async def build_preview(req: PreviewRequest) -> PreviewResponse:
    """Preview document for the buffers, plus the sandboxed iframe that mounts it."""
    document = build_preview_document(req.to_buffers(), req.to_options())
    return PreviewResponse(document=document, frame=render_frame(document, title=req.title))


@router.post("/run", status_code=200)
async def run_preview(
    req: PreviewRequest,
    user: User = Depends(get_current_user),
) -> RunResponse:
    """Load the buffers in a headless browser and return the console output."""
    rate_limiter.enforce(f"preview_run:{user.id}", settings.PREVIEW_RUN_RATE_LIMIT_PER_MINUTE, window_minutes=1)
    try:
        messages = await capture_service.run_preview(req.to_buffers(), req.to_options())
    except CaptureUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e
    except CaptureError as e:
        logger.error("preview: run failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Preview run failed.") from e
    return RunResponse(messages=[ConsoleMessageResponse.from_message(m) for m in messages])
