"""Still capture of a snippet, returned directly as a PNG."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from backend.auth import get_current_user
from backend.config import settings
from backend.middleware.rate_limit import rate_limiter
from backend.models.content import CaptureImageRequest
from backend.models.user import User
from backend.services.capture import CaptureUnavailable, RecordingBusy, capture_service
from engine.capture.types import CaptureError, CaptureSettings
from engine.preview.types import BuildOptions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/capture", tags=["capture"])


def capture_http_error(e: Exception) -> HTTPException:
    """503 when the headless browser is missing, 409 for a second recording, 500 for anything else that broke mid-capture."""
    if isinstance(e, RecordingBusy):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, CaptureUnavailable):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Capture failed. Please try again.")


@router.post("/image", status_code=200)
async def capture_image(
    req: CaptureImageRequest,
    user: User = Depends(get_current_user),
) -> Response:
    rate_limiter.enforce(f"capture:{user.id}", settings.CAPTURE_RATE_LIMIT_PER_HOUR)
    capture = CaptureSettings(aspect_ratio=req.aspect_ratio, quality=req.quality)
    try:
        artifact = await capture_service.capture_image(req.to_buffers(), capture, BuildOptions(mode=req.mode))
    except (CaptureUnavailable, CaptureError) as e:
        logger.error("capture: image failed for user=%s: %s", user.id, e)
        raise capture_http_error(e) from e
    try:
        data = artifact.read_bytes()
    finally:
        artifact.release()
    return Response(content=data, media_type=artifact.mime_type)
