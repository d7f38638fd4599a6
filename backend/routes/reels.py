"""Video reels: record a running snippet, upload video and thumbnail, record the reel."""

from __future__ import annotations

import logging
from uuid import UUID, uuid4

import asyncpg
from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends, HTTPException, status

from backend.auth import get_current_user
from backend.config import settings
from backend.middleware.rate_limit import rate_limiter
from backend.models.content import CreateReelRequest, Reel, UpdateReelRequest
from backend.models.user import User
from backend.repos.reel_repo import ReelRepo
from backend.routes.capture import capture_http_error
from backend.services.capture import CaptureUnavailable, RecordingBusy, capture_service
from backend.services.storage import storage
from engine.capture.types import CaptureError, CaptureSettings
from engine.preview.types import BuildOptions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reels", tags=["reels"])
reel_repo = ReelRepo()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reel not found.")


@router.get("", status_code=200)
async def list_reels(user: User = Depends(get_current_user)) -> list[Reel]:
    return await reel_repo.list_for_user(user.id)


@router.post("", status_code=201)
async def create_reel(
    req: CreateReelRequest,
    user: User = Depends(get_current_user),
) -> Reel:
    """
    Record the snippet running for up to max_seconds and publish it as a reel.

    A thumbnail still is taken before recording starts; POST
    /api/reels/recording/stop ends the recording early. Both files are
    uploaded, then released; the reel row is written last. Objects already
    uploaded are removed again when a later step fails.
    """
    rate_limiter.enforce(f"capture:{user.id}", settings.CAPTURE_RATE_LIMIT_PER_HOUR)
    capture = CaptureSettings(
        aspect_ratio=req.aspect_ratio,
        quality=req.quality,
        fps=settings.CAPTURE_FPS,
        max_seconds=min(req.max_seconds, settings.CAPTURE_MAX_SECONDS),
    )
    try:
        thumbnail, video = await capture_service.record_video(
            req.to_buffers(), capture, BuildOptions(mode=req.mode), method=req.method, owner=str(user.id)
        )
    except (CaptureUnavailable, CaptureError, RecordingBusy) as e:
        logger.error("reels: recording failed for user=%s: %s", user.id, e)
        raise capture_http_error(e) from e

    reel_id = uuid4()
    prefix = f"reels/{user.id}/{reel_id}"
    uploaded: list[str] = []
    try:
        uploaded.append(await storage.upload(f"{prefix}.{video.extension}", video.read_bytes(), video.mime_type))
        uploaded.append(
            await storage.upload(f"{prefix}-thumb.{thumbnail.extension}", thumbnail.read_bytes(), thumbnail.mime_type)
        )
        reel = await reel_repo.create(user.id, reel_id, req, *uploaded)
    except ClientError as e:
        logger.error("reels: upload failed for reel=%s: %s", reel_id, e)
        await storage.delete_urls(*uploaded)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Upload failed. Please try again.") from e
    except asyncpg.PostgresError:
        await storage.delete_urls(*uploaded)
        raise
    finally:
        video.release()
        thumbnail.release()

    logger.info("reels: created %s (%d frames) for user=%s", reel.id, video.frame_count, user.id)
    return reel


@router.post("/recording/stop", status_code=204)
async def stop_recording(user: User = Depends(get_current_user)) -> None:
    """End the caller's in-flight recording; the pending POST /api/reels keeps what was captured."""
    if not capture_service.stop_recording(str(user.id)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No recording in progress.")


@router.get("/{reel_id}", status_code=200)
async def get_reel(
    reel_id: UUID,
    user: User = Depends(get_current_user),
) -> Reel:
    reel = await reel_repo.get_visible(user.id, reel_id)
    if not reel:
        raise _not_found()
    return reel


@router.put("/{reel_id}", status_code=200)
async def update_reel(
    reel_id: UUID,
    req: UpdateReelRequest,
    user: User = Depends(get_current_user),
) -> Reel:
    reel = await reel_repo.update(user.id, reel_id, req)
    if not reel or reel.user_id != user.id:
        raise _not_found()
    return reel


@router.delete("/{reel_id}", status_code=204)
async def delete_reel(
    reel_id: UUID,
    user: User = Depends(get_current_user),
) -> None:
    reel = await reel_repo.delete(user.id, reel_id)
    if not reel:
        raise _not_found()
    await storage.delete_urls(reel.video_url, reel.thumbnail_url)
