"""Image posts: capture a snippet, upload the PNG, record the post."""

from __future__ import annotations

import logging
from uuid import UUID, uuid4

import asyncpg
from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends, HTTPException, status

from backend.auth import get_current_user
from backend.config import settings
from backend.middleware.rate_limit import rate_limiter
from backend.models.content import CreatePostRequest, Post
from backend.models.user import User
from backend.repos.post_repo import PostRepo
from backend.routes.capture import capture_http_error
from backend.services.capture import CaptureUnavailable, capture_service
from backend.services.storage import storage
from engine.capture.types import CaptureError, CaptureSettings
from engine.preview.types import BuildOptions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["posts"])
post_repo = PostRepo()


@router.get("", status_code=200)
async def list_posts(user: User = Depends(get_current_user)) -> list[Post]:
    return await post_repo.list_for_user(user.id)


@router.post("", status_code=201)
async def create_post(
    req: CreatePostRequest,
    user: User = Depends(get_current_user),
) -> Post:
    """
    Render the snippet, upload the image and create the post.

    The capture is released once uploaded. If the post row cannot be
    written, the uploaded image is deleted again.
    """
    rate_limiter.enforce(f"capture:{user.id}", settings.CAPTURE_RATE_LIMIT_PER_HOUR)
    capture = CaptureSettings(aspect_ratio=req.aspect_ratio, quality=req.quality)
    try:
        image = await capture_service.capture_image(req.to_buffers(), capture, BuildOptions(mode=req.mode))
    except (CaptureUnavailable, CaptureError) as e:
        logger.error("posts: capture failed for user=%s: %s", user.id, e)
        raise capture_http_error(e) from e

    post_id = uuid4()
    try:
        image_url = await storage.upload(f"posts/{user.id}/{post_id}.{image.extension}", image.read_bytes(), image.mime_type)
    except ClientError as e:
        logger.error("posts: upload failed for post=%s: %s", post_id, e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Upload failed. Please try again.") from e
    finally:
        image.release()

    try:
        post = await post_repo.create(user.id, post_id, req, image_url)
    except asyncpg.PostgresError:
        await storage.delete_urls(image_url)
        raise
    logger.info("posts: created %s for user=%s", post.id, user.id)
    return post


@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: UUID,
    user: User = Depends(get_current_user),
) -> None:
    post = await post_repo.delete(user.id, post_id)
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found.")
    await storage.delete_urls(post.image_url)
