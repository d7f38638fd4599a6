"""
CodeNANO FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend import db
from backend.config import settings
from backend.errors import register_error_handlers
from backend.middleware.rate_limit import rate_limiter
from backend.routes import capture as capture_routes
from backend.routes import editor as editor_routes
from backend.routes import explore as explore_routes
from backend.routes import posts as post_routes
from backend.routes import preview as preview_routes
from backend.routes import profiles as profile_routes
from backend.routes import projects as project_routes
from backend.routes import reels as reel_routes
from backend.routes import setup as setup_routes
from backend.routes import templates as template_routes
from backend.services.capture import capture_service

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def cleanup_task():
    """
    Background task to drop old rate limit entries.

    Runs every 60 seconds.
    """
    while True:
        try:
            rate_limiter.cleanup_old_entries(max_age_hours=2)
        except Exception:
            logger.exception("cleanup task failed")
        await asyncio.sleep(60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup and shutdown:
    - Initialize database pool
    - Start background cleanup task
    - Close the headless browser and the pool on shutdown
    """
    await db.init_pool()
    logger.info("Database pool initialized")

    cleanup_task_handle = asyncio.create_task(cleanup_task())

    yield

    cleanup_task_handle.cancel()
    try:
        await cleanup_task_handle
    except asyncio.CancelledError:
        logger.info("Background cleanup task stopped")

    await capture_service.close()
    await db.close_pool()
    logger.info("Database pool closed")


app = FastAPI(
    title="CodeNANO",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

register_error_handlers(app)

# Register routes
app.include_router(setup_routes.router)
app.include_router(project_routes.router)
app.include_router(explore_routes.router)
app.include_router(preview_routes.router)
app.include_router(template_routes.router)
app.include_router(profile_routes.router)
app.include_router(capture_routes.router)
app.include_router(post_routes.router)
app.include_router(reel_routes.router)
app.include_router(editor_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok"}
