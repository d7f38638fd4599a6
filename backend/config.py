"""
CodeNANO configuration — all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Object storage (S3-compatible)
    STORAGE_ENDPOINT: str = os.environ.get("STORAGE_ENDPOINT", "")
    STORAGE_ACCESS_KEY: str = os.environ.get("STORAGE_ACCESS_KEY", "")
    STORAGE_SECRET_KEY: str = os.environ.get("STORAGE_SECRET_KEY", "")
    STORAGE_BUCKET: str = os.environ.get("STORAGE_BUCKET", "codenano-media")
    STORAGE_PUBLIC_URL: str = os.environ.get("STORAGE_PUBLIC_URL", "https://media.codenano.dev")

    # Auth (tokens are issued by the external auth service and only verified here)
    JWT_SECRET: str = os.environ.get("JWT_SECRET", "")
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = os.environ.get("JWT_AUDIENCE", "authenticated")
    JWT_EXPIRY_HOURS: int = 24

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")
    TESTING: bool = os.environ.get("TESTING", "").lower() == "true"

    # Preview
    PREVIEW_HOST_ORIGIN: str = os.environ.get("PREVIEW_HOST_ORIGIN", "http://preview.codenano.local")
    PREVIEW_RUN_SETTLE_SECONDS: float = float(os.environ.get("PREVIEW_RUN_SETTLE_SECONDS", "1.0"))

    # Capture
    CAPTURE_MAX_SECONDS: float = float(os.environ.get("CAPTURE_MAX_SECONDS", "15"))
    CAPTURE_FPS: int = int(os.environ.get("CAPTURE_FPS", "30"))
    CAPTURE_WORKDIR: str | None = os.environ.get("CAPTURE_WORKDIR") or None

    # Rate Limits
    CAPTURE_RATE_LIMIT_PER_HOUR: int = 30  # per user
    PREVIEW_RUN_RATE_LIMIT_PER_MINUTE: int = 30  # per user


# Singleton instance
settings = Settings()

if not settings.DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is required")
if not settings.JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is required")

# Storage credentials are not needed in test mode
if not settings.TESTING:
    if not settings.STORAGE_ENDPOINT:
        raise RuntimeError("STORAGE_ENDPOINT environment variable is required")
    if not settings.STORAGE_ACCESS_KEY:
        raise RuntimeError("STORAGE_ACCESS_KEY environment variable is required")
    if not settings.STORAGE_SECRET_KEY:
        raise RuntimeError("STORAGE_SECRET_KEY environment variable is required")
