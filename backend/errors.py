"""
Error translation for persistence failures.

Repositories let asyncpg.PostgresError propagate; one exception handler turns
it into an HTTP status by inspecting the server message.
"""

from __future__ import annotations

import logging

import asyncpg
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

DB_NOT_INITIALIZED = "Database not initialized. Please run the migrations."

# (substring, status, client message or None for the raw message); first match wins
_POSTGRES_RULES: tuple[tuple[str, int, str | None], ...] = (
    ("does not exist", status.HTTP_503_SERVICE_UNAVAILABLE, DB_NOT_INITIALIZED),
    ("duplicate key", status.HTTP_409_CONFLICT, "Already exists."),
    ("violates check constraint", status.HTTP_422_UNPROCESSABLE_CONTENT, None),
    ("permission denied", status.HTTP_403_FORBIDDEN, "Permission denied."),
    ("row-level security", status.HTTP_403_FORBIDDEN, "Permission denied."),
)


def classify_postgres_error(exc: asyncpg.PostgresError) -> tuple[int, str]:
    """Map a Postgres error to (status code, client message)."""
    message = str(exc)
    lowered = message.lower()
    for needle, code, client_message in _POSTGRES_RULES:
        if needle in lowered:
            return code, client_message or message
    return status.HTTP_500_INTERNAL_SERVER_ERROR, message


def is_missing_table(exc: asyncpg.PostgresError) -> bool:
    return isinstance(exc, asyncpg.UndefinedTableError) or (
        "relation" in str(exc) and "does not exist" in str(exc)
    )


async def postgres_error_handler(request: Request, exc: asyncpg.PostgresError) -> JSONResponse:
    code, message = classify_postgres_error(exc)
    if code >= 500:
        logger.error("db: %s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("db: %s %s rejected (%d): %s", request.method, request.url.path, code, exc)
    return JSONResponse(status_code=code, content={"detail": message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(asyncpg.PostgresError, postgres_error_handler)
