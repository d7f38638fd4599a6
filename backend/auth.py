"""
Authentication for CodeNANO.

Access tokens are HS256 JWTs issued by the external auth service. This module
only verifies them: signature, expiry and audience. `sub` is the user id.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Cookie, Header, HTTPException, WebSocket, status

from backend import config
from backend.models.user import User


def create_jwt(user_id: UUID, email: str | None = None) -> str:
    """
    Sign a token the way the auth service does.

    Used by tests and local tooling; production tokens come from the auth service.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "aud": config.settings.JWT_AUDIENCE,
        "role": "authenticated",
        "iat": now,
        "exp": now + timedelta(hours=config.settings.JWT_EXPIRY_HOURS),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, config.settings.JWT_SECRET, algorithm=config.settings.JWT_ALGORITHM)


def decode_jwt(token: str) -> dict:
    """
    Verify and decode a token.

    Raises:
        HTTPException: 401 if the token is expired or invalid
    """
    try:
        return jwt.decode(
            token,
            config.settings.JWT_SECRET,
            algorithms=[config.settings.JWT_ALGORITHM],
            audience=config.settings.JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please sign in again.",
        ) from e
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        ) from e


def user_from_token(token: str) -> User:
    """Build the caller from a verified token's claims."""
    payload = decode_jwt(token)
    try:
        user_id = UUID(payload.get("sub") or "")
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        ) from e
    return User(id=user_id, email=payload.get("email") or None, role=payload.get("role") or "authenticated")


def _extract_token(session: str | None, authorization: str | None) -> str | None:
    # Bearer header first (API clients), then the session cookie (browser)
    if authorization and authorization.startswith("Bearer "):
        return authorization.removeprefix("Bearer ").strip() or None
    return session or None


async def get_current_user(
    session: Annotated[str | None, Cookie()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """
    FastAPI dependency: the authenticated caller.

    Raises:
        HTTPException: 401 when no valid token is present
    """
    token = _extract_token(session, authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Please sign in.",
        )
    return user_from_token(token)


async def get_optional_user(
    session: Annotated[str | None, Cookie()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> User | None:
    """Like get_current_user, but anonymous callers get None. An invalid token is still a 401."""
    token = _extract_token(session, authorization)
    if not token:
        return None
    return user_from_token(token)


def user_from_websocket(websocket: WebSocket) -> User | None:
    """
    Caller of a WebSocket handshake: session cookie, else `token` query param.

    Returns None when absent or invalid; the endpoint decides whether to close.
    """
    token = websocket.cookies.get("session") or websocket.query_params.get("token")
    if not token:
        return None
    try:
        return user_from_token(token)
    except HTTPException:
        return None
