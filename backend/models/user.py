"""The authenticated caller."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, EmailStr


class User(BaseModel):
    """
    Identity taken from a verified access token.

    Accounts live in the external auth service; there is no users table here.
    """

    id: UUID
    email: EmailStr | None = None
    role: str = "authenticated"
