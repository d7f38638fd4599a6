"""Profile and follower models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from backend.models.project import ProjectResponse

USERNAME_PATTERN = r"^[A-Za-z0-9_]{3,30}$"


class Profile(BaseModel):
    """Represents a row in the profiles table. id is the auth user id."""

    id: UUID
    username: str
    bio: str | None = None
    avatar_url: str | None = None
    created_at: datetime
    updated_at: datetime


class UpsertProfileRequest(BaseModel):
    """What the client sends to create or update its own profile."""

    model_config = {"extra": "forbid"}

    username: str = Field(pattern=USERNAME_PATTERN)
    bio: str | None = Field(default=None, max_length=500)
    avatar_url: str | None = Field(default=None, max_length=2000)


class ProfileResponse(BaseModel):
    id: UUID
    username: str
    bio: str | None
    avatar_url: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, profile: Profile) -> ProfileResponse:
        return cls(
            id=profile.id,
            username=profile.username,
            bio=profile.bio,
            avatar_url=profile.avatar_url,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )


class FollowCounts(BaseModel):
    followers: int = 0
    following: int = 0


class PublicProfileResponse(BaseModel):
    """A user's page: profile, follower counts and public projects."""

    profile: ProfileResponse
    counts: FollowCounts
    is_following: bool = False
    is_self: bool = False
    projects: list[ProjectResponse] = Field(default_factory=list)


class FollowResponse(BaseModel):
    following: bool
    counts: FollowCounts
