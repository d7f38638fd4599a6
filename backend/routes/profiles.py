"""Profile and follow routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from backend.auth import get_current_user, get_optional_user
from backend.models.profile import (
    FollowResponse,
    Profile,
    ProfileResponse,
    PublicProfileResponse,
    UpsertProfileRequest,
)
from backend.models.project import ProjectResponse
from backend.models.user import User
from backend.repos.follow_repo import FollowRepo
from backend.repos.profile_repo import ProfileRepo
from backend.repos.project_repo import ProjectRepo

router = APIRouter(tags=["profiles"])
profile_repo = ProfileRepo()
follow_repo = FollowRepo()
project_repo = ProjectRepo()


async def _profile_or_404(username: str) -> Profile:
    profile = await profile_repo.get_by_username(username)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return profile


@router.get("/api/profile", status_code=200)
async def get_own_profile(user: User = Depends(get_current_user)) -> ProfileResponse:
    """The caller's profile, created with a generated username on first visit."""
    profile = await profile_repo.get_or_create(user.id)
    return ProfileResponse.from_model(profile)


@router.post("/api/profile", status_code=200)
async def upsert_own_profile(
    req: UpsertProfileRequest,
    user: User = Depends(get_current_user),
) -> ProfileResponse:
    """Create or update the caller's profile. A taken username is a 409."""
    profile = await profile_repo.upsert(user.id, req)
    return ProfileResponse.from_model(profile)


@router.get("/api/users/{username}", status_code=200)
async def get_public_profile(
    username: str,
    user: User | None = Depends(get_optional_user),
) -> PublicProfileResponse:
    profile = await _profile_or_404(username)
    counts = await follow_repo.counts(profile.id)
    projects = await project_repo.list_public_for_user(profile.id)

    is_self = user is not None and user.id == profile.id
    is_following = False
    if user is not None and not is_self:
        is_following = await follow_repo.is_following(user.id, profile.id)

    return PublicProfileResponse(
        profile=ProfileResponse.from_model(profile),
        counts=counts,
        is_following=is_following,
        is_self=is_self,
        projects=[ProjectResponse.from_model(p, author=profile.username) for p in projects],
    )


@router.post("/api/users/{username}/follow", status_code=200)
async def follow_user(
    username: str,
    user: User = Depends(get_current_user),
) -> FollowResponse:
    profile = await _profile_or_404(username)
    if profile.id == user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot follow yourself.")
    await follow_repo.follow(user.id, profile.id)
    return FollowResponse(following=True, counts=await follow_repo.counts(profile.id))


@router.delete("/api/users/{username}/follow", status_code=200)
async def unfollow_user(
    username: str,
    user: User = Depends(get_current_user),
) -> FollowResponse:
    profile = await _profile_or_404(username)
    await follow_repo.unfollow(user.id, profile.id)
    return FollowResponse(following=False, counts=await follow_repo.counts(profile.id))
