"""
Pydantic models for CodeNANO.

All data shapes defined here. No imports from db, repos, or routes.
"""

from backend.models.content import (
    CaptureImageRequest,
    CreatePostRequest,
    CreateReelRequest,
    Post,
    Reel,
    UpdateReelRequest,
)
from backend.models.preview import PreviewRequest, PreviewResponse, RunResponse
from backend.models.profile import (
    FollowCounts,
    Profile,
    ProfileResponse,
    PublicProfileResponse,
    UpsertProfileRequest,
)
from backend.models.project import (
    CreateProjectRequest,
    Project,
    ProjectResponse,
    UpdateProjectRequest,
)
from backend.models.user import User

__all__ = [
    # Caller
    "User",
    # Project models
    "Project",
    "CreateProjectRequest",
    "UpdateProjectRequest",
    "ProjectResponse",
    # Preview models
    "PreviewRequest",
    "PreviewResponse",
    "RunResponse",
    # Profile models
    "Profile",
    "UpsertProfileRequest",
    "ProfileResponse",
    "PublicProfileResponse",
    "FollowCounts",
    # Content models
    "CaptureImageRequest",
    "CreatePostRequest",
    "CreateReelRequest",
    "UpdateReelRequest",
    "Post",
    "Reel",
]
