"""
Repository layer for CodeNANO.

All SQL lives here and ONLY here. No database access outside this module.
"""

from backend.repos.follow_repo import FollowRepo
from backend.repos.post_repo import PostRepo
from backend.repos.profile_repo import ProfileRepo
from backend.repos.project_repo import ProjectRepo, StaleProjectError
from backend.repos.reel_repo import ReelRepo
from backend.repos.saved_repo import SavedProjectRepo

__all__ = [
    "ProjectRepo",
    "StaleProjectError",
    "SavedProjectRepo",
    "ProfileRepo",
    "FollowRepo",
    "PostRepo",
    "ReelRepo",
]
