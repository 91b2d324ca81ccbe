"""Database models module."""

from validtot.models.post import Post, PostOption
from validtot.models.profile import Profile
from validtot.models.vote import Vote

__all__ = [
    "Post",
    "PostOption",
    "Profile",
    "Vote",
]
