"""Repository layer for data access."""

from validtot.repositories.post_repository import PostRepository
from validtot.repositories.profile_repository import ProfileRepository
from validtot.repositories.vote_repository import VoteRepository

__all__ = ["PostRepository", "ProfileRepository", "VoteRepository"]
