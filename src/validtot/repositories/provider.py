"""
Repository provider for dependency injection.

Services depend on the protocols below rather than on concrete
repositories, so the vote core can run against any store that offers
these operations.

Usage:
    from validtot.repositories.provider import build_repositories

    repos = build_repositories(get_session_factory())
    ledger = VoteLedger(repos.posts, repos.votes, repos.profiles, gate)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Sequence, runtime_checkable

from validtot.repositories.base import SessionFactory

# =============================================================================
# Repository Protocols (Interfaces)
# =============================================================================


@runtime_checkable
class PostRepositoryProtocol(Protocol):
    """Protocol defining post repository operations."""

    async def get_by_id(self, post_id: str): ...
    async def get_view(self, post_id: str, include_hidden: bool = False): ...
    async def access_code_matches(self, post_id: str, code: str) -> bool: ...
    async def create(
        self,
        owner_id: str,
        title: str,
        options: Sequence[tuple[str, str]],
        is_private: bool = False,
        access_code: Optional[str] = None,
        voting_starts_at: Optional[datetime] = None,
        voting_ends_at: Optional[datetime] = None,
    ): ...
    async def set_hidden(self, post_id: str, hidden: bool) -> bool: ...
    async def delete(self, post_id: str) -> bool: ...
    async def rebuild_tally(self, post_id: str): ...


@runtime_checkable
class VoteRepositoryProtocol(Protocol):
    """Protocol defining vote ledger operations."""

    async def find_existing(self, post_id: str, account_id: Optional[str], anonymous_token: Optional[str]): ...
    async def insert(
        self,
        post_id: str,
        option_index: int,
        account_id: Optional[str],
        anonymous_token: Optional[str],
        vote_id: Optional[str] = None,
    ): ...
    async def apply_tally(self, vote_id: str) -> bool: ...
    async def list_pending_tally(self, post_id: Optional[str] = None): ...


@runtime_checkable
class ProfileRepositoryProtocol(Protocol):
    """Protocol defining profile operations used by the vote core."""

    async def is_banned(self, account_id: str) -> bool: ...
    async def is_admin(self, account_id: str) -> bool: ...
    async def set_banned(self, account_id: str, banned: bool): ...


# =============================================================================
# Repository Factory
# =============================================================================


@dataclass(frozen=True)
class Repositories:
    posts: PostRepositoryProtocol
    votes: VoteRepositoryProtocol
    profiles: ProfileRepositoryProtocol


def build_repositories(sessions: SessionFactory) -> Repositories:
    """Build the SQL-backed repositories sharing one session factory."""
    from validtot.repositories.post_repository import PostRepository
    from validtot.repositories.profile_repository import ProfileRepository
    from validtot.repositories.vote_repository import VoteRepository

    return Repositories(
        posts=PostRepository(sessions),
        votes=VoteRepository(sessions),
        profiles=ProfileRepository(sessions),
    )
