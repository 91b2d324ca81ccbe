"""
Access Gate

Decides whether a viewer may see and interact with a post's results.

- Public posts never need unlocking
- Private posts unlock for the rest of the session after a correct code,
  and permanently once the voter has a vote on record
- Codes are compared case-insensitively at the store; the stored code is
  never fetched

Invalid attempts are not rate-limited here. Brute-forcing short codes is a
known hardening gap to close at the HTTP edge.
"""

from enum import Enum
from typing import Optional

import structlog

from validtot.core.security import normalize_access_code
from validtot.repositories.provider import PostRepositoryProtocol, VoteRepositoryProtocol
from validtot.schemas.post import PostView
from validtot.services.session import VoterSession

logger = structlog.get_logger(__name__)


class AccessDecision(str, Enum):
    NOT_REQUIRED = "not_required"
    UNLOCKED = "unlocked"
    LOCKED = "locked"


def is_accessible(decision: AccessDecision) -> bool:
    return decision in (AccessDecision.NOT_REQUIRED, AccessDecision.UNLOCKED)


class AccessGate:
    """Access control for private posts."""

    def __init__(self, posts: PostRepositoryProtocol, votes: VoteRepositoryProtocol):
        self.posts = posts
        self.votes = votes

    async def unlock(self, post_id: str, code: Optional[str], session: VoterSession) -> bool:
        """
        Check a submitted access code.

        A valid code is remembered in the session only.
        """
        normalized = normalize_access_code(code)
        if not normalized:
            return False

        valid = await self.posts.access_code_matches(post_id, normalized)
        if valid:
            session.mark_unlocked(post_id)
            logger.info("post_unlocked", post_id=post_id)
        else:
            logger.info("access_code_rejected", post_id=post_id)
        return valid

    async def can_view(
        self,
        post: PostView,
        session: VoterSession,
        provided_code: Optional[str] = None,
    ) -> AccessDecision:
        """
        Decide access for the session's voter.

        The ledger is consulted directly for "already voted"; the session's
        advisory vote cache is not trusted here.
        """
        if not post.is_private:
            return AccessDecision.NOT_REQUIRED

        if session.is_unlocked(post.id):
            return AccessDecision.UNLOCKED

        existing = await self.votes.find_existing(post.id, session.account_id, session.anonymous_token)
        if existing is not None:
            return AccessDecision.UNLOCKED

        if provided_code is not None and await self.unlock(post.id, provided_code, session):
            return AccessDecision.UNLOCKED

        return AccessDecision.LOCKED
