"""
Vote Ledger

Enforces at most one vote per (post, voter), records the vote, then folds
it into the post's aggregate counters.

The store gives no multi-statement transaction across these steps, and
many clients race to vote at once, so:

1. Look up an existing vote for the account id OR anonymous token. A hit
   means "already voted": return the recorded choice, write nothing.
2. Otherwise insert a row carrying both identity fields. The unique
   constraint on (post_id, account_id) is the real guard; the lookup in
   step 1 only saves a round-trip for well-behaved callers.
3. A uniqueness conflict means another request for the same account won.
   Re-read the ledger and report the winning choice (first writer wins).
4. Only after the insert is durable, apply the tally increment. This step
   is best-effort: a failure is logged and the vote still stands. The
   increment is keyed off the vote row (tally_applied), so it can be
   resumed later without ever re-inserting the vote.
5. Remember the choice in the session's advisory cache.

Once an insert has been issued the call always runs to a definite answer;
an unknown insert outcome is resolved by reading the ledger back.
"""

from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

import structlog

from validtot.core.errors import (
    AccountBannedError,
    AuthenticationRequiredError,
    BackendUnavailableError,
    InvalidOptionError,
    PostLockedError,
    PostNotFoundError,
    VoteConflictError,
    VotingClosedError,
)
from validtot.repositories.provider import (
    PostRepositoryProtocol,
    ProfileRepositoryProtocol,
    VoteRepositoryProtocol,
)
from validtot.schemas.post import PostView
from validtot.schemas.vote import CastResult
from validtot.services.access_gate import AccessGate, is_accessible
from validtot.services.session import VoterSession
from validtot.services.voting_window import WindowState, evaluate_window, is_voting_open

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]

WINDOW_MESSAGES = {
    WindowState.COUNTDOWN: "Voting has not started yet",
    WindowState.CLOSED: "Voting has ended",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VoteLedger:
    """Exactly-once vote casting for a post and a voter."""

    def __init__(
        self,
        posts: PostRepositoryProtocol,
        votes: VoteRepositoryProtocol,
        profiles: ProfileRepositoryProtocol,
        gate: AccessGate,
        clock: Clock = utcnow,
    ):
        self.posts = posts
        self.votes = votes
        self.profiles = profiles
        self.gate = gate
        self.clock = clock

    # ========================================================================
    # Policy gates
    # ========================================================================

    async def load_post(self, post_id: str) -> PostView:
        """Get a visible post or raise PostNotFoundError."""
        post = await self.posts.get_view(post_id)
        if post is None:
            raise PostNotFoundError()
        return post

    async def check_can_vote(
        self,
        post: PostView,
        option_index: int,
        session: VoterSession,
        access_code: Optional[str] = None,
    ) -> None:
        """
        Run every precondition in order. Raises on the first failure.

        Raises:
            InvalidOptionError, VotingClosedError, AuthenticationRequiredError,
            AccountBannedError, PostLockedError
        """
        if not 0 <= option_index < post.option_count:
            raise InvalidOptionError()

        state = evaluate_window(self.clock(), post.voting_starts_at, post.voting_ends_at)
        if not is_voting_open(state):
            logger.info("vote_rejected", post_id=post.id, reason="window", state=state.value)
            raise VotingClosedError(state.value, WINDOW_MESSAGES.get(state))

        if not session.account_id:
            logger.info("vote_rejected", post_id=post.id, reason="not_signed_in")
            raise AuthenticationRequiredError()

        if await self.profiles.is_banned(session.account_id):
            logger.warning("vote_rejected", post_id=post.id, reason="banned", account_id=session.account_id)
            raise AccountBannedError()

        decision = await self.gate.can_view(post, session, access_code)
        if not is_accessible(decision):
            logger.info("vote_rejected", post_id=post.id, reason="locked")
            raise PostLockedError()

    # ========================================================================
    # Casting
    # ========================================================================

    async def cast_vote(
        self,
        post_id: str,
        option_index: int,
        session: VoterSession,
        access_code: Optional[str] = None,
    ) -> CastResult:
        """
        Cast a vote.

        Returns:
            CastResult(accepted=True, option_index=chosen) for a new vote, or
            CastResult(accepted=False, option_index=existing) when the voter
            already has a vote on record (including a lost concurrent race)
        """
        post = await self.load_post(post_id)
        await self.check_can_vote(post, option_index, session, access_code)

        existing = await self.votes.find_existing(post.id, session.account_id, session.anonymous_token)
        if existing is not None:
            if not existing.tally_applied:
                await self._apply_tally(existing.id, post.id)
            session.sync_vote(post.id, existing.option_index)
            logger.debug("vote_already_recorded", post_id=post.id)
            return CastResult(accepted=False, option_index=existing.option_index)

        attempted_id = str(uuid4())
        try:
            vote = await self.votes.insert(
                post.id, option_index, session.account_id, session.anonymous_token, vote_id=attempted_id
            )
        except VoteConflictError:
            return await self._resolve_conflict(post.id, session)
        except BackendUnavailableError:
            return await self._resolve_unknown_insert(post.id, attempted_id, session)

        await self._apply_tally(vote.id, post.id)
        session.remember_vote(post.id, option_index)
        logger.info("vote_recorded", post_id=post.id, option_index=option_index)
        return CastResult(accepted=True, option_index=option_index)

    async def _resolve_conflict(self, post_id: str, session: VoterSession) -> CastResult:
        """Another request for this account inserted first; report its choice."""
        winner = await self.votes.find_existing(post_id, session.account_id, session.anonymous_token)
        if winner is None:
            # The row that blocked us is gone again: the post was deleted
            raise PostNotFoundError()
        if not winner.tally_applied:
            await self._apply_tally(winner.id, post_id)
        session.sync_vote(post_id, winner.option_index)
        logger.info("vote_conflict_resolved", post_id=post_id, option_index=winner.option_index)
        return CastResult(accepted=False, option_index=winner.option_index)

    async def _resolve_unknown_insert(
        self,
        post_id: str,
        attempted_id: str,
        session: VoterSession,
    ) -> CastResult:
        """
        The insert failed in transit; it may or may not have landed.

        Read the ledger back. No row means nothing was written and the
        whole call is safe to retry, so the failure propagates. A row with
        another id was written by a competing request, which won.
        """
        logger.warning("vote_insert_outcome_unknown", post_id=post_id)
        recorded = await self.votes.find_existing(post_id, session.account_id, session.anonymous_token)
        if recorded is None:
            raise BackendUnavailableError()

        if not recorded.tally_applied:
            await self._apply_tally(recorded.id, post_id)
        session.sync_vote(post_id, recorded.option_index)
        accepted = recorded.id == attempted_id
        logger.info("vote_insert_outcome_resolved", post_id=post_id, accepted=accepted)
        return CastResult(accepted=accepted, option_index=recorded.option_index)

    # ========================================================================
    # Aggregates
    # ========================================================================

    async def _apply_tally(self, vote_id: str, post_id: str) -> bool:
        """Best-effort counter increment. The vote row stays authoritative."""
        try:
            applied = await self.votes.apply_tally(vote_id)
        except BackendUnavailableError:
            logger.warning("tally_update_failed", vote_id=vote_id, post_id=post_id)
            return False
        if applied:
            logger.debug("tally_applied", vote_id=vote_id, post_id=post_id)
        return applied

    async def resume_tally(self, vote_id: str) -> bool:
        """
        Retry the counter increment for an already-recorded vote.

        Raises BackendUnavailableError so callers can retry again.
        """
        return await self.votes.apply_tally(vote_id)

    async def resume_pending(self, post_id: Optional[str] = None) -> int:
        """Apply every outstanding increment. Returns how many were applied."""
        pending = await self.votes.list_pending_tally(post_id)
        applied = 0
        for vote in pending:
            if await self._apply_tally(vote.id, vote.post_id):
                applied += 1
        if pending:
            logger.info("pending_tallies_resumed", pending=len(pending), applied=applied)
        return applied

    # ========================================================================
    # Queries
    # ========================================================================

    async def get_vote(self, post_id: str, session: VoterSession) -> Optional[int]:
        """
        Ledger-verified choice of the session's voter, or None.

        Overwrites the advisory cache with the result.
        """
        existing = await self.votes.find_existing(post_id, session.account_id, session.anonymous_token)
        option_index = existing.option_index if existing is not None else None
        session.sync_vote(post_id, option_index)
        return option_index
