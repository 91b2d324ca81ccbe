"""
Vote repository for ledger operations.

The unique constraint on (post_id, account_id) is the only mutual
exclusion between clients; this repository surfaces it as
VoteConflictError.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from validtot.core.errors import BackendUnavailableError, VoteConflictError
from validtot.models.post import Post, PostOption
from validtot.models.vote import Vote
from validtot.repositories.base import SessionFactory, is_valid_id, store_errors

logger = structlog.get_logger(__name__)


class VoteRepository:
    """Repository for vote database operations."""

    def __init__(self, sessions: SessionFactory):
        self.sessions = sessions

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def find_existing(
        self,
        post_id: str,
        account_id: Optional[str],
        anonymous_token: Optional[str],
    ) -> Optional[Vote]:
        """
        Find the voter's vote on a post.

        Matches on account id OR anonymous token. If both identities match
        different rows, the earliest row is the vote on record.
        """
        if not is_valid_id(post_id):
            return None
        conditions = []
        if account_id:
            conditions.append(Vote.account_id == account_id)
        if anonymous_token:
            conditions.append(Vote.anonymous_token == anonymous_token)
        if not conditions:
            return None

        query = (
            select(Vote)
            .where(Vote.post_id == post_id, or_(*conditions))
            .order_by(Vote.created_at.asc())
            .limit(1)
        )
        async with store_errors("find_vote"), self.sessions() as db:
            result = await db.execute(query)
            return result.scalar_one_or_none()

    async def list_pending_tally(self, post_id: Optional[str] = None) -> list[Vote]:
        """Votes whose counter increment has not been applied yet."""
        query = select(Vote).where(Vote.tally_applied.is_(False))
        if post_id is not None:
            query = query.where(Vote.post_id == post_id)
        async with store_errors("list_pending_tally"), self.sessions() as db:
            result = await db.execute(query.order_by(Vote.created_at.asc()))
            return list(result.scalars().all())

    async def list_for_post(self, post_id: str) -> list[Vote]:
        """Get all ledger rows of a post (for analytics)."""
        if not is_valid_id(post_id):
            return []
        async with store_errors("list_votes"), self.sessions() as db:
            result = await db.execute(
                select(Vote).where(Vote.post_id == post_id).order_by(Vote.created_at.asc())
            )
            return list(result.scalars().all())

    async def count(self) -> int:
        async with store_errors("count_votes"), self.sessions() as db:
            result = await db.execute(select(func.count(Vote.id)))
            return result.scalar() or 0

    async def count_by_option(self, post_id: str) -> dict[int, int]:
        """Vote counts per option index, straight from the ledger."""
        if not is_valid_id(post_id):
            return {}
        async with store_errors("count_votes_by_option"), self.sessions() as db:
            result = await db.execute(
                select(Vote.option_index, func.count(Vote.id))
                .where(Vote.post_id == post_id)
                .group_by(Vote.option_index)
            )
            return {int(index): int(count) for index, count in result.all()}

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def insert(
        self,
        post_id: str,
        option_index: int,
        account_id: Optional[str],
        anonymous_token: Optional[str],
        vote_id: Optional[str] = None,
    ) -> Vote:
        """
        Insert a ledger row carrying both identity fields.

        The row id is assigned before the write (or taken from vote_id), so
        a caller that loses the response can still tell its own row apart
        from one written by a competing request.

        Raises:
            VoteConflictError: a row for (post_id, account_id) already exists
        """
        vote = Vote(
            id=vote_id or str(uuid4()),
            post_id=post_id,
            option_index=option_index,
            account_id=account_id,
            anonymous_token=anonymous_token,
            tally_applied=False,
        )
        try:
            async with self.sessions.begin() as db:
                db.add(vote)
        except IntegrityError as e:
            logger.info("vote_insert_conflict", post_id=post_id)
            raise VoteConflictError() from e
        except (SQLAlchemyError, OSError) as e:
            logger.warning("store_call_failed", operation="insert_vote", error=str(e))
            raise BackendUnavailableError() from e
        return vote

    async def apply_tally(self, vote_id: str) -> bool:
        """
        Fold a vote into its post's aggregate counters, at most once.

        In one transaction: flip tally_applied false -> true for the vote
        and, only if this call performed the flip, increment the option
        counter and the post total by one. Safe to retry.

        Returns:
            True if this call applied the increment, False if it was
            already applied (or the vote does not exist)
        """
        async with store_errors("apply_tally"), self.sessions.begin() as db:
            # Write first so the transaction takes its write lock up front
            claimed = await db.execute(
                update(Vote)
                .where(Vote.id == vote_id, Vote.tally_applied.is_(False))
                .values(tally_applied=True)
                .returning(Vote.post_id, Vote.option_index)
            )
            row = claimed.first()
            if row is None:
                return False

            post_id, option_index = row
            await db.execute(
                update(PostOption)
                .where(PostOption.post_id == post_id, PostOption.position == option_index)
                .values(vote_count=PostOption.vote_count + 1)
            )
            await db.execute(update(Post).where(Post.id == post_id).values(total_votes=Post.total_votes + 1))
            return True

    async def votes_between(self, post_id: str, start: datetime, end: datetime) -> int:
        """Get vote count in a specific time period."""
        if not is_valid_id(post_id):
            return 0
        async with store_errors("count_votes_between"), self.sessions() as db:
            result = await db.execute(
                select(func.count(Vote.id)).where(
                    Vote.post_id == post_id,
                    Vote.created_at >= start,
                    Vote.created_at < end,
                )
            )
            return result.scalar() or 0
