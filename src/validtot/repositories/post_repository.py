"""
Post repository for database operations.

Every method opens its own session; no transaction spans two calls.
"""

from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import delete, exists, func, select, update

from validtot.models.post import Post, PostOption
from validtot.models.vote import Vote
from validtot.repositories.base import SessionFactory, is_valid_id, store_errors
from validtot.schemas.post import PostView


class PostRepository:
    """Repository for post database operations."""

    def __init__(self, sessions: SessionFactory):
        self.sessions = sessions

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def get_by_id(self, post_id: str) -> Optional[Post]:
        """Get a post with its options (tally, total and window fields)."""
        if not is_valid_id(post_id):
            return None
        async with store_errors("get_post"), self.sessions() as db:
            result = await db.execute(select(Post).where(Post.id == post_id))
            return result.scalar_one_or_none()

    async def get_view(self, post_id: str, include_hidden: bool = False) -> Optional[PostView]:
        """Get a post as a validated view. Hidden posts are skipped unless asked for."""
        post = await self.get_by_id(post_id)
        if post is None or (post.is_hidden and not include_hidden):
            return None
        return PostView.from_model(post)

    async def access_code_matches(self, post_id: str, code: str) -> bool:
        """
        Check an access code at the store.

        Evaluates EXISTS(...) so that the stored code never leaves the
        database. The code must already be normalized (uppercase).
        """
        if not is_valid_id(post_id) or not code:
            return False
        query = select(
            exists().where(
                Post.id == post_id,
                Post.is_private.is_(True),
                Post.access_code == code,
            )
        )
        async with store_errors("access_code_matches"), self.sessions() as db:
            result = await db.execute(query)
            return bool(result.scalar())

    async def count(self, hidden: Optional[bool] = None) -> int:
        query = select(func.count(Post.id))
        if hidden is not None:
            query = query.where(Post.is_hidden.is_(hidden))
        async with store_errors("count_posts"), self.sessions() as db:
            result = await db.execute(query)
            return result.scalar() or 0

    async def top_by_votes(self, limit: int = 5) -> list[Post]:
        query = select(Post).where(Post.is_hidden.is_(False)).order_by(Post.total_votes.desc()).limit(limit)
        async with store_errors("top_posts"), self.sessions() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def list_ids(self) -> list[str]:
        async with store_errors("list_post_ids"), self.sessions() as db:
            result = await db.execute(select(Post.id).order_by(Post.created_at))
            return [str(post_id) for post_id in result.scalars().all()]

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def create(
        self,
        owner_id: str,
        title: str,
        options: Sequence[tuple[str, str]],
        is_private: bool = False,
        access_code: Optional[str] = None,
        voting_starts_at: Optional[datetime] = None,
        voting_ends_at: Optional[datetime] = None,
    ) -> Post:
        """
        Create a post with zeroed tallies.

        Args:
            options: (label, image_url) pairs in display order
        """
        post = Post(
            owner_id=owner_id,
            title=title,
            is_private=is_private,
            access_code=access_code if is_private else None,
            voting_starts_at=voting_starts_at,
            voting_ends_at=voting_ends_at,
            total_votes=0,
            is_hidden=False,
        )
        post.options = [
            PostOption(position=position, label=label, image_url=image_url, vote_count=0)
            for position, (label, image_url) in enumerate(options)
        ]
        async with store_errors("create_post"), self.sessions.begin() as db:
            db.add(post)
        return post

    async def set_hidden(self, post_id: str, hidden: bool) -> bool:
        """Hide or unhide a post. Returns False if the post does not exist."""
        if not is_valid_id(post_id):
            return False
        async with store_errors("set_post_hidden"), self.sessions.begin() as db:
            result = await db.execute(update(Post).where(Post.id == post_id).values(is_hidden=hidden))
            return result.rowcount > 0

    async def delete(self, post_id: str) -> bool:
        """Delete a post together with its options and ledger rows."""
        if not is_valid_id(post_id):
            return False
        async with store_errors("delete_post"), self.sessions.begin() as db:
            await db.execute(delete(Vote).where(Vote.post_id == post_id))
            await db.execute(delete(PostOption).where(PostOption.post_id == post_id))
            result = await db.execute(delete(Post).where(Post.id == post_id))
            return result.rowcount > 0

    async def rebuild_tally(self, post_id: str) -> Optional[tuple[list[int], int, list[int], int]]:
        """
        Recompute a post's aggregates from its ledger rows.

        Runs in one transaction: counts votes per option, overwrites the
        option counters and the total, and marks every vote as applied.

        Returns:
            (tally_before, total_before, tally_after, total_after) or None
            if the post does not exist
        """
        if not is_valid_id(post_id):
            return None
        async with store_errors("rebuild_tally"), self.sessions.begin() as db:
            result = await db.execute(select(Post).where(Post.id == post_id))
            post = result.scalar_one_or_none()
            if post is None:
                return None

            tally_before = list(post.tally)
            total_before = post.total_votes or 0

            rows = await db.execute(
                select(Vote.option_index, func.count(Vote.id))
                .where(Vote.post_id == post_id)
                .group_by(Vote.option_index)
            )
            counts = {int(index): int(count) for index, count in rows.all()}

            tally_after = []
            for option in post.options:
                option.vote_count = counts.get(option.position, 0)
                tally_after.append(option.vote_count)
            total_after = sum(counts.values())
            post.total_votes = total_after

            await db.execute(
                update(Vote)
                .where(Vote.post_id == post_id, Vote.tally_applied.is_(False))
                .values(tally_applied=True)
            )

        return tally_before, total_before, tally_after, total_after
