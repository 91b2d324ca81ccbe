"""
Admin analytics.

Platform counters and per-post analytics computed from ledger rows, so
they stay correct even while a post's cached tallies lag behind.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from validtot.core.config import settings
from validtot.core.errors import PostNotFoundError
from validtot.repositories.post_repository import PostRepository
from validtot.repositories.profile_repository import ProfileRepository
from validtot.repositories.vote_repository import VoteRepository
from validtot.schemas.admin import OptionCount, PlatformStats, PostAnalytics, TopPost
from validtot.services.voting_window import as_utc


class StatsService:
    """Service for computing admin dashboard statistics."""

    def __init__(self, posts: PostRepository, votes: VoteRepository, profiles: ProfileRepository):
        self.posts = posts
        self.votes = votes
        self.profiles = profiles

    async def platform_stats(self, now: Optional[datetime] = None) -> PlatformStats:
        top = await self.posts.top_by_votes(settings.TOP_POSTS_LIMIT)
        return PlatformStats(
            posts=await self.posts.count(),
            votes=await self.votes.count(),
            profiles=await self.profiles.count(),
            hidden_posts=await self.posts.count(hidden=True),
            top_posts=[TopPost(id=str(p.id), title=p.title, total_votes=p.total_votes) for p in top],
            computed_at=now or datetime.now(timezone.utc),
        )

    async def post_analytics(self, post_id: str, now: Optional[datetime] = None) -> PostAnalytics:
        post = await self.posts.get_by_id(post_id)
        if post is None:
            raise PostNotFoundError()

        now = as_utc(now or datetime.now(timezone.utc))
        counts: dict[int, int] = {option.position: 0 for option in post.options}
        counts.update(await self.votes.count_by_option(post_id))

        rows = await self.votes.list_for_post(post_id)
        voters = {vote.account_id or vote.anonymous_token or vote.id for vote in rows}
        created = sorted(c for c in (as_utc(vote.created_at) for vote in rows) if c is not None)

        return PostAnalytics(
            post_id=post_id,
            vote_counts=[OptionCount(option_index=i, count=c) for i, c in sorted(counts.items())],
            total_votes=sum(counts.values()),
            unique_voters=len(voters),
            votes_last_24h=await self.votes.votes_between(post_id, now - timedelta(days=1), now),
            votes_last_7d=await self.votes.votes_between(post_id, now - timedelta(days=7), now),
            first_vote_at=created[0] if created else None,
            last_vote_at=created[-1] if created else None,
        )
