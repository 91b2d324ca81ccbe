"""
Admin moderation and analytics schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field


class TopPost(BaseModel):
    id: str
    title: str
    total_votes: int


class PlatformStats(BaseModel):
    """Platform-wide counters for the admin dashboard."""

    posts: int
    votes: int
    profiles: int
    hidden_posts: int
    top_posts: list[TopPost] = Field(default_factory=list)
    computed_at: datetime


class OptionCount(BaseModel):
    option_index: int
    count: int


class PostAnalytics(BaseModel):
    """Per-post analytics computed from ledger rows."""

    post_id: str
    vote_counts: list[OptionCount]
    total_votes: int
    unique_voters: int
    votes_last_24h: int
    votes_last_7d: int
    first_vote_at: Optional[datetime] = None
    last_vote_at: Optional[datetime] = None


class ReconcileReport(BaseModel):
    """Result of recomputing a post's aggregates from the ledger."""

    post_id: str
    tally_before: list[int]
    total_before: int
    tally_after: list[int]
    total_after: int

    @computed_field
    @property
    def drift(self) -> int:
        return self.total_after - self.total_before


class ModerationResult(BaseModel):
    target_id: str
    action: str
    success: bool
