"""
Post model.

A post is a comparison poll with 1-3 image options. Aggregated tallies
live on the post (running total) and on each option (per-option counter);
individual votes are stored in the votes table and are the source of truth.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from validtot.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Post(Base):
    """
    Voting campaign.

    Visibility:
    - Public posts are open to everyone
    - Private posts require an access code (stored uppercase, never
      returned to clients)

    Voting window:
    - voting_starts_at / voting_ends_at are optional; absent means always open
    """

    __tablename__ = "posts"

    __table_args__ = (
        Index("ix_posts_hidden_created", "is_hidden", "created_at"),
        Index("ix_posts_total_votes", "total_votes"),
    )

    id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    title: Mapped[str] = mapped_column(Text)

    # Owner (account id from the identity provider)
    owner_id: Mapped[str] = mapped_column(String(64), index=True)

    # Visibility
    is_private: Mapped[bool] = mapped_column(Boolean, default=False)
    access_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Voting window
    voting_starts_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    voting_ends_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Aggregated results (updated by the vote ledger only)
    total_votes: Mapped[int] = mapped_column(Integer, default=0)

    # Moderation
    is_hidden: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
    )

    options: Mapped[list["PostOption"]] = relationship(
        "PostOption",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="PostOption.position",
        lazy="selectin",
    )

    @property
    def tally(self) -> list[int]:
        """Per-option counters in option order."""
        return [option.vote_count for option in self.options]


class PostOption(Base):
    """
    Image option of a post.

    Stores the aggregated vote count for its position.
    """

    __tablename__ = "post_options"

    __table_args__ = (UniqueConstraint("post_id", "position", name="uq_post_options_post_position"),)

    id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    post_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("posts.id", ondelete="CASCADE"),
        index=True,
    )

    position: Mapped[int] = mapped_column(Integer)
    label: Mapped[str] = mapped_column(String(140))
    image_url: Mapped[str] = mapped_column(String(1000))

    # Aggregated vote count
    vote_count: Mapped[int] = mapped_column(Integer, default=0)

    post: Mapped[Post] = relationship("Post", back_populates="options")
