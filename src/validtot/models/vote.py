"""
Vote model (ledger entry).

One row per (post, voter). Rows are immutable once inserted; the only
mutable column is ``tally_applied``, which records whether the post's
aggregate counters have already absorbed this vote.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from validtot.db.base import Base


class Vote(Base):
    """
    Ledger entry for a single voter on a single post.

    CONSISTENCY DESIGN:
    - uq_votes_post_account is the concurrency guard: two clients racing to
      vote for the same account cannot both insert
    - anonymous_token is a secondary de-duplication key, not authorization
    - tally_applied flips false -> true exactly once, in the same store
      transaction as the counter increment
    """

    __tablename__ = "votes"

    __table_args__ = (
        UniqueConstraint("post_id", "account_id", name="uq_votes_post_account"),
        Index("ix_votes_post_anonymous_token", "post_id", "anonymous_token"),
        Index("ix_votes_post_created", "post_id", "created_at"),
        CheckConstraint(
            "account_id IS NOT NULL OR anonymous_token IS NOT NULL",
            name="voter_identity_present",
        ),
    )

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
    option_index: Mapped[int] = mapped_column(Integer)

    # Voter identity
    account_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    anonymous_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Whether the aggregate counters include this vote
    tally_applied: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        index=True,
    )
