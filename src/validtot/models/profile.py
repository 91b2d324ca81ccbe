"""
Profile model.

Application-side record for an identity-provider account. Only the flags
the vote core and moderation depend on are kept here.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from validtot.db.base import Base


class Profile(Base):
    __tablename__ = "profiles"

    # Same value as the identity provider's account id
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    username: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, unique=True)

    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
