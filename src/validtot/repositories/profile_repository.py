"""
Profile repository for database operations.
"""

from typing import Optional

from sqlalchemy import func, select

from validtot.models.profile import Profile
from validtot.repositories.base import SessionFactory, store_errors


class ProfileRepository:
    """Repository for account profile flags."""

    def __init__(self, sessions: SessionFactory):
        self.sessions = sessions

    async def get_by_id(self, account_id: str) -> Optional[Profile]:
        async with store_errors("get_profile"), self.sessions() as db:
            result = await db.execute(select(Profile).where(Profile.id == account_id))
            return result.scalar_one_or_none()

    async def is_banned(self, account_id: str) -> bool:
        """Accounts without a profile row are not banned."""
        profile = await self.get_by_id(account_id)
        return bool(profile and profile.is_banned)

    async def is_admin(self, account_id: str) -> bool:
        profile = await self.get_by_id(account_id)
        return bool(profile and profile.is_admin and not profile.is_banned)

    async def ensure(self, account_id: str, username: Optional[str] = None, is_admin: bool = False) -> Profile:
        """Get the profile for an account, creating it on first sight."""
        async with store_errors("ensure_profile"), self.sessions.begin() as db:
            result = await db.execute(select(Profile).where(Profile.id == account_id))
            profile = result.scalar_one_or_none()
            if profile is None:
                profile = Profile(id=account_id, username=username, is_admin=is_admin, is_banned=False)
                db.add(profile)
            return profile

    async def set_banned(self, account_id: str, banned: bool) -> Profile:
        """Ban or unban an account. Creates the profile if needed."""
        async with store_errors("set_banned"), self.sessions.begin() as db:
            result = await db.execute(select(Profile).where(Profile.id == account_id))
            profile = result.scalar_one_or_none()
            if profile is None:
                profile = Profile(id=account_id, is_admin=False, is_banned=banned)
                db.add(profile)
            else:
                profile.is_banned = banned
            return profile

    async def count(self) -> int:
        async with store_errors("count_profiles"), self.sessions() as db:
            result = await db.execute(select(func.count(Profile.id)))
            return result.scalar() or 0
