"""
Moderation actions that change what the vote core sees.

- Hidden posts disappear for viewers and reject votes
- Deleting a post removes its ledger rows with it
- Banned accounts cannot vote
"""

import structlog

from validtot.core.errors import PostNotFoundError
from validtot.repositories.post_repository import PostRepository
from validtot.repositories.profile_repository import ProfileRepository
from validtot.schemas.admin import ModerationResult

logger = structlog.get_logger(__name__)


class ModerationService:
    def __init__(self, posts: PostRepository, profiles: ProfileRepository):
        self.posts = posts
        self.profiles = profiles

    async def set_post_hidden(self, post_id: str, hidden: bool, admin_id: str) -> ModerationResult:
        if not await self.posts.set_hidden(post_id, hidden):
            raise PostNotFoundError()
        action = "hide_post" if hidden else "unhide_post"
        logger.info("moderation_action", action=action, post_id=post_id, admin_id=admin_id)
        return ModerationResult(target_id=post_id, action=action, success=True)

    async def delete_post(self, post_id: str, admin_id: str) -> ModerationResult:
        if not await self.posts.delete(post_id):
            raise PostNotFoundError()
        logger.info("moderation_action", action="delete_post", post_id=post_id, admin_id=admin_id)
        return ModerationResult(target_id=post_id, action="delete_post", success=True)

    async def set_account_banned(self, account_id: str, banned: bool, admin_id: str) -> ModerationResult:
        await self.profiles.set_banned(account_id, banned)
        action = "ban_account" if banned else "unban_account"
        logger.info("moderation_action", action=action, account_id=account_id, admin_id=admin_id)
        return ModerationResult(target_id=account_id, action=action, success=True)
