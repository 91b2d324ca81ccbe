"""
Post creation.

Posts are always created by a signed-in owner. Private posts get an
access code (supplied or generated) that is stored uppercase and returned
to the owner exactly once.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from validtot.core.errors import AuthenticationRequiredError, PostValidationError
from validtot.core.security import generate_access_code, normalize_access_code
from validtot.repositories.provider import PostRepositoryProtocol
from validtot.schemas.post import PostCreate, PostView
from validtot.services.voting_window import validate_window

logger = structlog.get_logger(__name__)


def default_label(index: int) -> str:
    """Option A, Option B, Option C."""
    return f"Option {chr(65 + index)}"


@dataclass(frozen=True)
class CreatedPost:
    post: PostView
    access_code: Optional[str] = None


class PostService:
    """Creates posts with validated options, visibility and window."""

    def __init__(self, posts: PostRepositoryProtocol):
        self.posts = posts

    @staticmethod
    def build_labels(data: PostCreate) -> list[str]:
        labels = []
        for index in range(len(data.images)):
            label = data.options[index].strip() if index < len(data.options) else ""
            labels.append(label or default_label(index))
        return labels

    @staticmethod
    def resolve_access_code(data: PostCreate) -> Optional[str]:
        if not data.is_private:
            return None
        code = normalize_access_code(data.access_code)
        if not code and data.generate_access_code:
            code = generate_access_code()
        if not code:
            raise PostValidationError("Enter an access code or generate one to make this post private")
        return code

    async def create_post(self, owner_id: Optional[str], data: PostCreate) -> CreatedPost:
        """
        Create a post.

        Raises:
            AuthenticationRequiredError: no owner (anonymous identity)
            PostValidationError: bad visibility or window settings
        """
        if not owner_id:
            raise AuthenticationRequiredError("Sign in to create a post")

        validate_window(data.voting_starts_at, data.voting_ends_at)
        labels = self.build_labels(data)
        access_code = self.resolve_access_code(data)
        title = (data.title or "").strip() or " or ".join(labels)

        post = await self.posts.create(
            owner_id=owner_id,
            title=title,
            options=[(label, str(image)) for label, image in zip(labels, data.images)],
            is_private=data.is_private,
            access_code=access_code,
            voting_starts_at=data.voting_starts_at,
            voting_ends_at=data.voting_ends_at,
        )
        logger.info(
            "post_created",
            post_id=str(post.id),
            options=len(labels),
            is_private=data.is_private,
            timed=data.voting_starts_at is not None,
        )
        return CreatedPost(post=PostView.from_model(post), access_code=access_code)
