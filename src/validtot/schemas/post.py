"""
Post-related Pydantic schemas.

PostView is the validated value the vote core works with. It is built once
from the stored row and never re-inferred at call sites.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, model_validator

from validtot.schemas.results import ResultsView

if TYPE_CHECKING:
    from validtot.models.post import Post

MAX_OPTIONS = 3
MAX_LABEL_LENGTH = 140


class PostOptionView(BaseModel):
    """A single image option of a post."""

    model_config = ConfigDict(frozen=True)

    position: int = Field(..., ge=0, lt=MAX_OPTIONS)
    label: str
    image_url: str


class PostView(BaseModel):
    """
    Validated post value.

    Never carries the access code; access checks go through the store.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    owner_id: str
    options: tuple[PostOptionView, ...] = Field(..., min_length=1, max_length=MAX_OPTIONS)
    tally: tuple[int, ...]
    total_votes: int = Field(0, ge=0)
    is_private: bool = False
    voting_starts_at: Optional[datetime] = None
    voting_ends_at: Optional[datetime] = None
    is_hidden: bool = False
    created_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def pad_tally(cls, data: dict) -> dict:
        """Tally always has at least one counter per option."""
        if isinstance(data, dict):
            options = data.get("options") or ()
            tally = list(data.get("tally") or ())
            if len(tally) < len(options):
                tally.extend([0] * (len(options) - len(tally)))
            data["tally"] = tuple(tally)
        return data

    @property
    def option_count(self) -> int:
        return len(self.options)

    @property
    def labels(self) -> list[str]:
        return [option.label for option in self.options]

    @classmethod
    def from_model(cls, post: "Post") -> "PostView":
        options = [
            PostOptionView(position=option.position, label=option.label, image_url=option.image_url)
            for option in post.options
        ]
        return cls(
            id=str(post.id),
            title=post.title,
            owner_id=post.owner_id,
            options=tuple(options),
            tally=tuple(post.tally),
            total_votes=post.total_votes or 0,
            is_private=post.is_private,
            voting_starts_at=post.voting_starts_at,
            voting_ends_at=post.voting_ends_at,
            is_hidden=post.is_hidden,
            created_at=post.created_at,
        )


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    title: Optional[str] = Field(None, max_length=200)
    images: list[HttpUrl] = Field(..., min_length=1, max_length=MAX_OPTIONS)
    options: list[str] = Field(default_factory=list, max_length=MAX_OPTIONS)
    is_private: bool = False
    access_code: Optional[str] = Field(None, max_length=64)
    generate_access_code: bool = Field(False, description="Generate a random access code for a private post")
    voting_starts_at: Optional[datetime] = None
    voting_ends_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_options_match_images(self) -> "PostCreate":
        if len(self.options) > len(self.images):
            raise ValueError("More option labels than images")
        for label in self.options:
            if len(label.strip()) > MAX_LABEL_LENGTH:
                raise ValueError(f"Option labels are limited to {MAX_LABEL_LENGTH} characters")
        return self


class PostCreated(BaseModel):
    """
    Response after creating a post.

    The access code is returned once so the owner can share it.
    """

    post: PostView
    access_code: Optional[str] = None


class PostDetail(BaseModel):
    """Post as shown to a particular viewer."""

    post: PostView
    window_state: str
    seconds_until_start: Optional[int] = None
    seconds_remaining: Optional[int] = None
    access: str
    voted_option: Optional[int] = Field(None, description="Ledger-verified choice of the viewer")
    results: Optional[ResultsView] = Field(None, description="Present once the viewer has voted")


class AccessCheck(BaseModel):
    post_id: str
    access: str


class UnlockRequest(BaseModel):
    code: str = Field(..., max_length=64)


class UnlockResponse(BaseModel):
    post_id: str
    valid: bool
