"""Pydantic schemas module."""

from validtot.schemas.identity import VoterIdentity
from validtot.schemas.post import PostCreate, PostDetail, PostOptionView, PostView
from validtot.schemas.results import OptionResult, ResultsView
from validtot.schemas.vote import CastResult, VoteCreate, VoteResponse, VoteStatus

__all__ = [
    "VoterIdentity",
    "PostCreate",
    "PostDetail",
    "PostOptionView",
    "PostView",
    "OptionResult",
    "ResultsView",
    "CastResult",
    "VoteCreate",
    "VoteResponse",
    "VoteStatus",
]
