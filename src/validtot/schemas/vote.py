"""
Vote-related Pydantic schemas.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class VoteCreate(BaseModel):
    """Schema for casting a vote."""

    post_id: str
    option_index: int = Field(..., ge=0)
    access_code: Optional[str] = Field(None, max_length=64, description="Unlocks a private post in the same request")


class CastResult(BaseModel):
    """
    Outcome of a vote attempt that passed every policy gate.

    accepted=False means the voter had already voted (or lost a concurrent
    race); option_index is then the choice already on record.
    """

    model_config = ConfigDict(frozen=True)

    accepted: bool
    option_index: int


class VoteResponse(BaseModel):
    """Response after a vote attempt."""

    post_id: str
    accepted: bool
    option_index: int
    message: str


class VoteStatus(BaseModel):
    """Ledger-verified vote status for the current voter."""

    post_id: str
    has_voted: bool
    option_index: Optional[int] = None

