"""
Aggregated result schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field


class OptionResult(BaseModel):
    """Aggregated result for one option."""

    option_index: int
    label: Optional[str] = None
    vote_count: int = 0
    percentage: int = Field(0, ge=0, le=100)


class ResultsView(BaseModel):
    """
    Display projection of a post's tallies.

    Percentages are rounded independently and may not sum to exactly 100.
    """

    options: list[OptionResult]
    total_votes: int = 0
    total_label: str = "0 votes"
