"""
Voter identity schema.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class VoterIdentity(BaseModel):
    """
    Effective identity of a voter.

    A voter always has an anonymous token. Signed-in voters also carry the
    account id; the anonymous token is kept after sign-in so earlier
    anonymous activity on the device can still be matched.
    """

    model_config = ConfigDict(frozen=True)

    anonymous_token: str = Field(..., min_length=1, max_length=64)
    account_id: Optional[str] = Field(None, max_length=64)
    persistent: bool = Field(True, description="False when the token could not be stored on the device")

    @property
    def is_authenticated(self) -> bool:
        return self.account_id is not None

    def signed_in(self, account_id: str) -> "VoterIdentity":
        """Same device identity with an account attached."""
        return self.model_copy(update={"account_id": account_id})
