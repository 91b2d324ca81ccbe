"""
Vote endpoints.

Only signed-in, non-banned accounts can vote, only while the post's
window is open, and only once per post. A repeat vote is not an error:
it answers 200 with the choice already on record.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from validtot.api.deps import get_vote_ledger, get_voter_session
from validtot.schemas.vote import VoteCreate, VoteResponse, VoteStatus
from validtot.services.session import VoterSession
from validtot.services.vote_ledger import VoteLedger

router = APIRouter()


@router.post("", response_model=VoteResponse, status_code=status.HTTP_201_CREATED)
async def cast_vote(
    vote_data: VoteCreate,
    response: Response,
    session: Annotated[VoterSession, Depends(get_voter_session)],
    ledger: VoteLedger = Depends(get_vote_ledger),
) -> VoteResponse:
    """
    Cast a vote on a post.

    Returns 201 for a newly recorded vote and 200 when the voter had
    already voted, with option_index set to the recorded choice.
    """
    result = await ledger.cast_vote(
        vote_data.post_id,
        vote_data.option_index,
        session,
        access_code=vote_data.access_code,
    )

    if not result.accepted:
        response.status_code = status.HTTP_200_OK
        message = "You already voted on this post"
    else:
        message = "Vote recorded"

    return VoteResponse(
        post_id=vote_data.post_id,
        accepted=result.accepted,
        option_index=result.option_index,
        message=message,
    )


@router.get("/status/{post_id}", response_model=VoteStatus)
async def get_vote_status(
    post_id: str,
    session: Annotated[VoterSession, Depends(get_voter_session)],
    ledger: VoteLedger = Depends(get_vote_ledger),
) -> VoteStatus:
    """Check whether the current voter has voted on a post, from the ledger."""
    post = await ledger.load_post(post_id)
    option_index = await ledger.get_vote(post.id, session)
    return VoteStatus(post_id=post.id, has_voted=option_index is not None, option_index=option_index)
