"""
Post endpoints.

Viewing a post evaluates its voting window and access for the current
voter; results are only projected once the voter has a vote on record.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from validtot.api.deps import (
    get_access_gate,
    get_current_account,
    get_post_service,
    get_vote_ledger,
    get_voter_session,
)
from validtot.schemas.post import (
    AccessCheck,
    PostCreate,
    PostCreated,
    PostDetail,
    UnlockRequest,
    UnlockResponse,
)
from validtot.services.access_gate import AccessGate, is_accessible
from validtot.services.aggregate import project_post
from validtot.services.post_service import PostService
from validtot.services.session import VoterSession
from validtot.services.vote_ledger import VoteLedger
from validtot.services.voting_window import evaluate_window, seconds_remaining, seconds_until_start

router = APIRouter()


@router.post("", response_model=PostCreated, status_code=status.HTTP_201_CREATED)
async def create_post(
    data: PostCreate,
    account_id: Annotated[str, Depends(get_current_account)],
    service: PostService = Depends(get_post_service),
) -> PostCreated:
    """
    Create a post with one to three image options.

    For private posts the access code is returned here and nowhere else.
    """
    created = await service.create_post(account_id, data)
    return PostCreated(post=created.post, access_code=created.access_code)


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(
    post_id: str,
    session: Annotated[VoterSession, Depends(get_voter_session)],
    code: Optional[str] = Query(None, max_length=64, description="Access code for a private post"),
    ledger: VoteLedger = Depends(get_vote_ledger),
    gate: AccessGate = Depends(get_access_gate),
) -> PostDetail:
    post = await ledger.load_post(post_id)
    now = ledger.clock()
    state = evaluate_window(now, post.voting_starts_at, post.voting_ends_at)
    access = await gate.can_view(post, session, code)

    voted_option = None
    results = None
    if is_accessible(access):
        voted_option = await ledger.get_vote(post.id, session)
        if voted_option is not None:
            results = project_post(post)

    return PostDetail(
        post=post,
        window_state=state.value,
        seconds_until_start=seconds_until_start(now, post.voting_starts_at),
        seconds_remaining=seconds_remaining(now, post.voting_ends_at),
        access=access.value,
        voted_option=voted_option,
        results=results,
    )


@router.get("/{post_id}/access", response_model=AccessCheck)
async def check_access(
    post_id: str,
    session: Annotated[VoterSession, Depends(get_voter_session)],
    code: Optional[str] = Query(None, max_length=64),
    ledger: VoteLedger = Depends(get_vote_ledger),
    gate: AccessGate = Depends(get_access_gate),
) -> AccessCheck:
    """Report whether the current voter may view this post's results."""
    post = await ledger.load_post(post_id)
    decision = await gate.can_view(post, session, code)
    return AccessCheck(post_id=post.id, access=decision.value)


@router.post("/{post_id}/unlock", response_model=UnlockResponse)
async def unlock_post(
    post_id: str,
    body: UnlockRequest,
    session: Annotated[VoterSession, Depends(get_voter_session)],
    ledger: VoteLedger = Depends(get_vote_ledger),
    gate: AccessGate = Depends(get_access_gate),
) -> UnlockResponse:
    post = await ledger.load_post(post_id)
    valid = await gate.unlock(post.id, body.code, session)
    return UnlockResponse(post_id=post.id, valid=valid)
