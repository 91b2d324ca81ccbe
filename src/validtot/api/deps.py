"""
Shared dependencies for API endpoints.

Includes:
- Voter identity resolution (bearer session token + device token header)
- Service wiring over the shared session factory
- Admin authorization
"""

from typing import Annotated, Optional

import structlog
from fastapi import Depends, Header, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from validtot.core.errors import AdminRequiredError, AuthenticationRequiredError
from validtot.core.security import account_id_from_token, generate_anonymous_token
from validtot.db.session import get_session_factory
from validtot.repositories.base import SessionFactory
from validtot.repositories.post_repository import PostRepository
from validtot.repositories.profile_repository import ProfileRepository
from validtot.repositories.vote_repository import VoteRepository
from validtot.schemas.identity import VoterIdentity
from validtot.services.access_gate import AccessGate
from validtot.services.moderation_service import ModerationService
from validtot.services.post_service import PostService
from validtot.services.session import VoterSession
from validtot.services.stats_service import StatsService
from validtot.services.tally_reconciler import TallyReconciler
from validtot.services.vote_ledger import VoteLedger

logger = structlog.get_logger(__name__)

ANON_TOKEN_HEADER = "X-Anonymous-Token"
MAX_ANON_TOKEN_LENGTH = 64

# Security schemes
security_optional = HTTPBearer(auto_error=False)


# =============================================================================
# Repositories and services
# =============================================================================


def get_post_repository(sessions: SessionFactory = Depends(get_session_factory)) -> PostRepository:
    return PostRepository(sessions)


def get_vote_repository(sessions: SessionFactory = Depends(get_session_factory)) -> VoteRepository:
    return VoteRepository(sessions)


def get_profile_repository(sessions: SessionFactory = Depends(get_session_factory)) -> ProfileRepository:
    return ProfileRepository(sessions)


def get_access_gate(
    posts: PostRepository = Depends(get_post_repository),
    votes: VoteRepository = Depends(get_vote_repository),
) -> AccessGate:
    return AccessGate(posts, votes)


def get_vote_ledger(
    posts: PostRepository = Depends(get_post_repository),
    votes: VoteRepository = Depends(get_vote_repository),
    profiles: ProfileRepository = Depends(get_profile_repository),
    gate: AccessGate = Depends(get_access_gate),
) -> VoteLedger:
    return VoteLedger(posts, votes, profiles, gate)


def get_post_service(posts: PostRepository = Depends(get_post_repository)) -> PostService:
    return PostService(posts)


def get_moderation_service(
    posts: PostRepository = Depends(get_post_repository),
    profiles: ProfileRepository = Depends(get_profile_repository),
) -> ModerationService:
    return ModerationService(posts, profiles)


def get_stats_service(
    posts: PostRepository = Depends(get_post_repository),
    votes: VoteRepository = Depends(get_vote_repository),
    profiles: ProfileRepository = Depends(get_profile_repository),
) -> StatsService:
    return StatsService(posts, votes, profiles)


def get_tally_reconciler(posts: PostRepository = Depends(get_post_repository)) -> TallyReconciler:
    return TallyReconciler(posts)


# =============================================================================
# Voter identity
# =============================================================================


async def get_voter_session(
    response: Response,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security_optional)],
    anonymous_token: Annotated[Optional[str], Header(alias=ANON_TOKEN_HEADER)] = None,
) -> VoterSession:
    """
    Resolve the voter for this request.

    The device token comes from the X-Anonymous-Token header. Without one,
    an ephemeral token is issued and echoed back so the client can keep it.
    An invalid or expired session token degrades to an anonymous voter.
    """
    account_id = account_id_from_token(credentials.credentials) if credentials else None
    if credentials and account_id is None:
        logger.info("invalid_session_token")

    token = (anonymous_token or "").strip()
    persistent = bool(token) and len(token) <= MAX_ANON_TOKEN_LENGTH
    if not persistent:
        token = generate_anonymous_token()
        response.headers[ANON_TOKEN_HEADER] = token

    identity = VoterIdentity(anonymous_token=token, account_id=account_id, persistent=persistent)
    return VoterSession(identity)


async def get_current_account(
    session: Annotated[VoterSession, Depends(get_voter_session)],
) -> str:
    """Require a signed-in account."""
    if not session.account_id:
        raise AuthenticationRequiredError("Sign in to continue")
    return session.account_id


async def get_current_admin(
    account_id: Annotated[str, Depends(get_current_account)],
    profiles: ProfileRepository = Depends(get_profile_repository),
) -> str:
    """
    Require an admin account.

    Raises:
        AdminRequiredError: If the account is not an admin (or is banned).
    """
    if not await profiles.is_admin(account_id):
        logger.warning("non_admin_access_attempt", account_id=account_id)
        raise AdminRequiredError()
    return account_id
