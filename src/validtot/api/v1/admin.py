"""
Admin endpoints for moderation and analytics.

These endpoints require an admin account and are used for:
- Hiding, unhiding and deleting posts
- Banning and unbanning accounts
- Rebuilding post tallies from the vote ledger
- Dashboard statistics
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from validtot.api.deps import (
    get_current_admin,
    get_moderation_service,
    get_stats_service,
    get_tally_reconciler,
    get_vote_ledger,
)
from validtot.schemas.admin import ModerationResult, PlatformStats, PostAnalytics, ReconcileReport
from validtot.services.moderation_service import ModerationService
from validtot.services.stats_service import StatsService
from validtot.services.tally_reconciler import TallyReconciler
from validtot.services.vote_ledger import VoteLedger

router = APIRouter()


class ResumeResult(BaseModel):
    """Result of applying outstanding tally increments."""

    applied: int


# =============================================================================
# Moderation
# =============================================================================


@router.post("/posts/{post_id}/hide", response_model=ModerationResult)
async def hide_post(
    post_id: str,
    admin_id: Annotated[str, Depends(get_current_admin)],
    service: ModerationService = Depends(get_moderation_service),
) -> ModerationResult:
    return await service.set_post_hidden(post_id, True, admin_id)


@router.post("/posts/{post_id}/unhide", response_model=ModerationResult)
async def unhide_post(
    post_id: str,
    admin_id: Annotated[str, Depends(get_current_admin)],
    service: ModerationService = Depends(get_moderation_service),
) -> ModerationResult:
    return await service.set_post_hidden(post_id, False, admin_id)


@router.delete("/posts/{post_id}", response_model=ModerationResult)
async def delete_post(
    post_id: str,
    admin_id: Annotated[str, Depends(get_current_admin)],
    service: ModerationService = Depends(get_moderation_service),
) -> ModerationResult:
    """Delete a post together with its options and votes."""
    return await service.delete_post(post_id, admin_id)


@router.post("/accounts/{account_id}/ban", response_model=ModerationResult)
async def ban_account(
    account_id: str,
    admin_id: Annotated[str, Depends(get_current_admin)],
    service: ModerationService = Depends(get_moderation_service),
) -> ModerationResult:
    return await service.set_account_banned(account_id, True, admin_id)


@router.post("/accounts/{account_id}/unban", response_model=ModerationResult)
async def unban_account(
    account_id: str,
    admin_id: Annotated[str, Depends(get_current_admin)],
    service: ModerationService = Depends(get_moderation_service),
) -> ModerationResult:
    return await service.set_account_banned(account_id, False, admin_id)


# =============================================================================
# Tallies
# =============================================================================


@router.post("/posts/{post_id}/reconcile", response_model=ReconcileReport)
async def reconcile_post(
    post_id: str,
    _admin: Annotated[str, Depends(get_current_admin)],
    reconciler: TallyReconciler = Depends(get_tally_reconciler),
) -> ReconcileReport:
    """Rebuild a post's counters from its ledger rows."""
    return await reconciler.reconcile(post_id)


@router.post("/reconcile", response_model=list[ReconcileReport])
async def reconcile_all(
    _admin: Annotated[str, Depends(get_current_admin)],
    reconciler: TallyReconciler = Depends(get_tally_reconciler),
) -> list[ReconcileReport]:
    return await reconciler.reconcile_all()


@router.post("/tallies/resume", response_model=ResumeResult)
async def resume_pending_tallies(
    _admin: Annotated[str, Depends(get_current_admin)],
    post_id: Optional[str] = Query(None),
    ledger: VoteLedger = Depends(get_vote_ledger),
) -> ResumeResult:
    """Apply tally increments that failed after their vote was recorded."""
    return ResumeResult(applied=await ledger.resume_pending(post_id))


# =============================================================================
# Analytics
# =============================================================================


@router.get("/stats", response_model=PlatformStats)
async def platform_stats(
    _admin: Annotated[str, Depends(get_current_admin)],
    service: StatsService = Depends(get_stats_service),
) -> PlatformStats:
    return await service.platform_stats()


@router.get("/posts/{post_id}/analytics", response_model=PostAnalytics)
async def post_analytics(
    post_id: str,
    _admin: Annotated[str, Depends(get_current_admin)],
    service: StatsService = Depends(get_stats_service),
) -> PostAnalytics:
    """Per-option counts, unique voters and recent activity for one post."""
    return await service.post_analytics(post_id)
