"""
Tally reconciliation.

The per-option counters and running total on a post are a cache of the
ledger. This service rebuilds them from the vote rows, for admin use or a
periodic job.
"""

import structlog

from validtot.core.errors import PostNotFoundError
from validtot.repositories.post_repository import PostRepository
from validtot.schemas.admin import ReconcileReport

logger = structlog.get_logger(__name__)


class TallyReconciler:
    """Recomputes aggregates from ledger rows."""

    def __init__(self, posts: PostRepository):
        self.posts = posts

    async def reconcile(self, post_id: str) -> ReconcileReport:
        outcome = await self.posts.rebuild_tally(post_id)
        if outcome is None:
            raise PostNotFoundError()

        tally_before, total_before, tally_after, total_after = outcome
        report = ReconcileReport(
            post_id=post_id,
            tally_before=tally_before,
            total_before=total_before,
            tally_after=tally_after,
            total_after=total_after,
        )
        if report.drift or tally_before != tally_after:
            logger.warning(
                "tally_drift_corrected",
                post_id=post_id,
                tally_before=tally_before,
                tally_after=tally_after,
                drift=report.drift,
            )
        return report

    async def reconcile_all(self) -> list[ReconcileReport]:
        reports = []
        for post_id in await self.posts.list_ids():
            try:
                reports.append(await self.reconcile(post_id))
            except PostNotFoundError:
                # Deleted while we were iterating
                continue
        logger.info("tallies_reconciled", posts=len(reports))
        return reports
