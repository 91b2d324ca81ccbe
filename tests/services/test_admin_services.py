"""
Tests for moderation, tally reconciliation and admin statistics.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from validtot.core.errors import PostNotFoundError
from validtot.models.post import Post, PostOption
from validtot.services.moderation_service import ModerationService
from validtot.services.stats_service import StatsService
from validtot.services.tally_reconciler import TallyReconciler

MISSING_ID = "00000000-0000-0000-0000-000000000000"


@pytest.fixture
def moderation(post_repo, profile_repo) -> ModerationService:
    return ModerationService(post_repo, profile_repo)


@pytest.fixture
def reconciler(post_repo) -> TallyReconciler:
    return TallyReconciler(post_repo)


@pytest.fixture
def stats(post_repo, vote_repo, profile_repo) -> StatsService:
    return StatsService(post_repo, vote_repo, profile_repo)


@pytest.mark.unit
class TestModeration:
    async def test_hide_and_unhide(self, moderation, make_post, post_repo) -> None:
        post = await make_post()

        result = await moderation.set_post_hidden(post.id, True, "admin-1")
        assert result.action == "hide_post"
        assert await post_repo.get_view(post.id) is None
        assert await post_repo.get_view(post.id, include_hidden=True) is not None

        await moderation.set_post_hidden(post.id, False, "admin-1")
        assert await post_repo.get_view(post.id) is not None

    async def test_delete_removes_votes(self, moderation, make_post, ledger, voter, vote_repo, post_repo) -> None:
        post = await make_post()
        await ledger.cast_vote(post.id, 0, voter("u1"))

        await moderation.delete_post(post.id, "admin-1")

        assert await post_repo.get_by_id(post.id) is None
        assert await vote_repo.count() == 0

    async def test_missing_post(self, moderation) -> None:
        with pytest.raises(PostNotFoundError):
            await moderation.set_post_hidden(MISSING_ID, True, "admin-1")
        with pytest.raises(PostNotFoundError):
            await moderation.delete_post(MISSING_ID, "admin-1")

    async def test_ban_and_unban(self, moderation, profile_repo) -> None:
        await moderation.set_account_banned("u1", True, "admin-1")
        assert await profile_repo.is_banned("u1")

        await moderation.set_account_banned("u1", False, "admin-1")
        assert not await profile_repo.is_banned("u1")


@pytest.mark.unit
class TestTallyReconciler:
    async def test_corrects_drift(self, reconciler, make_post, ledger, voter, sessions, post_repo) -> None:
        post = await make_post()
        await ledger.cast_vote(post.id, 0, voter("u1"))
        await ledger.cast_vote(post.id, 1, voter("u2"))

        async with sessions.begin() as db:
            await db.execute(update(Post).where(Post.id == post.id).values(total_votes=7))
            await db.execute(
                update(PostOption)
                .where(PostOption.post_id == post.id, PostOption.position == 0)
                .values(vote_count=5)
            )

        report = await reconciler.reconcile(post.id)

        assert report.tally_before == [5, 1]
        assert report.total_before == 7
        assert report.tally_after == [1, 1]
        assert report.total_after == 2
        assert report.drift == -5
        view = await post_repo.get_view(post.id)
        assert view.tally == (1, 1)

    async def test_absorbs_pending_tallies(self, reconciler, make_post, vote_repo, ledger) -> None:
        post = await make_post()
        await vote_repo.insert(post.id, 1, "u1", "anon_u1")

        report = await reconciler.reconcile(post.id)

        assert report.total_after == 1
        # Already folded in, so nothing is double counted
        assert await ledger.resume_pending() == 0

    async def test_missing_post(self, reconciler) -> None:
        with pytest.raises(PostNotFoundError):
            await reconciler.reconcile(MISSING_ID)

    async def test_reconcile_all(self, reconciler, make_post) -> None:
        await make_post()
        await make_post(("X", "Y", "Z"))
        reports = await reconciler.reconcile_all()
        assert len(reports) == 2
        assert all(r.drift == 0 for r in reports)


@pytest.mark.unit
class TestStats:
    async def test_platform_stats(self, stats, make_post, ledger, voter, post_repo, profile_repo) -> None:
        popular = await make_post(title="Popular")
        quiet = await make_post(title="Quiet")
        hidden = await make_post(title="Hidden")
        for account in ("u1", "u2", "u3"):
            await ledger.cast_vote(popular.id, 0, voter(account))
        await ledger.cast_vote(quiet.id, 1, voter("u1"))
        await post_repo.set_hidden(hidden.id, True)
        await profile_repo.ensure("u1", username="first")

        result = await stats.platform_stats()

        assert result.posts == 3
        assert result.votes == 4
        assert result.profiles == 1
        assert result.hidden_posts == 1
        assert [p.title for p in result.top_posts] == ["Popular", "Quiet"]
        assert result.top_posts[0].total_votes == 3

    async def test_post_analytics(self, stats, make_post, ledger, voter, clock) -> None:
        post = await make_post(("A", "B", "C"))
        await ledger.cast_vote(post.id, 0, voter("u1"))
        await ledger.cast_vote(post.id, 2, voter("u2"))

        analytics = await stats.post_analytics(post.id, now=clock.now + timedelta(days=3650))
        assert [(c.option_index, c.count) for c in analytics.vote_counts] == [(0, 1), (1, 0), (2, 1)]
        assert analytics.total_votes == 2
        assert analytics.unique_voters == 2
        assert analytics.votes_last_24h == 0
        assert analytics.first_vote_at is not None
        assert analytics.first_vote_at <= analytics.last_vote_at

    async def test_recent_activity(self, stats, make_post, ledger, voter) -> None:
        post = await make_post()
        await ledger.cast_vote(post.id, 1, voter("u1"))

        analytics = await stats.post_analytics(post.id)
        assert analytics.votes_last_24h == 1
        assert analytics.votes_last_7d == 1

    async def test_activity_windows(self, stats, make_post, ledger, voter) -> None:
        post = await make_post()
        await ledger.cast_vote(post.id, 0, voter("u1"))
        await ledger.cast_vote(post.id, 0, voter("u2"))

        later = await stats.post_analytics(post.id, now=datetime.now(timezone.utc) + timedelta(days=2))
        assert later.votes_last_24h == 0
        assert later.votes_last_7d == 2
        assert [(c.option_index, c.count) for c in later.vote_counts] == [(0, 2), (1, 0)]

        earlier = await stats.post_analytics(post.id, now=datetime.now(timezone.utc) - timedelta(hours=1))
        assert earlier.votes_last_7d == 0

    async def test_missing_post(self, stats) -> None:
        with pytest.raises(PostNotFoundError):
            await stats.post_analytics(MISSING_ID)
