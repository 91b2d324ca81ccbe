"""
Tests for admin API endpoints.
"""

import pytest
from httpx import AsyncClient

IMAGES = ["https://img.example.com/cat.png", "https://img.example.com/dog.png"]


@pytest.fixture
async def admin(profile_repo) -> str:
    await profile_repo.ensure("admin-1", username="admin", is_admin=True)
    return "admin-1"


@pytest.fixture
async def post_id(client: AsyncClient, auth_headers) -> str:
    response = await client.post("/api/v1/posts", json={"images": IMAGES}, headers=auth_headers("owner-1"))
    return response.json()["post"]["id"]


async def vote(client: AsyncClient, headers: dict, post_id: str, option_index: int):
    return await client.post("/api/v1/votes", json={"post_id": post_id, "option_index": option_index}, headers=headers)


@pytest.mark.unit
class TestAdminAccess:
    async def test_requires_sign_in(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/admin/stats")
        assert response.status_code == 401

    async def test_requires_admin(self, client: AsyncClient, auth_headers) -> None:
        response = await client.get("/api/v1/admin/stats", headers=auth_headers("u1"))
        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"


@pytest.mark.unit
class TestModerationEndpoints:
    async def test_hide_and_unhide(self, client: AsyncClient, auth_headers, admin, post_id) -> None:
        headers = auth_headers(admin)

        hidden = await client.post(f"/api/v1/admin/posts/{post_id}/hide", headers=headers)
        assert hidden.json() == {"target_id": post_id, "action": "hide_post", "success": True}
        assert (await client.get(f"/api/v1/posts/{post_id}")).status_code == 404
        assert (await vote(client, auth_headers("u1"), post_id, 0)).status_code == 404

        await client.post(f"/api/v1/admin/posts/{post_id}/unhide", headers=headers)
        assert (await client.get(f"/api/v1/posts/{post_id}")).status_code == 200

    async def test_delete(self, client: AsyncClient, auth_headers, admin, post_id) -> None:
        response = await client.delete(f"/api/v1/admin/posts/{post_id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert (await client.get(f"/api/v1/posts/{post_id}")).status_code == 404

        again = await client.delete(f"/api/v1/admin/posts/{post_id}", headers=auth_headers(admin))
        assert again.status_code == 404

    async def test_ban_blocks_voting(self, client: AsyncClient, auth_headers, admin, post_id) -> None:
        await client.post("/api/v1/admin/accounts/u1/ban", headers=auth_headers(admin))
        assert (await vote(client, auth_headers("u1"), post_id, 0)).status_code == 403

        await client.post("/api/v1/admin/accounts/u1/unban", headers=auth_headers(admin))
        assert (await vote(client, auth_headers("u1"), post_id, 0)).status_code == 201


@pytest.mark.unit
class TestTallyAndStatsEndpoints:
    async def test_reconcile(self, client: AsyncClient, auth_headers, admin, post_id) -> None:
        await vote(client, auth_headers("u1"), post_id, 0)

        report = (await client.post(f"/api/v1/admin/posts/{post_id}/reconcile", headers=auth_headers(admin))).json()
        assert report["tally_after"] == [1, 0]
        assert report["total_after"] == 1
        assert report["drift"] == 0

        reports = (await client.post("/api/v1/admin/reconcile", headers=auth_headers(admin))).json()
        assert len(reports) == 1

    async def test_resume_tallies(self, client: AsyncClient, auth_headers, admin) -> None:
        response = await client.post("/api/v1/admin/tallies/resume", headers=auth_headers(admin))
        assert response.json() == {"applied": 0}

    async def test_stats_and_analytics(self, client: AsyncClient, auth_headers, admin, post_id) -> None:
        await vote(client, auth_headers("u1"), post_id, 1)
        await vote(client, auth_headers("u2"), post_id, 1)

        stats = (await client.get("/api/v1/admin/stats", headers=auth_headers(admin))).json()
        assert stats["posts"] == 1
        assert stats["votes"] == 2
        assert stats["top_posts"][0]["id"] == post_id

        analytics = (await client.get(f"/api/v1/admin/posts/{post_id}/analytics", headers=auth_headers(admin))).json()
        assert analytics["total_votes"] == 2
        assert analytics["unique_voters"] == 2
        assert analytics["votes_last_24h"] == 2
        assert analytics["vote_counts"] == [{"option_index": 0, "count": 0}, {"option_index": 1, "count": 2}]

    async def test_analytics_unknown_post(self, client: AsyncClient, auth_headers, admin) -> None:
        response = await client.get(
            "/api/v1/admin/posts/00000000-0000-0000-0000-000000000000/analytics",
            headers=auth_headers(admin),
        )
        assert response.status_code == 404
