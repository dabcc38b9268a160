"""
Tests for the admin route group (role 2 only):
- users CRUD under /api/v1/admin/users
- feedback moderation under /api/v1/admin/feedbacks
- file uploads under /api/v1/admin/uploads
"""

from pathlib import Path

import pytest
from httpx import AsyncClient

from travel_api.main import app


class TestAdminGate:
    async def test_admin_can_list_users(
        self, async_client: AsyncClient, test_admin: dict, test_user: dict, auth_headers
    ):
        response = await async_client.get("/api/v1/admin/users", headers=auth_headers(test_admin))
        assert response.status_code == 200
        emails = {u["email"] for u in response.json()["items"]}
        assert emails == {test_admin["email"], test_user["email"]}

    async def test_regular_user_is_forbidden(
        self, async_client: AsyncClient, test_user: dict, auth_headers
    ):
        response = await async_client.get("/api/v1/admin/users", headers=auth_headers(test_user))
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    async def test_unknown_role_is_forbidden(self, async_client: AsyncClient, auth_headers):
        response = await async_client.get(
            "/api/v1/admin/users", headers=auth_headers(user_id=1, role=3)
        )
        assert response.status_code == 403

    async def test_missing_token_is_unauthenticated_not_forbidden(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/admin/users")
        assert response.status_code == 401

    async def test_role_is_taken_from_token(
        self, async_client: AsyncClient, test_user: dict, auth_headers
    ):
        """A token claiming role 2 is honoured until it expires."""
        response = await async_client.get(
            "/api/v1/admin/users", headers=auth_headers(user_id=test_user["id"], role=2)
        )
        assert response.status_code == 200


class TestAdminUsers:
    async def test_get_user(self, async_client: AsyncClient, test_admin: dict, test_user: dict, auth_headers):
        response = await async_client.get(
            f"/api/v1/admin/users/{test_user['id']}", headers=auth_headers(test_admin)
        )
        assert response.status_code == 200
        assert response.json()["email"] == test_user["email"]
        assert "password_hash" not in response.json()

    async def test_get_missing_user_returns_404(
        self, async_client: AsyncClient, test_admin: dict, auth_headers
    ):
        response = await async_client.get("/api/v1/admin/users/9999", headers=auth_headers(test_admin))
        assert response.status_code == 404

    async def test_create_user_with_role(self, async_client: AsyncClient, test_admin: dict, auth_headers):
        response = await async_client.post(
            "/api/v1/admin/users",
            headers=auth_headers(test_admin),
            json={"email": "manager@example.com", "password": "manager1", "role_id": 2},
        )
        assert response.status_code == 201
        assert response.json()["role_id"] == 2

    async def test_create_duplicate_user_returns_409(
        self, async_client: AsyncClient, test_admin: dict, test_user: dict, auth_headers
    ):
        response = await async_client.post(
            "/api/v1/admin/users",
            headers=auth_headers(test_admin),
            json={"email": test_user["email"], "password": "another1"},
        )
        assert response.status_code == 409

    async def test_create_user_with_overlong_password_returns_422(
        self, async_client: AsyncClient, test_admin: dict, auth_headers
    ):
        response = await async_client.post(
            "/api/v1/admin/users",
            headers=auth_headers(test_admin),
            json={"email": "long@example.com", "password": "x" * 100},
        )
        assert response.status_code == 422

    async def test_promote_user(self, async_client: AsyncClient, test_admin: dict, test_user: dict, auth_headers):
        response = await async_client.put(
            f"/api/v1/admin/users/{test_user['id']}",
            headers=auth_headers(test_admin),
            json={"role_id": 2},
        )
        assert response.status_code == 200
        assert response.json()["role_id"] == 2

    async def test_delete_user(self, async_client: AsyncClient, test_admin: dict, test_user: dict, auth_headers):
        response = await async_client.delete(
            f"/api/v1/admin/users/{test_user['id']}", headers=auth_headers(test_admin)
        )
        assert response.status_code == 204

        response = await async_client.get(
            f"/api/v1/admin/users/{test_user['id']}", headers=auth_headers(test_admin)
        )
        assert response.status_code == 404


class TestAdminFeedbacks:
    async def _submit(self, client: AsyncClient, name: str) -> None:
        response = await client.post("/api/v1/feedback", json={"user_name": name, "user_phone": "+7900"})
        assert response.status_code == 200

    async def test_list_mark_read_and_delete(
        self, async_client: AsyncClient, make_client, test_admin: dict, auth_headers
    ):
        await self._submit(async_client, "Anna")
        async with make_client("10.9.9.9") as other:
            await self._submit(other, "Boris")

        headers = auth_headers(test_admin)
        listing = (await async_client.get("/api/v1/admin/feedbacks", headers=headers)).json()
        assert listing["total"] == 2
        assert [f["user_name"] for f in listing["items"]] == ["Boris", "Anna"]
        assert all(f["is_read"] is False for f in listing["items"])

        anna_id = listing["items"][1]["id"]
        response = await async_client.post(f"/api/v1/admin/feedbacks/{anna_id}/read", headers=headers)
        assert response.status_code == 200
        assert response.json()["is_read"] is True

        unread = (await async_client.get("/api/v1/admin/feedbacks?is_read=false", headers=headers)).json()
        assert [f["user_name"] for f in unread["items"]] == ["Boris"]
        assert unread["total"] == 1

        response = await async_client.delete(f"/api/v1/admin/feedbacks/{anna_id}", headers=headers)
        assert response.status_code == 204
        listing = (await async_client.get("/api/v1/admin/feedbacks", headers=headers)).json()
        assert listing["total"] == 1

    async def test_feedback_requires_fields(self, async_client: AsyncClient):
        response = await async_client.post("/api/v1/feedback", json={"user_name": " ", "user_phone": "1"})
        assert response.status_code == 422

    async def test_mark_missing_feedback_returns_404(
        self, async_client: AsyncClient, test_admin: dict, auth_headers
    ):
        response = await async_client.post(
            "/api/v1/admin/feedbacks/12345/read", headers=auth_headers(test_admin)
        )
        assert response.status_code == 404


class TestAdminUploads:
    @pytest.fixture(autouse=True)
    def _upload_dir(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(app.state.settings, "upload_dir", str(tmp_path))
        return tmp_path

    async def test_upload_stores_file(
        self, async_client: AsyncClient, test_admin: dict, auth_headers, tmp_path: Path
    ):
        response = await async_client.post(
            "/api/v1/admin/uploads",
            headers=auth_headers(test_admin),
            files={"file": ("photo.JPG", b"jpeg-bytes", "image/jpeg")},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["size"] == len(b"jpeg-bytes")
        assert data["url"].startswith("/uploads/") and data["url"].endswith(".jpg")
        stored = tmp_path / data["url"].rsplit("/", 1)[1]
        assert stored.read_bytes() == b"jpeg-bytes"

    async def test_upload_too_large(
        self, async_client: AsyncClient, test_admin: dict, auth_headers, monkeypatch
    ):
        monkeypatch.setattr(app.state.settings, "max_upload_mb", 0)
        response = await async_client.post(
            "/api/v1/admin/uploads",
            headers=auth_headers(test_admin),
            files={"file": ("big.bin", b"x", "application/octet-stream")},
        )
        assert response.status_code == 413

    async def test_second_upload_is_rate_limited(
        self, async_client: AsyncClient, test_admin: dict, auth_headers
    ):
        files = {"file": ("a.txt", b"a", "text/plain")}
        first = await async_client.post("/api/v1/admin/uploads", headers=auth_headers(test_admin), files=files)
        second = await async_client.post("/api/v1/admin/uploads", headers=auth_headers(test_admin), files=files)
        assert first.status_code == 201
        assert second.status_code == 429

    async def test_rate_limit_applies_before_role_check(
        self, async_client: AsyncClient, test_user: dict, auth_headers
    ):
        files = {"file": ("a.txt", b"a", "text/plain")}
        first = await async_client.post("/api/v1/admin/uploads", headers=auth_headers(test_user), files=files)
        second = await async_client.post("/api/v1/admin/uploads", headers=auth_headers(test_user), files=files)
        assert first.status_code == 403
        assert second.status_code == 429
