import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from story_reader import models
from story_reader.database import insert_for
from story_reader.services.common import best_effort, like_pattern

from .conftest import auth_headers


class TestAdminRoutes:
    def test_list_users(self, client, admin, reader):
        response = client.get("/api/v1/admin/users", headers=auth_headers(admin))
        assert response.status_code == 200
        page = response.json()["data"]
        assert page["total_items"] == 2
        assert {u["username"] for u in page["data"]} == {"admin", "reader"}

    def test_non_admin_forbidden(self, client, reader):
        response = client.get("/api/v1/admin/users", headers=auth_headers(reader))
        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "insufficient permissions"}

    def test_anonymous_unauthorized(self, client):
        assert client.get("/api/v1/admin/users").status_code == 401

    def test_publish_requires_admin(self, client, make_story, author):
        story = make_story(author)
        response = client.put(
            f"/api/v1/admin/stories/{story['id']}/publish",
            params={"publish": True},
            headers=auth_headers(author),
        )
        assert response.status_code == 403

    def test_publish_and_unpublish(self, client, make_story, author, admin):
        story = make_story(author)
        url = f"/api/v1/admin/stories/{story['id']}/publish"
        response = client.put(url, params={"publish": True}, headers=auth_headers(admin))
        assert response.json()["message"] == "Story published"
        assert client.get("/api/v1/stories").json()["data"]["total_items"] == 1

        response = client.put(url, params={"publish": False}, headers=auth_headers(admin))
        assert response.json()["message"] == "Story unpublished"
        assert client.get("/api/v1/stories").json()["data"]["total_items"] == 0

    def test_publish_missing_story_is_404(self, client, admin):
        response = client.put(
            "/api/v1/admin/stories/999/publish", params={"publish": True}, headers=auth_headers(admin)
        )
        assert response.status_code == 404


class TestCategories:
    def test_create_and_list(self, client, admin):
        headers = auth_headers(admin)
        for name in ("Tiên Hiệp", "Kiếm Hiệp"):
            response = client.post("/api/v1/admin/categories", json={"name": name}, headers=headers)
            assert response.status_code == 201

        categories = client.get("/api/v1/categories").json()["data"]
        assert [c["slug"] for c in categories] == ["kiem-hiep", "tien-hiep"]

    def test_duplicate_conflicts(self, client, admin):
        headers = auth_headers(admin)
        client.post("/api/v1/admin/categories", json={"name": "Romance"}, headers=headers)
        response = client.post("/api/v1/admin/categories", json={"name": "romance!"}, headers=headers)
        assert response.status_code == 409
        assert response.json()["error"] == "category already exists"

    def test_empty_slug_is_400(self, client, admin):
        response = client.post("/api/v1/admin/categories", json={"name": "???"}, headers=auth_headers(admin))
        assert response.status_code == 400


class TestHelpers:
    def test_best_effort_swallows_store_errors(self, mocker):
        db = mocker.Mock()
        db.execute.side_effect = OperationalError("UPDATE stories", {}, Exception("database is locked"))

        assert best_effort(db, "story view increment", text("UPDATE stories SET total_views = 1")) is False
        db.rollback.assert_called_once()
        db.commit.assert_not_called()

    def test_best_effort_commits_on_success(self, mocker):
        db = mocker.Mock()
        assert best_effort(db, "noop", text("SELECT 1")) is True
        db.commit.assert_called_once()

    def test_like_pattern_escapes_wildcards(self):
        assert like_pattern("50%_off\\") == "%50\\%\\_off\\\\%"

    def test_upserts_only_on_supported_databases(self, mocker):
        db = mocker.Mock()
        db.get_bind.return_value.dialect.name = "mysql"
        with pytest.raises(ValueError):
            insert_for(db, models.Bookmark.__table__)


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["data"] == {"status": "ok"}

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/v1/nothing-here")
        assert response.status_code == 404
        assert response.json()["success"] is False
