import pytest
from sqlalchemy import Update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from story_reader import models, schemas
from story_reader.errors import Conflict
from story_reader.services.chapter_service import CHAPTER_TAKEN, ChapterService

from .conftest import auth_headers

STORY = "di-tim-thoi-gian"


def _chapters_url(number=None):
    url = f"/api/v1/stories/{STORY}/chapters"
    return url if number is None else f"{url}/{number}"


class TestNumbering:
    def test_numbers_start_at_one_and_increase(self, make_story, make_chapter, author):
        make_story(author)
        first = make_chapter(author, STORY, "Mở đầu")
        second = make_chapter(author, STORY, "Chương hai")
        assert first["chapter_number"] == 1
        assert second["chapter_number"] == 2
        assert first["slug"] == "mo-dau"

    def test_numbers_are_not_reused_after_delete(self, client, make_story, make_chapter, author):
        make_story(author)
        make_chapter(author, STORY, "One")
        make_chapter(author, STORY, "Two")
        response = client.delete(_chapters_url(2), headers=auth_headers(author))
        assert response.status_code == 200

        third = make_chapter(author, STORY, "Three")
        assert third["chapter_number"] == 3

    def test_duplicate_title_in_same_story_conflicts(self, client, make_story, make_chapter, author):
        make_story(author)
        make_chapter(author, STORY, "Prologue")
        response = client.post(
            _chapters_url(),
            json={"title": "prologue", "content": "again"},
            headers=auth_headers(author),
        )
        assert response.status_code == 409

    def test_same_title_allowed_in_another_story(self, make_story, make_chapter, author):
        make_story(author)
        make_story(author, title="Another")
        make_chapter(author, STORY, "Prologue")
        assert make_chapter(author, "another", "Prologue")["chapter_number"] == 1

    def test_word_count(self, make_story, make_chapter, author):
        make_story(author)
        chapter = make_chapter(author, STORY, "Words", content="  hello   world \n again ")
        assert chapter["word_count"] == 3


class TestPermissions:
    def test_only_author_or_admin_can_add(self, client, make_story, make_chapter, author, reader, admin):
        make_story(author)
        denied = client.post(
            _chapters_url(), json={"title": "Intrusion", "content": "x"}, headers=auth_headers(reader)
        )
        assert denied.status_code == 403
        assert make_chapter(admin, STORY, "Editorial")["chapter_number"] == 1

    def test_non_author_cannot_edit_or_delete(self, client, make_story, make_chapter, author, reader, admin):
        make_story(author)
        make_chapter(author, STORY, "One")

        assert client.put(_chapters_url(1), json={"title": "Hijack"}, headers=auth_headers(reader)).status_code == 403
        assert client.delete(_chapters_url(1), headers=auth_headers(reader)).status_code == 403

        renamed = client.put(_chapters_url(1), json={"title": "Edited"}, headers=auth_headers(admin))
        assert renamed.status_code == 200
        assert client.delete(_chapters_url(1), headers=auth_headers(admin)).status_code == 200

    def test_missing_story_is_404(self, client, author):
        response = client.post(
            "/api/v1/stories/nowhere/chapters",
            json={"title": "Lost", "content": "x"},
            headers=auth_headers(author),
        )
        assert response.status_code == 404

    def test_unauthenticated_is_401(self, client, make_story, author):
        make_story(author)
        response = client.post(_chapters_url(), json={"title": "Anon", "content": "x"})
        assert response.status_code == 401


class TestPublishing:
    def test_published_at_stamped_once(self, client, make_story, make_chapter, author):
        make_story(author)
        chapter = make_chapter(author, STORY, "Draft", is_published=False)
        assert chapter["published_at"] is None
        headers = auth_headers(author)

        published = client.put(_chapters_url(1), json={"is_published": True}, headers=headers).json()["data"]
        stamp = published["published_at"]
        assert stamp is not None

        unpublished = client.put(_chapters_url(1), json={"is_published": False}, headers=headers).json()["data"]
        assert unpublished["is_published"] is False
        assert unpublished["published_at"] == stamp

        again = client.put(_chapters_url(1), json={"is_published": True}, headers=headers).json()["data"]
        assert again["published_at"] == stamp

    def test_created_published_is_stamped(self, make_story, make_chapter, author):
        make_story(author)
        assert make_chapter(author, STORY, "Live")["published_at"] is not None

    def test_total_chapters_counts_published_only(self, client, make_story, make_chapter, author):
        make_story(author)
        make_chapter(author, STORY, "One")
        make_chapter(author, STORY, "Two", is_published=False)
        make_chapter(author, STORY, "Three")
        headers = auth_headers(author)

        def total():
            return client.get(f"/api/v1/stories/{STORY}/stats").json()["data"]["total_chapters"]

        assert total() == 2
        client.put(_chapters_url(2), json={"is_published": True}, headers=headers)
        assert total() == 3
        client.put(_chapters_url(1), json={"is_published": False}, headers=headers)
        assert total() == 2
        client.delete(_chapters_url(3), headers=headers)
        assert total() == 1

    def test_listing_shows_published_in_order(self, client, make_story, make_chapter, author):
        make_story(author)
        make_chapter(author, STORY, "One")
        make_chapter(author, STORY, "Two", is_published=False)
        make_chapter(author, STORY, "Three")
        page = client.get(_chapters_url()).json()["data"]
        assert [c["chapter_number"] for c in page["data"]] == [1, 3]
        assert page["total_items"] == 2
        assert "content" not in page["data"][0]


class TestUpdate:
    def test_content_and_title_changes(self, client, make_story, make_chapter, author):
        make_story(author)
        make_chapter(author, STORY, "Old Title")
        response = client.put(
            _chapters_url(1),
            json={"title": "New Title", "content": "four words right here"},
            headers=auth_headers(author),
        )
        data = response.json()["data"]
        assert data["slug"] == "new-title"
        assert data["word_count"] == 4
        assert data["chapter_number"] == 1

    def test_missing_chapter_is_404(self, client, make_story, author):
        make_story(author)
        response = client.put(_chapters_url(5), json={"title": "Ghost"}, headers=auth_headers(author))
        assert response.status_code == 404
        assert response.json()["error"] == "chapter not found"


class TestReading:
    def test_navigation_skips_unpublished(self, client, make_story, make_chapter, author):
        make_story(author)
        make_chapter(author, STORY, "One")
        make_chapter(author, STORY, "Two", is_published=False)
        make_chapter(author, STORY, "Three")

        first = client.get(_chapters_url(1)).json()["data"]
        assert first["prev_chapter"] is None
        assert first["next_chapter"]["chapter_number"] == 3

        last = client.get(_chapters_url(3)).json()["data"]
        assert last["prev_chapter"] == {"chapter_number": 1, "title": "One", "slug": "one"}
        assert last["next_chapter"] is None

    def test_read_increments_chapter_and_story_views(self, client, make_story, make_chapter, author, db):
        make_story(author)
        make_chapter(author, STORY, "One")

        assert client.get(_chapters_url(1)).json()["data"]["views"] == 1
        assert client.get(_chapters_url(1)).json()["data"]["views"] == 2

        db.expire_all()
        story = db.query(models.Story).filter(models.Story.slug == STORY).one()
        assert story.total_views == 2

    def test_read_survives_failed_view_update(self, client, make_story, make_chapter, author, mocker):
        make_story(author)
        make_chapter(author, STORY, "One")
        execute = Session.execute

        def execute_failing_updates(session, statement, *args, **kwargs):
            if isinstance(statement, Update):
                raise OperationalError("UPDATE", {}, Exception("database is locked"))
            return execute(session, statement, *args, **kwargs)

        mocker.patch.object(Session, "execute", execute_failing_updates)
        response = client.get(_chapters_url(1))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "One"
        assert data["views"] == 0

        mocker.stopall()
        assert client.get(f"/api/v1/stories/{STORY}/stats").json()["data"]["total_views"] == 0

    def test_missing_chapter_is_404(self, client, make_story, author):
        make_story(author)
        assert client.get(_chapters_url(42)).status_code == 404
        assert client.get("/api/v1/stories/nowhere/chapters/1").status_code == 404


class TestConcurrentCreation:
    def _identity(self, user):
        return schemas.TokenData(user_id=user.id, username=user.username, role=user.role)

    def test_number_collision_at_the_store_is_a_conflict(self, make_story, make_chapter, author, db, mocker):
        make_story(author)
        make_chapter(author, STORY, "One")
        service = ChapterService(db)
        # both writers computed the same next number before either committed
        mocker.patch.object(service, "next_chapter_number", return_value=1)

        with pytest.raises(Conflict) as exc_info:
            service.create(self._identity(author), STORY, schemas.ChapterCreate(title="Also One", content="x"))

        assert exc_info.value.message == CHAPTER_TAKEN
        db.expire_all()
        assert db.query(models.Chapter).count() == 1

    def test_slug_collision_at_the_store_is_a_conflict(self, make_story, make_chapter, author, db, mocker):
        make_story(author)
        make_chapter(author, STORY, "One")
        service = ChapterService(db)
        mocker.patch.object(service, "_chapter_slug", return_value="one")

        with pytest.raises(Conflict) as exc_info:
            service.create(self._identity(author), STORY, schemas.ChapterCreate(title="One!", content="x"))

        assert exc_info.value.message == CHAPTER_TAKEN
        db.expire_all()
        story = db.query(models.Story).filter(models.Story.slug == STORY).one()
        assert story.chapter_sequence == 1
        assert db.query(models.Chapter).count() == 1
