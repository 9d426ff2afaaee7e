import logging

from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import insert_for
from ..errors import NotFound
from ..pagination import Page, Pagination
from .common import commit

logger = logging.getLogger(__name__)


class BookmarkService:
    def __init__(self, db: Session):
        self.db = db

    def add(self, user_id: int, story_id: int) -> None:
        """Bookmark a story; bookmarking it again is a no-op."""
        if self.db.get(models.Story, story_id) is None:
            raise NotFound("story not found")

        statement = (
            insert_for(self.db, models.Bookmark.__table__)
            .values(user_id=user_id, story_id=story_id, created_at=models.utcnow())
            .on_conflict_do_nothing(index_elements=["user_id", "story_id"])
        )
        self.db.execute(statement)
        commit(self.db)
        logger.info("bookmark added user_id=%s story_id=%s", user_id, story_id)

    def remove(self, user_id: int, story_id: int) -> None:
        self.db.query(models.Bookmark).filter(
            models.Bookmark.user_id == user_id,
            models.Bookmark.story_id == story_id,
        ).delete(synchronize_session=False)
        commit(self.db)
        logger.info("bookmark removed user_id=%s story_id=%s", user_id, story_id)

    def status(self, user_id: int, story_id: int) -> schemas.BookmarkStatusResponse:
        is_bookmarked = (
            self.db.query(models.Bookmark.id)
            .filter(models.Bookmark.user_id == user_id, models.Bookmark.story_id == story_id)
            .first()
            is not None
        )
        total = self.db.query(models.Bookmark).filter(models.Bookmark.story_id == story_id).count()
        return schemas.BookmarkStatusResponse(is_bookmarked=is_bookmarked, total_bookmarks=total)

    def list_for_user(self, user_id: int, pagination: Pagination) -> Page:
        query = (
            self.db.query(models.Bookmark, models.Story)
            .join(models.Story, models.Bookmark.story_id == models.Story.id)
            .filter(models.Bookmark.user_id == user_id)
        )
        total = query.count()
        rows = (
            query.order_by(models.Bookmark.created_at.desc(), models.Bookmark.id.desc())
            .offset(pagination.offset)
            .limit(pagination.limit)
            .all()
        )
        items = [
            schemas.BookmarkResponse(
                id=bookmark.id,
                user_id=bookmark.user_id,
                story_id=bookmark.story_id,
                created_at=bookmark.created_at,
                story_title=story.title,
                story_slug=story.slug,
                cover_image_url=story.cover_image_url,
                author_name=story.author_name,
                total_chapters=story.total_chapters,
                total_views=story.total_views,
            )
            for bookmark, story in rows
        ]
        logger.debug("fetched bookmarks user_id=%s count=%s", user_id, len(items))
        return Page.build(items, pagination, total)
