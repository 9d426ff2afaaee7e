from typing import Optional

from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import insert_for
from ..errors import NotFound
from ..pagination import Page, Pagination
from .common import commit


class HistoryService:
    def __init__(self, db: Session):
        self.db = db

    def record(self, user_id: int, story_id: int, last_chapter_id: Optional[int] = None) -> None:
        """Upsert the (user, story) row, always stamping ``last_read_at`` with now."""
        if self.db.get(models.Story, story_id) is None:
            raise NotFound("story not found")
        if last_chapter_id is not None:
            chapter = self.db.get(models.Chapter, last_chapter_id)
            if chapter is None or chapter.story_id != story_id:
                raise NotFound("chapter not found")

        now = models.utcnow()
        statement = insert_for(self.db, models.ReadingHistory.__table__).values(
            user_id=user_id, story_id=story_id, last_chapter_id=last_chapter_id, last_read_at=now
        )
        statement = statement.on_conflict_do_update(
            index_elements=["user_id", "story_id"],
            set_={"last_chapter_id": last_chapter_id, "last_read_at": now},
        )
        self.db.execute(statement)
        commit(self.db)

    def delete(self, user_id: int, story_id: int) -> None:
        self.db.query(models.ReadingHistory).filter(
            models.ReadingHistory.user_id == user_id,
            models.ReadingHistory.story_id == story_id,
        ).delete(synchronize_session=False)
        commit(self.db)

    def list_for_user(self, user_id: int, pagination: Pagination) -> Page:
        query = (
            self.db.query(models.ReadingHistory, models.Story, models.Chapter)
            .join(models.Story, models.ReadingHistory.story_id == models.Story.id)
            .outerjoin(models.Chapter, models.ReadingHistory.last_chapter_id == models.Chapter.id)
            .filter(models.ReadingHistory.user_id == user_id)
        )
        total = query.count()
        rows = (
            query.order_by(models.ReadingHistory.last_read_at.desc(), models.ReadingHistory.id.desc())
            .offset(pagination.offset)
            .limit(pagination.limit)
            .all()
        )
        items = [
            schemas.HistoryResponse(
                id=entry.id,
                user_id=entry.user_id,
                story_id=entry.story_id,
                last_chapter_id=entry.last_chapter_id,
                last_read_at=entry.last_read_at,
                story_title=story.title,
                story_slug=story.slug,
                cover_image_url=story.cover_image_url,
                chapter_number=chapter.chapter_number if chapter else None,
                chapter_title=chapter.title if chapter else None,
            )
            for entry, story, chapter in rows
        ]
        return Page.build(items, pagination, total)
