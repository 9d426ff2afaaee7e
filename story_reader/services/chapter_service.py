"""Chapter lifecycle: numbering, publishing, navigation and story counters.

Chapter numbers come from ``Story.chapter_sequence`` so a number freed by a
delete is never handed out again. ``Story.total_chapters`` is recomputed from
the published rows after every mutation instead of being adjusted in place.
"""
import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import Conflict, NotFound, ValidationFailed
from ..pagination import Page, Pagination
from ..utils import count_words, slugify
from .common import best_effort, commit
from .story_service import ensure_can_modify, get_story_or_404

logger = logging.getLogger(__name__)

DUPLICATE_CHAPTER = "a chapter with this title already exists in this story"
CHAPTER_TAKEN = "another chapter with this number or title was just saved, please retry"


class ChapterService:
    def __init__(self, db: Session):
        self.db = db

    # --- Reads ---
    def read(self, story_slug: str, chapter_number: int) -> schemas.ChapterResponse:
        story = get_story_or_404(self.db, story_slug)
        chapter = self._get_chapter_or_404(story.id, chapter_number)

        # view counters must never fail the read
        best_effort(
            self.db,
            "chapter view increment",
            update(models.Chapter)
            .where(models.Chapter.id == chapter.id)
            .values(views=models.Chapter.views + 1, updated_at=models.Chapter.updated_at)
            .execution_options(synchronize_session=False),
        )
        best_effort(
            self.db,
            "story view increment",
            update(models.Story)
            .where(models.Story.id == story.id)
            .values(total_views=models.Story.total_views + 1, updated_at=models.Story.updated_at)
            .execution_options(synchronize_session=False),
        )
        self.db.refresh(chapter)

        response = schemas.ChapterResponse.model_validate(chapter)
        prev_chapter = self._neighbour(story.id, chapter_number, forward=False)
        next_chapter = self._neighbour(story.id, chapter_number, forward=True)
        if prev_chapter is not None:
            response.prev_chapter = schemas.ChapterNavItem.model_validate(prev_chapter)
        if next_chapter is not None:
            response.next_chapter = schemas.ChapterNavItem.model_validate(next_chapter)
        return response

    def list_published(self, story_slug: str, pagination: Pagination) -> Page:
        story = get_story_or_404(self.db, story_slug)
        query = self.db.query(models.Chapter).filter(
            models.Chapter.story_id == story.id,
            models.Chapter.is_published.is_(True),
        )
        total = query.count()
        chapters = (
            query.order_by(models.Chapter.chapter_number.asc())
            .offset(pagination.offset)
            .limit(pagination.limit)
            .all()
        )
        items = [schemas.ChapterListItem.model_validate(c) for c in chapters]
        return Page.build(items, pagination, total)

    # --- Writes ---
    def create(
        self, identity: schemas.TokenData, story_slug: str, payload: schemas.ChapterCreate
    ) -> models.Chapter:
        story = get_story_or_404(self.db, story_slug)
        ensure_can_modify(identity, story, "add chapters to")

        slug = self._chapter_slug(story.id, payload.title)
        number = self.next_chapter_number(story)

        chapter = models.Chapter(
            story_id=story.id,
            chapter_number=number,
            title=payload.title,
            slug=slug,
            content=payload.content,
            word_count=count_words(payload.content),
            is_published=payload.is_published,
            published_at=models.utcnow() if payload.is_published else None,
        )
        story.chapter_sequence = number
        self.db.add(chapter)
        # number and slug are unique per story, so a concurrent create loses here
        commit(self.db, CHAPTER_TAKEN)
        self.db.refresh(chapter)

        self.refresh_chapter_count(story.id)
        logger.info("chapter created story_id=%s number=%s", story.id, number)
        return chapter

    def update(
        self,
        identity: schemas.TokenData,
        story_slug: str,
        chapter_number: int,
        payload: schemas.ChapterUpdate,
    ) -> models.Chapter:
        story = get_story_or_404(self.db, story_slug)
        ensure_can_modify(identity, story, "edit chapters of")
        chapter = self._get_chapter_or_404(story.id, chapter_number)
        fields = payload.model_fields_set

        if "title" in fields:
            chapter.slug = self._chapter_slug(story.id, payload.title, exclude_id=chapter.id)
            chapter.title = payload.title
        if "content" in fields:
            chapter.content = payload.content
            chapter.word_count = count_words(payload.content)
        if "is_published" in fields:
            chapter.is_published = payload.is_published
            # stamped on the first publish only, never cleared
            if payload.is_published and chapter.published_at is None:
                chapter.published_at = models.utcnow()

        commit(self.db, DUPLICATE_CHAPTER)
        self.db.refresh(chapter)

        self.refresh_chapter_count(story.id)
        return chapter

    def delete(self, identity: schemas.TokenData, story_slug: str, chapter_number: int) -> None:
        story = get_story_or_404(self.db, story_slug)
        ensure_can_modify(identity, story, "delete chapters of")
        chapter = self._get_chapter_or_404(story.id, chapter_number)

        self.db.delete(chapter)
        commit(self.db)

        self.refresh_chapter_count(story.id)
        logger.info("chapter deleted story_id=%s number=%s", story.id, chapter_number)

    # --- Helpers ---
    def next_chapter_number(self, story: models.Story) -> int:
        highest = (
            self.db.query(func.max(models.Chapter.chapter_number))
            .filter(models.Chapter.story_id == story.id)
            .scalar()
        )
        return max(highest or 0, story.chapter_sequence or 0) + 1

    def refresh_chapter_count(self, story_id: int) -> bool:
        published = (
            select(func.count(models.Chapter.id))
            .where(models.Chapter.story_id == story_id, models.Chapter.is_published.is_(True))
            .scalar_subquery()
        )
        return best_effort(
            self.db,
            "chapter count refresh",
            update(models.Story)
            .where(models.Story.id == story_id)
            .values(total_chapters=published, updated_at=models.utcnow())
            .execution_options(synchronize_session=False),
        )

    def _get_chapter_or_404(self, story_id: int, chapter_number: int) -> models.Chapter:
        chapter = (
            self.db.query(models.Chapter)
            .filter(
                models.Chapter.story_id == story_id,
                models.Chapter.chapter_number == chapter_number,
            )
            .first()
        )
        if chapter is None:
            raise NotFound("chapter not found")
        return chapter

    def _chapter_slug(self, story_id: int, title: str, exclude_id: Optional[int] = None) -> str:
        slug = slugify(title)
        if not slug:
            raise ValidationFailed("title must contain at least one letter or digit")
        query = self.db.query(models.Chapter.id).filter(
            models.Chapter.story_id == story_id, models.Chapter.slug == slug
        )
        if exclude_id is not None:
            query = query.filter(models.Chapter.id != exclude_id)
        if query.first():
            raise Conflict(DUPLICATE_CHAPTER)
        return slug

    def _neighbour(self, story_id: int, chapter_number: int, forward: bool) -> Optional[models.Chapter]:
        query = self.db.query(models.Chapter).filter(
            models.Chapter.story_id == story_id,
            models.Chapter.is_published.is_(True),
        )
        if forward:
            query = query.filter(models.Chapter.chapter_number > chapter_number)
            query = query.order_by(models.Chapter.chapter_number.asc())
        else:
            query = query.filter(models.Chapter.chapter_number < chapter_number)
            query = query.order_by(models.Chapter.chapter_number.desc())
        return query.first()
