import logging
from typing import Iterable, List, Optional

from sqlalchemy import delete, insert, or_, update
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import Conflict, NotFound, PermissionDenied, ValidationFailed
from ..pagination import Page, Pagination
from ..utils import slugify
from .common import best_effort, commit, flush, like_pattern

logger = logging.getLogger(__name__)

DUPLICATE_TITLE = "a story with this title already exists"


def ensure_can_modify(identity: schemas.TokenData, story: models.Story, action: str = "modify") -> None:
    """Admins may change any story; everyone else only the stories they wrote.

    Stories without an author (imports) are admin-only.
    """
    if identity.is_admin:
        return
    if story.author_id is not None and story.author_id == identity.user_id:
        return
    logger.warning(
        "permission denied: user_id=%s tried to %s story_id=%s", identity.user_id, action, story.id
    )
    raise PermissionDenied(f"you don't have permission to {action} this story")


def get_story_or_404(db: Session, slug: str) -> models.Story:
    story = db.query(models.Story).filter(models.Story.slug == slug).first()
    if story is None:
        raise NotFound("story not found")
    return story


def story_slug_for(title: str) -> str:
    slug = slugify(title)
    if not slug:
        raise ValidationFailed("title must contain at least one letter or digit")
    return slug


class StoryService:
    def __init__(self, db: Session):
        self.db = db

    # --- Reads ---
    def get_by_slug(self, slug: str) -> models.Story:
        story = get_story_or_404(self.db, slug)
        best_effort(
            self.db,
            "story view increment",
            update(models.Story)
            .where(models.Story.id == story.id)
            .values(total_views=models.Story.total_views + 1, updated_at=models.Story.updated_at)
            .execution_options(synchronize_session=False),
        )
        self.db.refresh(story)
        return story

    def list_published(self, pagination: Pagination) -> Page:
        query = self.db.query(models.Story).filter(models.Story.is_published.is_(True))
        return self._page(query, pagination, models.Story.updated_at.desc())

    def search(self, keyword: str, pagination: Pagination) -> Page:
        keyword = keyword.strip()
        if not keyword:
            raise ValidationFailed("search keyword is required")
        pattern = like_pattern(keyword)
        query = self.db.query(models.Story).filter(
            models.Story.is_published.is_(True),
            or_(
                models.Story.title.ilike(pattern, escape="\\"),
                models.Story.description.ilike(pattern, escape="\\"),
            ),
        )
        return self._page(query, pagination, models.Story.total_views.desc())

    def list_by_category(self, category_slug: str, pagination: Pagination) -> Page:
        category = (
            self.db.query(models.Category).filter(models.Category.slug == category_slug).first()
        )
        if category is None:
            raise NotFound("category not found")
        query = self.db.query(models.Story).filter(
            models.Story.is_published.is_(True),
            models.Story.categories.any(models.Category.id == category.id),
        )
        return self._page(query, pagination, models.Story.updated_at.desc())

    def list_by_author(self, author_id: int, pagination: Pagination) -> Page:
        query = self.db.query(models.Story).filter(models.Story.author_id == author_id)
        return self._page(query, pagination, models.Story.updated_at.desc())

    def view_stats(self, slug: str) -> schemas.ViewStatsResponse:
        story = get_story_or_404(self.db, slug)
        return schemas.ViewStatsResponse(
            story_id=story.id,
            story_title=story.title,
            story_slug=story.slug,
            total_views=story.total_views,
            total_chapters=story.total_chapters,
        )

    # --- Writes ---
    def create(self, identity: schemas.TokenData, payload: schemas.StoryCreate) -> models.Story:
        slug = story_slug_for(payload.title)
        if self._slug_taken(slug):
            logger.warning("story creation failed: duplicate slug %s", slug)
            raise Conflict(DUPLICATE_TITLE)

        category_ids = self._existing_category_ids(payload.category_ids)
        story = models.Story(
            title=payload.title,
            slug=slug,
            description=payload.description,
            cover_image_url=payload.cover_image_url,
            author_id=identity.user_id,
            author_name=payload.author_name,
            status=payload.status,
        )
        self.db.add(story)
        # the unique slug constraint settles concurrent creations
        flush(self.db, DUPLICATE_TITLE)
        self._replace_categories(story, category_ids)
        commit(self.db, DUPLICATE_TITLE)
        self.db.refresh(story)

        logger.info("story created id=%s slug=%s author_id=%s", story.id, story.slug, identity.user_id)
        return story

    def update(self, identity: schemas.TokenData, slug: str, payload: schemas.StoryUpdate) -> models.Story:
        story = get_story_or_404(self.db, slug)
        ensure_can_modify(identity, story, "edit")
        fields = payload.model_fields_set

        if "title" in fields:
            new_slug = story_slug_for(payload.title)
            if self._slug_taken(new_slug, exclude_id=story.id):
                raise Conflict(DUPLICATE_TITLE)
            story.title = payload.title
            story.slug = new_slug
        for field in ("description", "cover_image_url", "author_name", "status"):
            if field in fields:
                setattr(story, field, getattr(payload, field))

        if "category_ids" in fields:
            category_ids = self._existing_category_ids(payload.category_ids)
            self._replace_categories(story, category_ids)
            story.updated_at = models.utcnow()

        commit(self.db, DUPLICATE_TITLE)
        self.db.refresh(story)
        return story

    def delete(self, identity: schemas.TokenData, slug: str) -> None:
        story = get_story_or_404(self.db, slug)
        ensure_can_modify(identity, story, "delete")
        story_id = story.id
        self.db.delete(story)
        commit(self.db)
        logger.info("story deleted id=%s slug=%s by_user=%s", story_id, slug, identity.user_id)

    def set_published(self, story_id: int, is_published: bool) -> models.Story:
        story = self.db.get(models.Story, story_id)
        if story is None:
            raise NotFound("story not found")
        story.is_published = is_published
        commit(self.db)
        self.db.refresh(story)
        logger.info("story id=%s is_published=%s", story_id, is_published)
        return story

    # --- Helpers ---
    def _slug_taken(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(models.Story.id).filter(models.Story.slug == slug)
        if exclude_id is not None:
            query = query.filter(models.Story.id != exclude_id)
        return query.first() is not None

    def _page(self, query, pagination: Pagination, order) -> Page:
        total = query.count()
        stories = (
            query.order_by(order, models.Story.id.desc())
            .offset(pagination.offset)
            .limit(pagination.limit)
            .all()
        )
        items = [schemas.StoryResponse.model_validate(s) for s in stories]
        return Page.build(items, pagination, total)

    def _existing_category_ids(self, category_ids: Optional[Iterable[int]]) -> List[int]:
        wanted = list(dict.fromkeys(category_ids or []))
        if not wanted:
            return []
        found = {
            row.id
            for row in self.db.query(models.Category.id).filter(models.Category.id.in_(wanted))
        }
        if len(found) != len(wanted):
            raise NotFound("category not found")
        return wanted

    def _replace_categories(self, story: models.Story, category_ids: List[int]) -> None:
        """Delete-all then insert-all; runs inside the caller's transaction."""
        self.db.execute(
            delete(models.story_categories).where(models.story_categories.c.story_id == story.id)
        )
        if category_ids:
            self.db.execute(
                insert(models.story_categories),
                [{"story_id": story.id, "category_id": cid} for cid in category_ids],
            )
        self.db.expire(story, ["categories"])
