from fastapi import Depends, Query
from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .database import get_db
from .pagination import DEFAULT_PAGE_SIZE, Pagination
from .services.auth_service import AuthService
from .services.bookmark_service import BookmarkService
from .services.category_service import CategoryService
from .services.chapter_service import ChapterService
from .services.history_service import HistoryService
from .services.story_service import StoryService


def get_pagination(
    page: int = Query(1, description="Page number, values below 1 are treated as 1"),
    page_size: int = Query(DEFAULT_PAGE_SIZE, description="Items per page, capped at 100"),
) -> Pagination:
    return Pagination(page=page, page_size=page_size).normalize()


def get_auth_service(
    db: Session = Depends(get_db), settings: Settings = Depends(get_settings)
) -> AuthService:
    return AuthService(db, settings)


def get_story_service(db: Session = Depends(get_db)) -> StoryService:
    return StoryService(db)


def get_chapter_service(db: Session = Depends(get_db)) -> ChapterService:
    return ChapterService(db)


def get_category_service(db: Session = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


def get_bookmark_service(db: Session = Depends(get_db)) -> BookmarkService:
    return BookmarkService(db)


def get_history_service(db: Session = Depends(get_db)) -> HistoryService:
    return HistoryService(db)
