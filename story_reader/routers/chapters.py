from fastapi import APIRouter, Depends, status

from .. import schemas
from ..auth import get_current_user
from ..dependencies import get_chapter_service, get_pagination
from ..pagination import Pagination
from ..responses import success_response
from ..services.chapter_service import ChapterService

router = APIRouter(tags=["Chapters"])


@router.get("/stories/{slug}/chapters")
def list_chapters(
    slug: str,
    pagination: Pagination = Depends(get_pagination),
    service: ChapterService = Depends(get_chapter_service),
):
    return success_response(service.list_published(slug, pagination))


@router.get("/stories/{slug}/chapters/{chapter_number}")
def read_chapter(slug: str, chapter_number: int, service: ChapterService = Depends(get_chapter_service)):
    return success_response(service.read(slug, chapter_number))


@router.post("/stories/{slug}/chapters")
def create_chapter(
    slug: str,
    payload: schemas.ChapterCreate,
    current_user: schemas.TokenData = Depends(get_current_user),
    service: ChapterService = Depends(get_chapter_service),
):
    chapter = service.create(current_user, slug, payload)
    return success_response(
        schemas.ChapterResponse.model_validate(chapter),
        "Chapter created successfully",
        status.HTTP_201_CREATED,
    )


@router.put("/stories/{slug}/chapters/{chapter_number}")
def update_chapter(
    slug: str,
    chapter_number: int,
    payload: schemas.ChapterUpdate,
    current_user: schemas.TokenData = Depends(get_current_user),
    service: ChapterService = Depends(get_chapter_service),
):
    chapter = service.update(current_user, slug, chapter_number, payload)
    return success_response(schemas.ChapterResponse.model_validate(chapter), "Chapter updated successfully")


@router.delete("/stories/{slug}/chapters/{chapter_number}")
def delete_chapter(
    slug: str,
    chapter_number: int,
    current_user: schemas.TokenData = Depends(get_current_user),
    service: ChapterService = Depends(get_chapter_service),
):
    service.delete(current_user, slug, chapter_number)
    return success_response(message="Chapter deleted successfully")
