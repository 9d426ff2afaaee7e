from fastapi import APIRouter, Depends, Query, status

from .. import schemas
from ..auth import get_current_user
from ..dependencies import get_pagination, get_story_service
from ..pagination import Pagination
from ..responses import success_response
from ..services.story_service import StoryService

router = APIRouter(tags=["Stories"])


def _story(story) -> schemas.StoryResponse:
    return schemas.StoryResponse.model_validate(story)


# --- PUBLIC ---
@router.get("/stories")
def list_stories(
    pagination: Pagination = Depends(get_pagination),
    service: StoryService = Depends(get_story_service),
):
    return success_response(service.list_published(pagination))


@router.get("/stories/search")
def search_stories(
    q: str = Query(..., min_length=1, description="Keyword matched against title and description"),
    pagination: Pagination = Depends(get_pagination),
    service: StoryService = Depends(get_story_service),
):
    return success_response(service.search(q, pagination))


@router.get("/stories/{slug}")
def get_story(slug: str, service: StoryService = Depends(get_story_service)):
    return success_response(_story(service.get_by_slug(slug)))


@router.get("/stories/{slug}/stats")
def get_view_stats(slug: str, service: StoryService = Depends(get_story_service)):
    return success_response(service.view_stats(slug))


# --- AUTHENTICATED ---
@router.get("/my-stories")
def my_stories(
    pagination: Pagination = Depends(get_pagination),
    current_user: schemas.TokenData = Depends(get_current_user),
    service: StoryService = Depends(get_story_service),
):
    return success_response(service.list_by_author(current_user.user_id, pagination))


@router.post("/stories")
def create_story(
    payload: schemas.StoryCreate,
    current_user: schemas.TokenData = Depends(get_current_user),
    service: StoryService = Depends(get_story_service),
):
    story = service.create(current_user, payload)
    return success_response(_story(story), "Story created successfully", status.HTTP_201_CREATED)


@router.put("/stories/{slug}")
def update_story(
    slug: str,
    payload: schemas.StoryUpdate,
    current_user: schemas.TokenData = Depends(get_current_user),
    service: StoryService = Depends(get_story_service),
):
    story = service.update(current_user, slug, payload)
    return success_response(_story(story), "Story updated successfully")


@router.delete("/stories/{slug}")
def delete_story(
    slug: str,
    current_user: schemas.TokenData = Depends(get_current_user),
    service: StoryService = Depends(get_story_service),
):
    service.delete(current_user, slug)
    return success_response(message="Story deleted successfully")
