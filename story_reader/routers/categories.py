from fastapi import APIRouter, Depends

from .. import schemas
from ..dependencies import get_category_service, get_pagination, get_story_service
from ..pagination import Pagination
from ..responses import success_response
from ..services.category_service import CategoryService
from ..services.story_service import StoryService

router = APIRouter(tags=["Categories"])


@router.get("/categories")
def list_categories(service: CategoryService = Depends(get_category_service)):
    categories = [schemas.CategoryResponse.model_validate(c) for c in service.list_all()]
    return success_response(categories)


@router.get("/categories/{slug}/stories")
def stories_in_category(
    slug: str,
    pagination: Pagination = Depends(get_pagination),
    service: StoryService = Depends(get_story_service),
):
    return success_response(service.list_by_category(slug, pagination))
