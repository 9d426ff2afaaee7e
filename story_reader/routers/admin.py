from fastapi import APIRouter, Depends, Query, status

from .. import schemas
from ..auth import require_admin
from ..dependencies import (
    get_auth_service, get_category_service, get_pagination, get_story_service,
)
from ..pagination import Pagination
from ..responses import success_response
from ..services.auth_service import AuthService
from ..services.category_service import CategoryService
from ..services.story_service import StoryService

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/users")
def list_users(
    pagination: Pagination = Depends(get_pagination),
    service: AuthService = Depends(get_auth_service),
):
    return success_response(service.list_users(pagination))


@router.post("/categories")
def create_category(
    payload: schemas.CategoryCreate,
    service: CategoryService = Depends(get_category_service),
):
    category = service.create(payload)
    return success_response(
        schemas.CategoryResponse.model_validate(category), "Category created", status.HTTP_201_CREATED
    )


@router.put("/stories/{story_id}/publish")
def publish_story(
    story_id: int,
    publish: bool = Query(..., description="true publishes, false unpublishes"),
    service: StoryService = Depends(get_story_service),
):
    service.set_published(story_id, publish)
    return success_response(message="Story published" if publish else "Story unpublished")
