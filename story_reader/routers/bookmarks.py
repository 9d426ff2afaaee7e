from fastapi import APIRouter, Depends

from .. import schemas
from ..auth import get_current_user
from ..dependencies import get_bookmark_service, get_pagination
from ..pagination import Pagination
from ..responses import success_response
from ..services.bookmark_service import BookmarkService

router = APIRouter(prefix="/bookmarks", tags=["Bookmarks"])


@router.get("")
def my_bookmarks(
    pagination: Pagination = Depends(get_pagination),
    current_user: schemas.TokenData = Depends(get_current_user),
    service: BookmarkService = Depends(get_bookmark_service),
):
    return success_response(service.list_for_user(current_user.user_id, pagination))


@router.post("")
def add_bookmark(
    payload: schemas.BookmarkRequest,
    current_user: schemas.TokenData = Depends(get_current_user),
    service: BookmarkService = Depends(get_bookmark_service),
):
    service.add(current_user.user_id, payload.story_id)
    return success_response(message="Story bookmarked successfully")


@router.get("/{story_id}")
def bookmark_status(
    story_id: int,
    current_user: schemas.TokenData = Depends(get_current_user),
    service: BookmarkService = Depends(get_bookmark_service),
):
    return success_response(service.status(current_user.user_id, story_id))


@router.delete("/{story_id}")
def remove_bookmark(
    story_id: int,
    current_user: schemas.TokenData = Depends(get_current_user),
    service: BookmarkService = Depends(get_bookmark_service),
):
    service.remove(current_user.user_id, story_id)
    return success_response(message="Bookmark removed successfully")
