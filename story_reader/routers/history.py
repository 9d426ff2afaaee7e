from typing import Optional

from fastapi import APIRouter, Body, Depends

from .. import schemas
from ..auth import get_current_user
from ..dependencies import get_history_service, get_pagination
from ..pagination import Pagination
from ..responses import success_response
from ..services.history_service import HistoryService

router = APIRouter(prefix="/history", tags=["Reading history"])


@router.get("")
def reading_history(
    pagination: Pagination = Depends(get_pagination),
    current_user: schemas.TokenData = Depends(get_current_user),
    service: HistoryService = Depends(get_history_service),
):
    return success_response(service.list_for_user(current_user.user_id, pagination))


@router.post("/{story_id}")
def record_reading(
    story_id: int,
    payload: Optional[schemas.HistoryUpdate] = Body(None),
    current_user: schemas.TokenData = Depends(get_current_user),
    service: HistoryService = Depends(get_history_service),
):
    last_chapter_id = payload.last_chapter_id if payload else None
    service.record(current_user.user_id, story_id, last_chapter_id)
    return success_response(message="Reading history updated")


@router.delete("/{story_id}")
def delete_reading(
    story_id: int,
    current_user: schemas.TokenData = Depends(get_current_user),
    service: HistoryService = Depends(get_history_service),
):
    service.delete(current_user.user_id, story_id)
    return success_response(message="Reading history deleted")
