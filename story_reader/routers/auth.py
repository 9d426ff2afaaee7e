from fastapi import APIRouter, Depends, status

from .. import schemas
from ..auth import get_current_user
from ..dependencies import get_auth_service
from ..responses import success_response
from ..services.auth_service import AuthService

router = APIRouter(tags=["Authentication"])


@router.post("/auth/register")
def register(payload: schemas.UserCreate, service: AuthService = Depends(get_auth_service)):
    result = service.register(payload)
    return success_response(result, "Registration successful", status.HTTP_201_CREATED)


@router.post("/auth/login")
def login(payload: schemas.LoginRequest, service: AuthService = Depends(get_auth_service)):
    return success_response(service.login(payload), "Login successful")


@router.get("/me")
def get_profile(
    current_user: schemas.TokenData = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    user = service.get_profile(current_user.user_id)
    return success_response(schemas.UserResponse.model_validate(user))


@router.put("/me")
def update_profile(
    payload: schemas.ProfileUpdate,
    current_user: schemas.TokenData = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    user = service.update_profile(current_user.user_id, payload)
    return success_response(schemas.UserResponse.model_validate(user), "Profile updated")
