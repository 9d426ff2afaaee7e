import logging
from typing import Tuple

from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import create_access_token, get_password_hash, verify_password
from ..config import Settings
from ..errors import AuthenticationFailed, Conflict, NotFound
from ..pagination import Page, Pagination
from .common import commit

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "invalid email or password"


class AuthService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def register(self, payload: schemas.UserCreate) -> schemas.AuthResponse:
        if self.db.query(models.User).filter(models.User.email == payload.email).first():
            raise Conflict("email already registered")
        if self.db.query(models.User).filter(models.User.username == payload.username).first():
            raise Conflict("username already taken")

        user = models.User(
            username=payload.username,
            email=payload.email,
            password_hash=get_password_hash(payload.password, rounds=self.settings.bcrypt_rounds),
            full_name=payload.full_name or None,
            # role escalation is never exposed through registration
            role=models.Role.USER,
            is_active=True,
        )
        self.db.add(user)
        commit(self.db, "email or username already registered")
        self.db.refresh(user)

        logger.info("user registered id=%s username=%s", user.id, user.username)
        return self._auth_response(user)

    def login(self, payload: schemas.LoginRequest) -> schemas.AuthResponse:
        user = self.db.query(models.User).filter(models.User.email == payload.email).first()
        # one message for every failure so callers cannot probe for accounts
        if user is None or not user.is_active:
            raise AuthenticationFailed(INVALID_CREDENTIALS)
        if not verify_password(payload.password, user.password_hash):
            raise AuthenticationFailed(INVALID_CREDENTIALS)
        return self._auth_response(user)

    def get_profile(self, user_id: int) -> models.User:
        user = self.db.get(models.User, user_id)
        if user is None:
            raise NotFound("user not found")
        return user

    def update_profile(self, user_id: int, payload: schemas.ProfileUpdate) -> models.User:
        user = self.get_profile(user_id)
        for field in ("full_name", "avatar_url"):
            if field in payload.model_fields_set:
                setattr(user, field, getattr(payload, field))
        commit(self.db)
        self.db.refresh(user)
        return user

    def list_users(self, pagination: Pagination) -> Page:
        query = self.db.query(models.User)
        total = query.count()
        users = (
            query.order_by(models.User.created_at.desc(), models.User.id.desc())
            .offset(pagination.offset)
            .limit(pagination.limit)
            .all()
        )
        items = [schemas.UserResponse.model_validate(u) for u in users]
        return Page.build(items, pagination, total)

    def _auth_response(self, user: models.User) -> schemas.AuthResponse:
        identity = schemas.TokenData(user_id=user.id, username=user.username, role=user.role)
        return schemas.AuthResponse(
            token=create_access_token(identity, self.settings),
            user=schemas.UserResponse.model_validate(user),
        )
