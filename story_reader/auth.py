import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from .config import Settings, get_settings
from .errors import AuthenticationFailed, PermissionDenied
from .schemas import TokenData

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


# --- PASSWORDS ---
def get_password_hash(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # malformed stored hash or over-long password
        return False


# --- TOKENS ---
def create_access_token(
    identity: TokenData, settings: Settings, expires_delta: Optional[timedelta] = None
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode = {
        "sub": str(identity.user_id),
        "username": identity.username,
        "role": identity.role.value,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: Settings) -> TokenData:
    """Verify signature and expiry and return the identity claims.

    Raises AuthenticationFailed for anything that is not a valid, unexpired
    token carrying a known role.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        return TokenData(
            user_id=int(payload["sub"]),
            username=payload["username"],
            role=payload["role"],
        )
    except (JWTError, KeyError, TypeError, ValueError, ValidationError):
        raise AuthenticationFailed("invalid or expired token")


# --- DEPENDENCIES ---
def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    settings: Settings = Depends(get_settings),
) -> TokenData:
    if not token:
        raise AuthenticationFailed("authorization header required")
    return decode_access_token(token, settings)


def require_admin(current_user: TokenData = Depends(get_current_user)) -> TokenData:
    if not current_user.is_admin:
        logger.warning("admin route denied for user_id=%s", current_user.user_id)
        raise PermissionDenied("insufficient permissions")
    return current_user
