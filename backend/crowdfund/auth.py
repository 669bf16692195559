"""
Password hashing, bearer tokens and the FastAPI dependencies that
resolve the calling user.
"""
import datetime
import logging
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from . import user_models
from .config import Settings
from .database import get_db
from .dependencies import get_settings
from .roles import Capability, has_capability

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 12
JWT_ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError as e:
        # malformed hash in the database
        logger.error(f"Password verification failed: {e}")
        return False


def create_access_token(user_id: int, settings: Settings, expires_delta: Optional[datetime.timedelta] = None) -> str:
    now = datetime.datetime.now(tz=datetime.timezone.utc)
    expires = now + (expires_delta or datetime.timedelta(days=settings.jwt_expires_days))
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def _unauthorized(message: str, reason: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"message": message, "reason": reason},
        headers={"WWW-Authenticate": "Bearer"},
    )


def extract_token(request: Request) -> Optional[str]:
    auth = request.headers.get('authorization')
    if auth and auth.lower().startswith('bearer '):
        return auth.split(' ', 1)[1].strip() or None
    # browser clients may keep the token in a cookie
    return request.cookies.get('token')


def decode_user_id(token: str, settings: Settings) -> int:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired. Please login again.", "token_expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"JWT rejected: {e}")
        raise _unauthorized("Invalid token.", "token_invalid")
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise _unauthorized("Invalid token.", "token_invalid")


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> user_models.User:
    token = extract_token(request)
    if not token:
        raise _unauthorized(
            "Not authorized - missing token. Provide Authorization: Bearer <token>",
            "token_missing",
        )
    user_id = decode_user_id(token, settings)
    user = db.get(user_models.User, user_id)
    if not user:
        raise _unauthorized("User linked to token no longer exists.", "user_not_found")
    return user


def require_capability(capability: Capability):
    """Dependency factory: the caller must hold ``capability``."""

    def checker(user: user_models.User = Depends(get_current_user)) -> user_models.User:
        if not has_capability(user, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied: role '{user.role}' not permitted.",
            )
        return user

    return checker
