# shop_admin/security.py
"""
Bearer-token authentication.

Passwords are hashed with werkzeug.security, tokens are HS256 JWTs carrying
the user id in ``sub``.
"""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from werkzeug.security import check_password_hash, generate_password_hash

from shop_admin.database import Database, get_database
from shop_admin.db_models import User
from shop_admin.exceptions import AuthenticationError, PermissionDeniedError
from shop_admin.settings import Settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def create_access_token(user_id: int, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRES_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> int:
    """Return the user id from a token or raise AuthenticationError."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        return int(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise AuthenticationError("Invalid token")


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


async def current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings_dep),
    db: Database = Depends(get_database),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token provided")

    user_id = decode_access_token(credentials.credentials, settings)

    # short-lived session, the user object is detached afterwards
    async with db.session_factory() as session:
        user = (await session.execute(select(User).where(User.id == user_id))).scalar_one_or_none()

    if user is None or not user.is_active:
        raise AuthenticationError("Invalid token")
    return user


async def admin_only(user: User = Depends(current_user)) -> User:
    if not user.is_admin:
        logger.warning(f"Admin access denied for user {user.id} ({user.role.value})")
        raise PermissionDeniedError("Admin access required")
    return user
