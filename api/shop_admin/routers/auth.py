# shop_admin/routers/auth.py
from __future__ import annotations
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shop_admin.database import get_session
from shop_admin.db_models import User
from shop_admin.exceptions import AuthenticationError, ConflictError
from shop_admin.models import LoginIn, RegisterIn, TokenOut, UserOut
from shop_admin.security import (
    admin_only, create_access_token, current_user, get_settings_dep, hash_password, verify_password,
)
from shop_admin.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=TokenOut)
async def login(
    body: LoginIn,
    settings: Settings = Depends(get_settings_dep),
    db: AsyncSession = Depends(get_session),
):
    email = body.email.strip().lower()
    user = (await db.execute(
        select(User).where(func.lower(User.email) == email)
    )).scalar_one_or_none()

    if user is None or not user.is_active or not verify_password(user.password_hash, body.password):
        logger.warning(f"Failed login for {email}")
        raise AuthenticationError("Invalid credentials")

    logger.info(f"User {user.id} logged in")
    return TokenOut(token=create_access_token(user.id, settings), user=UserOut.model_validate(user))


@router.post("/register", response_model=UserOut, status_code=201, dependencies=[Depends(admin_only)])
async def register(body: RegisterIn, db: AsyncSession = Depends(get_session)):
    """Create another back-office user. Admins only."""
    email = body.email.strip().lower()
    existing = (await db.execute(
        select(User.id).where(func.lower(User.email) == email)
    )).scalar_one_or_none()
    if existing is not None:
        raise ConflictError("User already exists")

    user = User(
        email=email,
        password_hash=hash_password(body.password),
        name=body.name,
        role=body.role,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    logger.info(f"User created: {email} ({body.role.value})")
    return UserOut.model_validate(user)


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(current_user)):
    return UserOut.model_validate(user)
