# shop_admin/create_admin.py
"""
Create (or reset) a back-office admin account.

    python -m shop_admin.create_admin --email admin@example.com --password secret123 --name "Admin"
"""
from __future__ import annotations
import argparse
import asyncio
import logging
from typing import Optional

from sqlalchemy import func, select

from shop_admin.database import Database
from shop_admin.db_models import User, UserRole
from shop_admin.exceptions import ValidationError
from shop_admin.logging_setup import setup_logging
from shop_admin.security import hash_password
from shop_admin.settings import Settings, get_settings

logger = logging.getLogger(__name__)


async def create_admin(db: Database, email: str, password: str, name: Optional[str] = None) -> User:
    """Create an ADMIN user, or reset password/role of an existing one."""
    email = email.strip().lower()
    if not email or "@" not in email:
        raise ValidationError(f"Invalid email: {email!r}")
    if len(password) < 6:
        raise ValidationError("Password must be at least 6 characters")

    async with db.unit_of_work() as session:
        user = (await session.execute(
            select(User).where(func.lower(User.email) == email)
        )).scalar_one_or_none()
        if user is None:
            user = User(email=email, name=name or "Admin")
            session.add(user)
            logger.info(f"Creating admin {email}")
        else:
            logger.info(f"Admin {email} exists, resetting password")
            if name:
                user.name = name
        user.password_hash = hash_password(password)
        user.role = UserRole.ADMIN
        user.is_active = True
        await session.flush()
    return user


async def _run(settings: Settings, email: str, password: str, name: Optional[str]) -> None:
    db = Database.from_settings(settings)
    try:
        await db.create_all()
        user = await create_admin(db, email, password, name)
        print(f"Admin ready: {user.email} (id={user.id})")
    finally:
        await db.dispose()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create or reset a Shop Admin administrator")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default=None)
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings)
    try:
        asyncio.run(_run(settings, args.email, args.password, args.name))
    except ValidationError as e:
        print(f"Error: {e.message}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
