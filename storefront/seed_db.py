# storefront/seed_db.py
"""
Seed the default categories and, when ADMIN_EMAIL/ADMIN_PASSWORD are set,
an admin account.

    python -m storefront.seed_db
"""
import asyncio
import logging
import os
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from storefront import crud, tokens
from storefront.db import engine, AsyncSessionLocal, Base
from storefront.models import Role, User

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    "Smart Watches",
    "Zero Earbuds",
    "Headphones",
    "11 11 Sale",
    "Vision 2025",
]


async def seed_categories(session: AsyncSession, names: List[str] = DEFAULT_CATEGORIES) -> List[str]:
    """Creates missing categories (case-insensitive match); returns the names created."""
    created = []
    for name in names:
        existing = await crud.get_category_by_name(session, name)
        if existing:
            logger.info("Category already exists: %s", existing.name)
            continue
        category = await crud.create_category(session, name)
        logger.info("Created category: %s (%s)", category.name, category.id)
        created.append(category.name)
    return created


async def ensure_admin(session: AsyncSession, email: str, password: str, name: str = "Admin") -> User:
    """Creates a verified admin, or promotes an existing account."""
    user = await crud.get_user_by_email(session, email)
    if user:
        if user.role != Role.ADMIN or not user.is_verified:
            await crud.update_user(session, user.id, role=Role.ADMIN, is_verified=True)
            logger.info("Promoted %s to admin", email)
        return await crud.get_user_by_id(session, user.id)
    user = await crud.create_user(
        session,
        name=name,
        email=email,
        password_hash=tokens.hash_password(password),
        role=Role.ADMIN,
        is_verified=True,
    )
    logger.info("Created admin %s", email)
    return user


async def seed(admin_email: Optional[str] = None, admin_password: Optional[str] = None):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        await seed_categories(session)
        if admin_email and admin_password:
            await ensure_admin(session, admin_email, admin_password)
        categories = await crud.list_categories(session)

    logger.info("All categories: %s", ", ".join(c.name for c in categories))
    await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    asyncio.run(seed(os.getenv("ADMIN_EMAIL"), os.getenv("ADMIN_PASSWORD")))
