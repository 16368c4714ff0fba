# storefront/db.py
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase
from collections.abc import AsyncGenerator

from .config import get_settings


def normalize_database_url(url: str, drop_keys=("sslmode", "channel_binding")) -> str:
    u = make_url(url)
    if u.get_backend_name() not in ("postgresql", "postgres"):
        return url
    # Ensure async driver; asyncpg rejects libpq-only query params
    u = u.set(drivername="postgresql+asyncpg").difference_update_query(drop_keys)
    return u.render_as_string(hide_password=False)


def build_engine(url: str) -> AsyncEngine:
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_recycle=1800,
        pool_size=5,
        max_overflow=10,
    )


engine = build_engine(get_settings().database_url)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
    class_=AsyncSession,
)


class Base(DeclarativeBase):
    pass


# FastAPI dependency
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
