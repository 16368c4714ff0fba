import os
import re

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["REDIS_URL"] = ""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from storefront.app import app
from storefront.config import Settings, get_settings
from storefront.db import Base, get_db
from storefront.deps import get_mailer
from storefront.mailer import Mailer
from storefront.ratelimit import get_store
from storefront.seed_db import ensure_admin

PASSWORD = "secret123"


class RecordingMailer(Mailer):
    def __init__(self, settings):
        super().__init__(settings)
        self.sent = []

    async def send(self, to, subject, html):
        self.sent.append({"to": to, "subject": subject, "html": html})

    def last_otp(self, email):
        for mail in reversed(self.sent):
            if mail["to"] == email and mail["subject"] == "Your OTP Code":
                return re.search(r"Your OTP: (\d{6})", mail["html"]).group(1)
        return None

    def last_reset_token(self, email):
        for mail in reversed(self.sent):
            if mail["to"] == email and mail["subject"] == "Reset your password":
                return re.search(r"/reset-password/([^\"\s<]+)", mail["html"]).group(1)
        return None


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite+aiosqlite://",
        upload_dir=str(tmp_path / "uploads"),
        frontend_url="http://shop.test",
        rate_limit_enabled=False,
    )


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mailer(settings):
    return RecordingMailer(settings)


@pytest.fixture
async def client(session_factory, settings, mailer):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_mailer] = lambda: mailer
    await get_store().reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


async def register_verified(client, mailer, email, name="Test User", password=PASSWORD):
    r = await client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert r.status_code == 200, r.text
    r = await client.post("/api/auth/verify-otp", json={"email": email, "otp": mailer.last_otp(email)})
    assert r.status_code == 200, r.text


async def login(client, email, password=PASSWORD):
    r = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()


@pytest.fixture
async def user_token(client, mailer):
    await register_verified(client, mailer, "shopper@example.com")
    return (await login(client, "shopper@example.com"))["token"]


@pytest.fixture
async def admin_token(client, session_factory):
    async with session_factory() as session:
        await ensure_admin(session, "admin@example.com", PASSWORD)
    return (await login(client, "admin@example.com"))["token"]
