"""
tests/conftest.py
Shared fixtures: a throwaway SQLite database per test, fakeredis in place of
Redis, and an httpx client bound to the ASGI app with both overridden.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import fakeredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from config.database import Base, enable_sqlite_foreign_keys, get_db
from config.redis_client import get_redis
from main import app
from shared.models.models import Advocate, Service, ServiceType, User, UserRole
from shared.utils.security import create_access_token, hash_password

TEST_PASSWORD_HASH = hash_password("password123")


def auth_headers(user: User) -> dict:
    token = create_access_token(str(user.id), UserRole(user.role).value, user.email)
    return {"Authorization": f"Bearer {token}"}


# ── Infrastructure ─────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def redis():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest_asyncio.fixture
async def client(session_factory, redis):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Accounts ───────────────────────────────────────────────────────────────────

async def make_user(db: AsyncSession, role: UserRole, name: str, email: str, phone=None) -> User:
    user = User(name=name, email=email, password=TEST_PASSWORD_HASH, role=role, phone=phone)
    db.add(user)
    await db.commit()
    return user


async def make_advocate(db: AsyncSession, user: User, **fields) -> Advocate:
    advocate = Advocate(user_id=user.id, **fields)
    db.add(advocate)
    await db.commit()
    return advocate


@pytest_asyncio.fixture
async def user(db):
    return await make_user(db, UserRole.USER, "Test Client", "client@example.com", "9876500001")


@pytest_asyncio.fixture
async def admin_user(db):
    return await make_user(db, UserRole.ADMIN, "Admin User", "admin@example.com", "9876500002")


@pytest_asyncio.fixture
async def advocate_user(db):
    return await make_user(
        db, UserRole.ADVOCATE, "Advocate Rajesh Kumar", "rajesh@example.com", "9876500003"
    )


@pytest_asyncio.fixture
async def advocate(db, advocate_user):
    return await make_advocate(
        db,
        advocate_user,
        specialization="Criminal Law",
        experience_years=15,
        bar_council_number="BAR/DL/2008/1",
        location="New Delhi",
        bio="Criminal defense specialist.",
        hourly_rate=5000,
    )


@pytest_asyncio.fixture
async def service(db, advocate):
    service = Service(
        advocate_id=advocate.id,
        title="Bail Consultation",
        description="Review of the case file and bail strategy.",
        service_type=ServiceType.OFFLINE,
        category="Criminal",
        price=1500,
        duration_minutes=60,
        location="New Delhi",
    )
    db.add(service)
    await db.commit()
    return service
