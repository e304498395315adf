import os
from typing import AsyncGenerator

from dotenv import load_dotenv

# Optional local overrides, then force an isolated in-memory database.
env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.auth.dependencies import get_current_user, get_optional_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.db.base import Base
from libs.db.session import get_async_db
from services.store_service import models as _store_models  # noqa: F401
from services.store_service.app.main import app
from services.store_service.models import UserRole
from tests.factories import UserFactory

get_settings.cache_clear()
settings = get_settings()


@pytest_asyncio.fixture
async def test_engine():
    """
    Fresh in-memory SQLite schema per test.
    StaticPool keeps every session on the same connection so the data survives.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False
    )
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture
async def customer(db_session):
    """A persisted store user with the USER role."""
    user = UserFactory.create(role=UserRole.USER)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def admin_user(db_session):
    user = UserFactory.create(role=UserRole.ADMIN, name="Store Admin")
    db_session.add(user)
    await db_session.commit()
    return user


def _as_auth_user(user) -> AuthUser:
    return AuthUser(user_id=str(user.id), email=user.email, role=user.role.value)


async def _client_for(db_session, auth_user=None) -> AsyncClient:
    app.dependency_overrides[get_async_db] = lambda: db_session
    if auth_user is not None:
        app.dependency_overrides[get_current_user] = lambda: auth_user
        app.dependency_overrides[get_optional_user] = lambda: auth_user
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """
    Anonymous client with the DB dependency overridden.
    """
    async with await _client_for(db_session) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def customer_client(db_session, customer) -> AsyncGenerator[AsyncClient, None]:
    async with await _client_for(db_session, _as_auth_user(customer)) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_client(db_session, admin_user) -> AsyncGenerator[AsyncClient, None]:
    async with await _client_for(db_session, _as_auth_user(admin_user)) as ac:
        yield ac
    app.dependency_overrides.clear()

