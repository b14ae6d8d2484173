"""
Test fixtures - in-memory SQLite database + authenticated HTTP clients for two owners
"""
import os

# Settings are read at import time and fail fast without an auth secret
os.environ.setdefault("AUTH_MODE", "jwt")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret-for-the-suite-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from contextlib import asynccontextmanager

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from chicken_manager.database import Base, create_tables, get_db
from chicken_manager.main import app
from chicken_manager.api.auth import get_auth_client
from chicken_manager.services.auth_client import JWTAuthClient, create_access_token

TEST_SECRET = os.environ["AUTH_JWT_SECRET"]
USER_A = "11111111-1111-4111-8111-111111111111"
USER_B = "22222222-2222-4222-9222-222222222222"


def token_for(user_id: str, email: str = None) -> str:
    return create_access_token(user_id, email, TEST_SECRET)


@pytest_asyncio.fixture()
async def db_session():
    """Create a fresh in-memory SQLite database for each test"""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    await create_tables(bind=engine)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@asynccontextmanager
async def _client(db_session, token=None):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_client] = lambda: JWTAuthClient(TEST_SECRET)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        if token:
            ac.headers["Authorization"] = f"Bearer {token}"
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(db_session):
    """Authenticated as user A"""
    async with _client(db_session, token_for(USER_A, "a@example.com")) as ac:
        yield ac


@pytest_asyncio.fixture()
async def other_client(db_session):
    """Authenticated as user B, sharing user A's database"""
    async with _client(db_session, token_for(USER_B, "b@example.com")) as ac:
        yield ac


@pytest_asyncio.fixture()
async def unauth_client(db_session):
    """Unauthenticated httpx AsyncClient"""
    async with _client(db_session) as ac:
        yield ac
