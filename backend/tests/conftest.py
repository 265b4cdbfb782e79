"""
Murmur Backend — Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Service tests run against a real in-memory SQLite database (aiosqlite);
       API tests drive a fresh app through httpx's ASGITransport with the
       session dependency pointed at that same database.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db_engine:     in-memory SQLite engine with every table created
    ├── db_session:    AsyncSession on that engine (flushes only, never commits)
    ├── mock_db_session: AsyncMock session for early-failure paths
    ├── make_user:     factory inserting a user with a placeholder hash
    ├── follow:        factory inserting a follow edge
    ├── app:           create_app() with get_db_session overridden
    ├── client:        HTTPX AsyncClient for API endpoint testing
    └── auth_headers:  factory building a Bearer header for a user
"""

import os

# Override settings for testing BEFORE any murmur imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-for-murmur-test-suite-0123456789"
os.environ["BCRYPT_ROUNDS"] = "4"  # Minimum work factor; keeps hashing fast
os.environ["LOG_LEVEL"] = "WARNING"

import itertools
from typing import AsyncGenerator, Callable, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from murmur.database import Base, Database, get_db_session
from murmur.main import create_app
from murmur.models.note import Note  # noqa: F401
from murmur.models.post import Comment, Post, PostLike  # noqa: F401
from murmur.models.user import Follow, User
from murmur.security import issue_token


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite shared by every connection of one test.

    StaticPool keeps a single connection alive; without it each checkout
    would open a new, empty in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession for paths that must fail before touching the store.

    Usage:
        mock_db_session.get = AsyncMock(return_value=None)
        await note_service.update(mock_db_session, ...)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_user(db_session) -> Callable:
    """
    Factory inserting a user directly (no bcrypt cost).

    Usage:
        alice = await make_user("alice")
    """
    counter = itertools.count(1)

    async def _make(username: str = None, email: str = None, **fields) -> User:
        n = next(counter)
        username = username or f"user{n}"
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            password_hash="not-a-real-hash",
            **fields,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest.fixture
def follow(db_session) -> Callable:
    """Insert a follow edge directly: `await follow(alice, bob)`."""

    async def _follow(follower: User, followee: User) -> None:
        db_session.add(Follow(follower_id=follower.id, followee_id=followee.id))
        await db_session.flush()

    return _follow


# ══════════════════════════════════════════════════════════════════════════
# API Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def app(db_engine, db_session):
    """
    A fresh application whose requests all share `db_session`.

    ASGITransport does not run the lifespan, so the Database handle the
    health route reads is attached here.
    """
    application = create_app()

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    application.dependency_overrides[get_db_session] = _override_session
    application.state.database = Database(engine=db_engine)
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(user.id)}"}

    return _headers
