"""
Pytest configuration and fixtures for the TIAcher tests.

Tests run against an in-memory SQLite database (aiosqlite) with foreign
keys enforced, so ON DELETE CASCADE behaves as it does on Postgres.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tiacher.client import ConversationManager, Notifier, SessionManager
from tiacher.models import Base, IdentityCreate
from tiacher.services.auth_service import register_identity
from tiacher.settings import clear_settings_cache

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite://"

TEST_EMAIL = "learner@example.com"
TEST_PASSWORD = "secret123"
TEST_NAME = "Ada Learner"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Pin the settings every test relies on."""
    monkeypatch.setenv("TIACHER_ENV", "local")
    monkeypatch.setenv("TIACHER_ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("TIACHER_XP_PER_CHAT_TURN", "10")
    monkeypatch.setenv("TIACHER_COMPLETION_URL", "http://completion.test")
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def async_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def registered_user(async_session):
    """A confirmed identity with its profile."""
    registration = await register_identity(
        async_session,
        IdentityCreate(email=TEST_EMAIL, password=TEST_PASSWORD, full_name=TEST_NAME),
        require_confirmation=False,
    )
    return registration.identity


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def session_manager(session_factory, notifier) -> SessionManager:
    """A session manager nobody has signed in to yet."""
    return SessionManager(session_factory, notifier, require_confirmed_email=False)


@pytest.fixture
def conversation_manager(session_manager, session_factory) -> ConversationManager:
    return ConversationManager(session_manager, session_factory)


@pytest_asyncio.fixture
async def signed_in(session_manager, conversation_manager, registered_user) -> SessionManager:
    """Session manager with ``registered_user`` signed in and data loaded."""
    result = await session_manager.sign_in(TEST_EMAIL, TEST_PASSWORD)
    assert result.ok
    return session_manager
