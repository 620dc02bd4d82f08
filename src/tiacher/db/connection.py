"""
Database connection and session management.

Uses SQLAlchemy 2.0 async engine (asyncpg in deployment, aiosqlite in tests).
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tiacher.errors import DataAccessError
from tiacher.settings import get_settings

# Global engine and session factory
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """
    Get or create the global async database engine.

    Returns:
        AsyncEngine configured from ``TIACHER_DATABASE_URL``
    """
    global _engine

    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.sql_echo,
            pool_pre_ping=True,  # Verify connections before using
        )

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Get or create the global async session factory.

    Returns:
        Async session factory for creating database sessions
    """
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,  # Allow accessing attributes after commit
        )

    return _session_factory


@asynccontextmanager
async def gateway_session(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Open a session for one persistence-gateway call.

    Any SQLAlchemy failure is rolled back and re-raised as DataAccessError,
    so callers only ever see the TIAcher error taxonomy.

    Usage:
        async with gateway_session(factory) as session:
            rows = await list_conversations(session, user_id)
    """
    async with factory() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            raise DataAccessError(str(e)) from e


async def init_schema(engine: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet."""
    from tiacher.models import Base

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_engine() -> None:
    """
    Close the database engine and release all connections.

    Call this during application shutdown.
    """
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
