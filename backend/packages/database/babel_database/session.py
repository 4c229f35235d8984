"""
Database session management.

Provides the async engine, the session factory and context managers for
safe session handling in services and worker tasks.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_database(database_url: str | None = None, echo: bool = False) -> AsyncEngine:
    """
    Initialize the database engine and session factory.

    Args:
        database_url: SQLAlchemy async URL. Defaults to the configured one.
        echo: Log SQL statements.

    Returns:
        The created engine.
    """
    global _engine, _session_factory

    if database_url is None:
        from babel_core.config import get_settings

        database_url = get_settings().database_url

    _engine = create_async_engine(database_url, echo=echo, pool_pre_ping=True)
    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return _engine


async def close_database() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory, initializing the database on first use."""
    if _session_factory is None:
        init_database()
    assert _session_factory is not None
    return _session_factory


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session (async context manager).

    Rolls back on error and always closes the session. Callers commit
    explicitly.

    Example:
        async with get_session_context() as session:
            post = await session.get(Post, post_id)
    """
    session = get_session_factory()()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
