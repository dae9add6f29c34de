"""
Database configuration and session management.

Provides async database sessions and metadata for ORM models.

DATABASE_URL is read from vellum.core.config (single resolution path).
"""
from typing import AsyncGenerator, Optional
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncConnection, AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)
from sqlalchemy.orm import declarative_base
import logging

from vellum.core.config import DATABASE_URL, DB_ECHO, DB_MAX_OVERFLOW, DB_POOL_SIZE

logger = logging.getLogger(__name__)

# Create declarative base for ORM models
Base = declarative_base()


def to_async_url(url: str) -> str:
    """Rewrite a plain driver URL to its asyncio driver."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


ASYNC_DATABASE_URL = to_async_url(DATABASE_URL)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def create_engine_for_url(url: str) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    Pool sizing and server settings only apply to PostgreSQL; SQLite
    engines get the dialect's default pool.
    """
    url = to_async_url(url)
    if url.startswith("postgresql+asyncpg://"):
        return create_async_engine(
            url,
            echo=DB_ECHO,
            pool_pre_ping=True,
            pool_size=DB_POOL_SIZE,
            max_overflow=DB_MAX_OVERFLOW,
            connect_args={"server_settings": {"client_encoding": "utf8"}},
        )
    return create_async_engine(url, echo=DB_ECHO)


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = create_engine_for_url(ASYNC_DATABASE_URL)
    return _engine


def get_session_factory() -> async_sessionmaker:
    """Return the process-wide session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a database session, committing on success.

    Yields:
        AsyncSession: Database session
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_views(conn: AsyncConnection) -> None:
    """Create (or replace) the derived views on an open connection."""
    from vellum.api.models.document import current_documents_view_sql

    await conn.execute(text(current_documents_view_sql(conn.dialect.name)))


async def init_database(engine: Optional[AsyncEngine] = None) -> None:
    """
    Initialize database - create tables and views if they don't exist.

    Note: In production, use Alembic migrations instead.
    This is mainly for development/testing.
    """
    # Every model that inherits from Base must be imported here,
    # otherwise Base.metadata.create_all() won't know about its table.
    import vellum.api.models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await create_views(conn)

    logger.info("Database initialized")


async def close_database() -> None:
    """Dispose the process-wide engine."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
