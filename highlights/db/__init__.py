"""Database models and session management.

Session management:
    from highlights.db import get_session_factory, get_db
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..config import get_settings
from .base import Base
from .models import Conference, Game, GameStatus, JobRunRecord, Team, Video

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

# Lazy-loaded engine and session factory so importing modules never
# opens a database connection.
_engine: Optional["AsyncEngine"] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine(database_url: str, echo: bool = False) -> "AsyncEngine":
    """Create an async engine; SQLite connections get foreign keys enabled."""
    engine = create_async_engine(database_url, echo=echo, future=True)

    if database_url.startswith("sqlite"):
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def make_session_factory(engine: "AsyncEngine") -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> "AsyncEngine":
    """Get or create the database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(settings.database_url, echo=settings.sql_echo)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(get_engine())
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for read-only database sessions."""
    async with get_session_factory()() as session:
        yield session


@asynccontextmanager
async def session_scope(session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
    """Commit on success, roll back on any exception."""
    factory = session_factory or get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(engine: Optional["AsyncEngine"] = None):
    """Create tables that don't exist yet."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Dispose the engine (application shutdown)."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


__all__ = [
    "Base",
    "Team",
    "Game",
    "GameStatus",
    "Conference",
    "Video",
    "JobRunRecord",
    "create_engine",
    "make_session_factory",
    "get_engine",
    "get_session_factory",
    "get_db",
    "session_scope",
    "init_db",
    "close_db",
]
