"""Async engine, declarative base and session helpers."""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncGenerator, Callable

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from settings_cloud.config import get_settings
from settings_cloud.errors import BackendUnavailable

log = logging.getLogger(__name__)

Base = declarative_base()

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


def create_engine_from_url(url: str, timeout: float = 30.0) -> AsyncEngine:
    """Create an async engine; SQLite gets a busy timeout so writers wait instead of failing."""
    connect_args = {"timeout": timeout} if url.startswith("sqlite") else {}
    return create_async_engine(url, echo=False, connect_args=connect_args)


def make_session_factory(engine: AsyncEngine) -> SessionFactory:
    """Return a get_session-style context manager bound to engine."""
    maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )

    @asynccontextmanager
    async def session_scope() -> AsyncGenerator[AsyncSession, None]:
        async with maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    return session_scope


@asynccontextmanager
async def guarded_session(session_factory: SessionFactory) -> AsyncGenerator[AsyncSession, None]:
    """Session whose SQLAlchemy failures surface as BackendUnavailable."""
    try:
        async with session_factory() as session:
            yield session
    except SQLAlchemyError as e:
        log.error("Database error: %s", e)
        raise BackendUnavailable("Storage backend unavailable") from e


def now_ms() -> int:
    """Current UTC time in milliseconds since epoch."""
    return time.time_ns() // 1_000_000


def dialect_insert(session: AsyncSession):
    """insert() of the session's dialect, which supports ON CONFLICT clauses."""
    if session.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


_settings = get_settings()
_engine = create_engine_from_url(_settings.sqlalchemy_url, _settings.db_timeout_seconds)
get_session = make_session_factory(_engine)


async def create_tables(engine: AsyncEngine) -> None:
    """Create all registered tables on engine if they do not exist."""
    # Import models so they register with Base
    from settings_cloud.backups import models as _backups  # noqa: F401
    from settings_cloud.data import models as _data  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    """Create tables on the application engine."""
    await create_tables(_engine)


async def dispose_engine() -> None:
    """Close pooled connections (shutdown)."""
    await _engine.dispose()
