"""Async engine and request-scoped sessions for Taskroom.

One session per request: repositories add, flush and execute, and
get_async_session commits once at the end or rolls back on any error,
domain errors included. The conditional task writes and the code
rotation SAVEPOINT all live inside that single transaction.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.config.settings import LogLevel, Settings, get_settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


def engine_options(settings: Settings) -> dict[str, Any]:
    """Keyword arguments for create_async_engine.

    SQL echo follows LOG_LEVEL=DEBUG. Server databases get pool pre-ping;
    SQLite (local dev and tests) has no server connection to go stale.
    """
    options: dict[str, Any] = {"echo": settings.LOG_LEVEL == LogLevel.DEBUG}
    if make_url(settings.DATABASE_URL).get_backend_name() != "sqlite":
        options["pool_pre_ping"] = True
    return options


_settings = get_settings()

engine = create_async_engine(_settings.DATABASE_URL, **engine_options(_settings))

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
