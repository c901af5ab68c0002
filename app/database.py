"""Async database engine and session management."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from sqlalchemy import DateTime, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from app.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all models."""


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that always comes back in UTC.

    SQLite drops tzinfo on the way in; values are normalized to UTC before
    storing and re-tagged on load.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        value = value.astimezone(UTC)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


def create_engine(database_url: str | None = None) -> AsyncEngine:
    """Create the async engine; pool settings only apply to PostgreSQL."""
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        sqlite_engine = create_async_engine(url, echo=False)

        # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly
        @event.listens_for(sqlite_engine.sync_engine, "connect")
        def _disable_driver_transactions(dbapi_connection, connection_record) -> None:
            dbapi_connection.isolation_level = None

        @event.listens_for(sqlite_engine.sync_engine, "begin")
        def _emit_begin(conn) -> None:
            conn.exec_driver_sql("BEGIN")

        return sqlite_engine
    return create_async_engine(
        url,
        echo=False,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
    )


engine = create_engine()

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session.

    Services commit inside their own units of work; anything left open is
    rolled back here.
    """
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Session context for code running outside a request (Celery, scripts)."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()


async def init_db() -> None:
    """Create tables directly (development only; production uses Alembic)."""
    from app import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def close_db() -> None:
    await engine.dispose()
