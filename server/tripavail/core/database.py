"""Database configuration and async session management."""

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import event
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool, StaticPool

from .config import settings
from .exceptions import TransientStoreError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching the stored column type."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _engine_options(database_url: str) -> dict[str, Any]:
    """Pool options per backend."""
    if not database_url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    if ":memory:" in database_url:
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    # One connection per session so SQLite can serialize writers between them
    return {"poolclass": NullPool}


def enable_sqlite_immediate_transactions(engine: AsyncEngine) -> None:
    """
    Make every SQLite transaction start with BEGIN IMMEDIATE.

    SQLite has no SELECT ... FOR UPDATE. Taking the write lock when the
    transaction begins gives the same guarantee: a second admission for the
    same inventory waits until the first one commits, then re-reads.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
    **_engine_options(settings.database_url),
)

if settings.database_url.startswith("sqlite") and ":memory:" not in settings.database_url:
    enable_sqlite_immediate_transactions(engine)

# Create async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)

# Create declarative base for models
Base = declarative_base()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function that yields database sessions.

    Yields:
        AsyncSession: Database session
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# Alias for FastAPI dependency injection
get_db = get_async_session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency returning the factory used by jobs that open their own sessions."""
    return async_session_factory


@asynccontextmanager
async def translate_store_errors(db: AsyncSession, operation: str) -> AsyncIterator[None]:
    """
    Convert data store connectivity failures into TransientStoreError.

    The whole logical operation is safe to retry from scratch afterwards.
    """
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        try:
            await db.rollback()
        except SQLAlchemyError as rollback_error:
            logger.warning(
                "Rollback after store failure also failed",
                extra={"operation": operation, "error": str(rollback_error)}
            )
        logger.error(
            "Data store unavailable",
            extra={"operation": operation, "error": str(e)}
        )
        raise TransientStoreError(operation=operation) from e


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
