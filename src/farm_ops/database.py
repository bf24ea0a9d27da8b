"""Database connection and session management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncGenerator
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from farm_ops.config import get_settings
from farm_ops.errors import ConflictError, RemoteError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


def get_engine(database_url: str | None = None) -> AsyncEngine:
    """Create async database engine."""
    url = database_url or get_settings().database_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


# Global engine and session factory
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build the session factory used by the app, CLI and tests."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def init_db(
    database_url: str | None = None,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Initialize database engine and session factory."""
    global _engine, _session_factory
    if _engine is None:
        _engine = get_engine(database_url)
        _session_factory = make_session_factory(_engine)
    return _engine, _session_factory


async def dispose_db() -> None:
    """Dispose the global engine (application shutdown)."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables for the ORM models."""
    from farm_ops.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session that commits on success.

    Constraint violations surface as ConflictError; other driver and
    connection failures as RemoteError. Both carry the driver's message.
    """
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            raise ConflictError(driver_message(exc)) from exc
        except DBAPIError as exc:
            await session.rollback()
            raise RemoteError(driver_message(exc)) from exc
        except Exception:
            await session.rollback()
            raise


def driver_message(exc: DBAPIError) -> str:
    return str(exc.orig) if exc.orig is not None else str(exc)


def dialect_name(session: AsyncSession) -> str:
    """Name of the dialect the session is bound to."""
    return session.get_bind().dialect.name


async def acquire_pay_period_lock(session: AsyncSession, pay_period_id: UUID) -> None:
    """Take a transaction-scoped exclusive lock for a pay period.

    On PostgreSQL this blocks concurrent payroll runs for the same period
    until the surrounding transaction ends. Other dialects rely on the
    row lock taken by the caller.
    """
    if dialect_name(session) != "postgresql":
        return
    await session.execute(
        text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
        {"key": f"pay_period:{pay_period_id}"},
    )
    logger.debug("Acquired payroll lock for pay period %s", pay_period_id)
