"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from farm_ops.database import init_db


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory of the configured database."""
    _, factory = init_db()
    return factory


SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


async def get_db_session(factory: SessionFactory) -> AsyncGenerator[AsyncSession, None]:
    """One session per request; committed if the handler succeeds."""
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_farm_id(x_farm_id: Annotated[str | None, Header()] = None) -> UUID:
    """Extract the selected farm from the X-Farm-ID header."""
    if not x_farm_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Farm-ID header is required",
        )
    try:
        return UUID(x_farm_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Farm-ID format",
        ) from None


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
FarmId = Annotated[UUID, Depends(get_farm_id)]
