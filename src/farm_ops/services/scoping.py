"""Farm-scoped record lookup and input checks shared by the services."""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from farm_ops.errors import NotFoundError, PreconditionError, ValidationError
from farm_ops.models import Farm

ModelT = TypeVar("ModelT")


async def get_owned(
    session: AsyncSession,
    model: type[ModelT],
    record_id: UUID | None,
    farm_id: UUID,
    *,
    options: list[Any] | None = None,
    for_update: bool = False,
) -> ModelT:
    """Load a record by primary key, only if it belongs to ``farm_id``.

    A record of another farm is reported exactly like a missing one.

    Raises:
        PreconditionError: If ``record_id`` is not given
        NotFoundError: If no such record exists in the farm
    """
    entity = model.__name__
    if record_id is None:
        raise PreconditionError(f"Select a {entity} first")

    pk = model.__mapper__.primary_key[0]  # type: ignore[attr-defined]
    farm_column = model.farm_id  # type: ignore[attr-defined]
    query = select(model).where(pk == record_id, farm_column == farm_id)
    if options:
        query = query.options(*options)
    if for_update:
        query = query.with_for_update()

    result = await session.execute(query)
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFoundError(entity, record_id)
    return record


async def require_farm(session: AsyncSession, farm_id: UUID) -> Farm:
    """Load the farm new records are created under.

    Raises:
        NotFoundError: If no such farm exists
    """
    farm = await session.get(Farm, farm_id)
    if farm is None:
        raise NotFoundError("Farm", farm_id)
    return farm


def require_text(value: str | None, field: str, label: str) -> str:
    """Strip and require a non-empty string."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{label} is required.", field=field)
    return cleaned


def optional_text(value: str | None) -> str | None:
    cleaned = (value or "").strip()
    return cleaned or None


def decimal_places(number: Decimal) -> int:
    """Significant digits after the point; trailing zeros do not count."""
    exponent = number.normalize().as_tuple().exponent
    return max(0, -exponent)  # type: ignore[operator]


def require_positive(
    value: Any, field: str, label: str, *, places: int = 4, digits: int = 12
) -> Decimal:
    """Parse a number that must be finite, > 0 and fit ``NUMERIC(digits, places)``."""
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{label} must be > 0.", field=field) from None
    if not number.is_finite() or number <= 0:
        raise ValidationError(f"{label} must be > 0.", field=field)
    if decimal_places(number) > places:
        raise ValidationError(f"{label} allows at most {places} decimal places.", field=field)
    limit = 10 ** (digits - places)
    if number >= limit:
        raise ValidationError(f"{label} must be less than {limit}.", field=field)
    return number


def require_date_order(start: date | None, end: date | None, end_field: str, message: str) -> None:
    """Both dates present and end >= start."""
    if start is None or end is None:
        raise ValidationError("Start and end dates are required.", field=end_field)
    if end < start:
        raise ValidationError(message, field=end_field)
