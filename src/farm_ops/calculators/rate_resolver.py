"""Per-acre rate resolution against a rate card."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from farm_ops.errors import PreconditionError
from farm_ops.models import Rate


class RateNotFoundError(PreconditionError):
    """Raised when a rate card has no rate for a job type."""

    def __init__(self, rate_card_id: UUID, job_type: str, crop: str | None):
        self.rate_card_id = rate_card_id
        self.job_type = job_type
        self.crop = crop
        super().__init__(
            f"No per-acre rate for job type '{job_type}'"
            + (f" (crop '{crop}')" if crop else "")
            + f" on rate card {rate_card_id}",
            {"rate_card_id": str(rate_card_id), "job_type": job_type, "crop": crop},
        )


class RateResolver:
    """Resolves per-acre rates from one rate card.

    Rate selection:
    1. Only per_acre rates with the log's job type are candidates
    2. A rate for the job's exact crop beats a crop-agnostic rate
    3. A rate narrowed to a different crop never applies
    """

    def __init__(self, rate_card_id: UUID, rates: Iterable[Rate]):
        self.rate_card_id = rate_card_id
        self.rates = list(rates)

    @classmethod
    async def for_rate_card(cls, session: AsyncSession, rate_card_id: UUID) -> RateResolver:
        """Load all rates of a card into a resolver."""
        result = await session.execute(
            select(Rate).where(Rate.rate_card_id == rate_card_id).order_by(Rate.job_type)
        )
        return cls(rate_card_id, result.scalars().all())

    def find_rate(self, job_type: str, crop: str | None = None) -> Rate | None:
        """Return the best matching rate row, or None."""
        best_rate: Rate | None = None
        best_score = -1

        for rate in self.rates:
            score = rate.matches(job_type, crop)
            if score > best_score:
                best_rate = rate
                best_score = score

        return best_rate

    def resolve(self, job_type: str, crop: str | None = None) -> Decimal:
        """Resolve the per-acre rate amount.

        Raises:
            RateNotFoundError: If no rate applies
        """
        rate = self.find_rate(job_type, crop)
        if rate is None:
            raise RateNotFoundError(self.rate_card_id, job_type, crop)
        return Decimal(rate.rate_amount)
