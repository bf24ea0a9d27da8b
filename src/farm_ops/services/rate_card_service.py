"""Job type catalog, rate cards and per-acre rates."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Mapping
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from farm_ops.config import Settings, get_settings
from farm_ops.errors import ValidationError
from farm_ops.models import JobType, Rate, RateCard
from farm_ops.services.scoping import (
    decimal_places,
    get_owned,
    optional_text,
    require_farm,
    require_text,
)

logger = logging.getLogger(__name__)


class RateCardService:
    """Maintains what each kind of work pays per acre."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    # ===== Job types =====

    async def create_job_type(self, farm_id: UUID, name: str) -> JobType:
        await require_farm(self.session, farm_id)
        name = require_text(name, "name", "Job type")
        existing = await self.session.execute(
            select(JobType).where(JobType.farm_id == farm_id, JobType.name == name)
        )
        if existing.scalar_one_or_none() is not None:
            raise ValidationError(f"Job type '{name}' already exists", field="name")
        job_type = JobType(farm_id=farm_id, name=name, is_active=True)
        self.session.add(job_type)
        await self.session.flush()
        return job_type

    async def deactivate_job_type(self, farm_id: UUID, job_type_id: UUID) -> JobType:
        job_type = await get_owned(self.session, JobType, job_type_id, farm_id)
        job_type.is_active = False
        await self.session.flush()
        return job_type

    async def list_job_types(self, farm_id: UUID, active_only: bool = True) -> list[JobType]:
        query = select(JobType).where(JobType.farm_id == farm_id)
        if active_only:
            query = query.where(JobType.is_active.is_(True))
        result = await self.session.execute(query.order_by(JobType.name))
        return list(result.scalars().all())

    # ===== Rate cards =====

    async def create_rate_card(
        self,
        farm_id: UUID,
        name: str,
        currency: str | None = None,
        effective_from: date | None = None,
    ) -> RateCard:
        """Create an inactive rate card."""
        await require_farm(self.session, farm_id)
        card = RateCard(
            farm_id=farm_id,
            name=require_text(name, "name", "Rate card name"),
            currency=(optional_text(currency) or self.settings.currency).upper(),
            effective_from=effective_from,
            is_active=False,
        )
        self.session.add(card)
        await self.session.flush()
        return card

    async def list_rate_cards(self, farm_id: UUID) -> list[RateCard]:
        result = await self.session.execute(
            select(RateCard)
            .where(RateCard.farm_id == farm_id)
            .order_by(RateCard.is_active.desc(), RateCard.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_active_rate_card(self, farm_id: UUID) -> RateCard | None:
        result = await self.session.execute(
            select(RateCard).where(RateCard.farm_id == farm_id, RateCard.is_active.is_(True))
        )
        return result.scalars().first()

    async def activate_rate_card(self, farm_id: UUID, rate_card_id: UUID) -> RateCard:
        """Make one card the farm's only active card.

        A single UPDATE flips every card of the farm, so there is no moment
        with two active cards.
        """
        card = await get_owned(self.session, RateCard, rate_card_id, farm_id)
        await self.session.execute(
            update(RateCard)
            .where(RateCard.farm_id == farm_id)
            .values(is_active=case((RateCard.rate_card_id == rate_card_id, True), else_=False))
            .execution_options(synchronize_session=False)
        )
        # Reload every card of the farm so loaded instances see the new flags
        reloaded = await self.session.scalars(
            select(RateCard)
            .where(RateCard.farm_id == farm_id)
            .execution_options(populate_existing=True)
        )
        reloaded.all()
        logger.info("Activated rate card %s for farm %s", rate_card_id, farm_id)
        return card

    # ===== Rates =====

    async def upsert_rates(
        self,
        farm_id: UUID,
        rate_card_id: UUID,
        amounts: Mapping[str, Decimal | str | float],
        crop: str | None = None,
    ) -> list[Rate]:
        """Set per-acre rates for several job types at once.

        Every amount is checked against the configured bounds before
        anything is written.

        Raises:
            ValidationError: Naming the first job type whose amount is out
                of bounds
        """
        await get_owned(self.session, RateCard, rate_card_id, farm_id)
        crop = optional_text(crop)

        checked: dict[str, Decimal] = {}
        for job_type, raw in amounts.items():
            job_type = require_text(job_type, "job_type", "Job type")
            checked[job_type] = self._check_amount(job_type, raw)

        result = await self.session.execute(
            select(Rate).where(
                Rate.rate_card_id == rate_card_id,
                Rate.job_type.in_(list(checked)),
                Rate.crop.is_(None) if crop is None else Rate.crop == crop,
            )
        )
        existing = {rate.job_type: rate for rate in result.scalars().all()}

        saved: list[Rate] = []
        for job_type in sorted(checked):
            rate = existing.get(job_type)
            if rate is None:
                rate = Rate(
                    rate_card_id=rate_card_id,
                    job_type=job_type,
                    crop=crop,
                    pay_type="per_acre",
                    rate_amount=checked[job_type],
                )
                self.session.add(rate)
            else:
                rate.rate_amount = checked[job_type]
            saved.append(rate)

        await self.session.flush()
        return saved

    async def list_rates(self, farm_id: UUID, rate_card_id: UUID) -> list[Rate]:
        await get_owned(self.session, RateCard, rate_card_id, farm_id)
        result = await self.session.execute(
            select(Rate)
            .where(Rate.rate_card_id == rate_card_id)
            .order_by(Rate.job_type, Rate.crop)
        )
        return list(result.scalars().all())

    def _check_amount(self, job_type: str, raw: Decimal | str | float) -> Decimal:
        low, high = self.settings.min_rate_amount, self.settings.max_rate_amount
        message = f"Rate for '{job_type}' must be between {low} and {high}."
        try:
            amount = Decimal(str(raw))
        except (InvalidOperation, ValueError):
            raise ValidationError(message, field=job_type) from None
        if not amount.is_finite() or not low <= amount <= high:
            raise ValidationError(message, field=job_type)
        if decimal_places(amount) > 2:
            raise ValidationError(
                f"Rate for '{job_type}' allows at most 2 decimal places.", field=job_type
            )
        return amount
