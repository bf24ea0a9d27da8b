"""Payroll service - pay periods, adjustments and payroll runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from farm_ops.calculators import PayrollEngine
from farm_ops.calculators.types import AdjustmentType
from farm_ops.config import Settings, get_settings
from farm_ops.database import acquire_pay_period_lock
from farm_ops.errors import PreconditionError, ValidationError
from farm_ops.models import Adjustment, PayPeriod, PayrollLine, RateCard, Worker
from farm_ops.models.base import utcnow
from farm_ops.services.scoping import (
    get_owned,
    optional_text,
    require_date_order,
    require_farm,
    require_positive,
)

logger = logging.getLogger(__name__)

PERIOD_TYPES = ("weekly", "biweekly", "monthly")


@dataclass
class PayrollRunResult:
    """Outcome of one payroll run for a pay period."""

    pay_period_id: UUID
    rate_card_id: UUID
    lines: list[PayrollLine] = field(default_factory=list)
    total_gross: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    total_bonuses: Decimal = Decimal("0")
    total_net: Decimal = Decimal("0")
    floating_adjustments: int = 0
    unapplied_adjustments: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def worker_count(self) -> int:
        return len(self.lines)


class PayrollService:
    """Computes and stores payroll lines for pay periods.

    A run replaces every line of the period in the caller's transaction;
    if rate resolution fails nothing is written.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.engine = PayrollEngine(session, self.settings)

    # ===== Pay periods =====

    async def create_pay_period(
        self,
        farm_id: UUID,
        start_date: date | None,
        end_date: date | None,
        period_type: str = "weekly",
    ) -> PayPeriod:
        await require_farm(self.session, farm_id)
        if period_type not in PERIOD_TYPES:
            raise ValidationError(f"Unknown period type '{period_type}'", field="period_type")
        require_date_order(
            start_date, end_date, "end_date", "End date must be on or after start date."
        )
        period = PayPeriod(
            farm_id=farm_id,
            period_type=period_type,
            start_date=start_date,
            end_date=end_date,
            status="open",
        )
        self.session.add(period)
        await self.session.flush()
        return period

    async def list_pay_periods(self, farm_id: UUID) -> list[PayPeriod]:
        result = await self.session.execute(
            select(PayPeriod)
            .where(PayPeriod.farm_id == farm_id)
            .order_by(PayPeriod.start_date.desc())
        )
        return list(result.scalars().all())

    # ===== Adjustments =====

    async def add_adjustment(
        self,
        farm_id: UUID,
        worker_id: UUID | None,
        adj_type: str,
        amount: Decimal | str | float,
        reason: str | None = None,
        pay_period_id: UUID | None = None,
    ) -> Adjustment:
        """Record a bonus, deduction or advance.

        Adjustments without a pay period are kept but not applied by runs.
        """
        try:
            kind = AdjustmentType(adj_type)
        except ValueError:
            raise ValidationError(
                f"Unknown adjustment type '{adj_type}'", field="adj_type"
            ) from None
        value = require_positive(amount, "amount", "Amount", places=2, digits=14)

        await get_owned(self.session, Worker, worker_id, farm_id)
        if pay_period_id is not None:
            await get_owned(self.session, PayPeriod, pay_period_id, farm_id)

        adjustment = Adjustment(
            farm_id=farm_id,
            worker_id=worker_id,
            pay_period_id=pay_period_id,
            adj_type=kind.value,
            amount=value,
            reason=optional_text(reason),
        )
        self.session.add(adjustment)
        await self.session.flush()
        return adjustment

    async def list_adjustments(
        self, farm_id: UUID, pay_period_id: UUID | None = None
    ) -> list[Adjustment]:
        query = select(Adjustment).where(Adjustment.farm_id == farm_id)
        if pay_period_id is not None:
            query = query.where(Adjustment.pay_period_id == pay_period_id)
        result = await self.session.execute(query.order_by(Adjustment.created_at))
        return list(result.scalars().all())

    # ===== Runs =====

    async def run_payroll(
        self,
        farm_id: UUID,
        pay_period_id: UUID | None,
        rate_card_id: UUID | None,
    ) -> PayrollRunResult:
        """Compute payroll for a period and replace its lines.

        Raises:
            PreconditionError: If the pay period or rate card is not selected,
                or a log's job type has no rate (``RateNotFoundError``)
            NotFoundError: If either id belongs to no record of the farm
        """
        if pay_period_id is None:
            raise PreconditionError("Select a pay period first")
        if rate_card_id is None:
            raise PreconditionError("Select a rate card first")

        await get_owned(self.session, RateCard, rate_card_id, farm_id)
        await acquire_pay_period_lock(self.session, pay_period_id)
        pay_period = await get_owned(
            self.session, PayPeriod, pay_period_id, farm_id, for_update=True
        )

        logger.info(
            "Running payroll for pay period %s (%s..%s) with rate card %s",
            pay_period_id,
            pay_period.start_date,
            pay_period.end_date,
            rate_card_id,
        )
        calculation = await self.engine.calculate_period(pay_period, rate_card_id)

        previous = await self.session.execute(
            select(PayrollLine).where(PayrollLine.pay_period_id == pay_period_id)
        )
        for old_line in previous.scalars().all():
            await self.session.delete(old_line)
        await self.session.flush()

        lines: list[PayrollLine] = []
        warnings: list[str] = []
        for worker_id, worker_result in calculation.results.items():
            line = PayrollLine(
                payroll_line_id=worker_result.payroll_line_id,
                farm_id=farm_id,
                pay_period_id=pay_period_id,
                worker_id=worker_id,
                rate_card_id=rate_card_id,
                calculation_id=worker_result.calculation_id,
                gross_pay=worker_result.gross,
                deductions=worker_result.deductions,
                bonuses=worker_result.bonuses,
                net_pay=worker_result.net,
                breakdown=worker_result.breakdown,
            )
            self.session.add(line)
            lines.append(line)
            warnings.extend(worker_result.warnings)

        pay_period.last_run_at = utcnow()
        pay_period.last_rate_card_id = rate_card_id
        await self.session.flush()

        if calculation.floating_adjustments:
            logger.info(
                "%d adjustments have no pay period and were not applied",
                calculation.floating_adjustments,
            )
        if calculation.unapplied_adjustments:
            logger.warning(
                "%d adjustments belong to workers without approved logs in the period",
                calculation.unapplied_adjustments,
            )
        logger.info(
            "Payroll run for pay period %s produced %d lines, net total %s",
            pay_period_id,
            len(lines),
            calculation.total_net,
        )

        return PayrollRunResult(
            pay_period_id=pay_period_id,
            rate_card_id=rate_card_id,
            lines=lines,
            total_gross=calculation.total_gross,
            total_deductions=calculation.total_deductions,
            total_bonuses=calculation.total_bonuses,
            total_net=calculation.total_net,
            floating_adjustments=calculation.floating_adjustments,
            unapplied_adjustments=calculation.unapplied_adjustments,
            warnings=warnings,
        )

    async def list_payroll_lines(self, farm_id: UUID, pay_period_id: UUID) -> list[PayrollLine]:
        """Lines of a period, highest net pay first."""
        await get_owned(self.session, PayPeriod, pay_period_id, farm_id)
        result = await self.session.execute(
            select(PayrollLine)
            .join(Worker, PayrollLine.worker_id == Worker.worker_id)
            .where(
                PayrollLine.farm_id == farm_id,
                PayrollLine.pay_period_id == pay_period_id,
            )
            .options(selectinload(PayrollLine.worker))
            .order_by(PayrollLine.net_pay.desc(), Worker.full_name)
        )
        return list(result.scalars().all())
