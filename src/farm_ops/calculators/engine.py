"""Payroll calculation engine - per-acre piece pay plus adjustments."""

from __future__ import annotations

import hashlib
import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from farm_ops.calculators.line_builder import LineBuilder
from farm_ops.calculators.rate_resolver import RateNotFoundError, RateResolver
from farm_ops.calculators.types import (
    AdjustmentInput,
    AdjustmentType,
    ApprovedLog,
    WorkerPayrollContext,
)
from farm_ops.config import Settings, get_settings
from farm_ops.models import Adjustment, Job, JobLog, PayPeriod

logger = logging.getLogger(__name__)


@dataclass
class WorkerCalculationResult:
    """Result of calculating pay for one worker."""

    worker_id: UUID
    payroll_line_id: UUID
    calculation_id: UUID
    gross: Decimal
    deductions: Decimal
    bonuses: Decimal
    net: Decimal
    breakdown: dict[str, Any]
    inputs_fingerprint: str
    warnings: list[str] = field(default_factory=list)

    @property
    def piece_items(self) -> list[dict[str, Any]]:
        return self.breakdown["piece_items"]


@dataclass
class PeriodCalculationResult:
    """Result of calculating an entire pay period."""

    pay_period_id: UUID
    rate_card_id: UUID
    results: dict[UUID, WorkerCalculationResult]  # worker_id -> result
    total_gross: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    total_bonuses: Decimal = Decimal("0")
    total_net: Decimal = Decimal("0")
    floating_adjustments: int = 0
    unapplied_adjustments: int = 0


class PayrollEngine:
    """Payroll calculation engine.

    Calculation pipeline (stable order per worker):
    1) Piece items from approved logs in the period, oldest first
    2) Resolve per-acre rate for each log's job type (and crop)
    3) amount = acres_done * rate, gross = sum(amounts)
    4) Apply adjustments tied to the period
    5) net = gross - deductions + bonuses
    6) Validate gross = sum(piece items)
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    async def calculate_period(
        self, pay_period: PayPeriod, rate_card_id: UUID
    ) -> PeriodCalculationResult:
        """Calculate payroll for every worker with approved logs in the period."""
        resolver = await RateResolver.for_rate_card(self.session, rate_card_id)
        logs = await self._get_approved_logs(pay_period)
        adjustments, floating = await self._get_adjustments(pay_period)

        logs_by_worker: dict[UUID, list[ApprovedLog]] = defaultdict(list)
        for log in logs:
            logs_by_worker[log.worker_id].append(log)

        adjustments_by_worker: dict[UUID, list[AdjustmentInput]] = defaultdict(list)
        for adj in adjustments:
            adjustments_by_worker[adj.worker_id].append(adj)

        unapplied = sum(
            len(items)
            for worker_id, items in adjustments_by_worker.items()
            if worker_id not in logs_by_worker
        )

        period_result = PeriodCalculationResult(
            pay_period_id=pay_period.pay_period_id,
            rate_card_id=rate_card_id,
            results={},
            floating_adjustments=floating,
            unapplied_adjustments=unapplied,
        )

        for worker_id in sorted(logs_by_worker, key=str):
            result = self.calculate_worker(
                worker_id,
                pay_period,
                logs_by_worker[worker_id],
                adjustments_by_worker.get(worker_id, []),
                resolver,
            )
            period_result.results[worker_id] = result
            period_result.total_gross += result.gross
            period_result.total_deductions += result.deductions
            period_result.total_bonuses += result.bonuses
            period_result.total_net += result.net

        return period_result

    def calculate_worker(
        self,
        worker_id: UUID,
        pay_period: PayPeriod,
        logs: Iterable[ApprovedLog],
        adjustments: Iterable[AdjustmentInput],
        resolver: RateResolver,
    ) -> WorkerCalculationResult:
        """Calculate pay for a single worker.

        Raises:
            RateNotFoundError: If a log's job type has no rate and the
                missing-rate policy is ``fail``
            ValueError: If the computed figures are inconsistent
        """
        ctx = WorkerPayrollContext(
            worker_id=worker_id,
            pay_period_id=pay_period.pay_period_id,
            period_start=pay_period.start_date,
            period_end=pay_period.end_date,
        )
        ordered_logs = sorted(logs, key=ApprovedLog.sort_key)
        ordered_adjustments = sorted(adjustments, key=lambda a: str(a.adjustment_id))

        # 1-3) Piece items
        for log in ordered_logs:
            try:
                rate = resolver.resolve(log.job_type, log.crop)
            except RateNotFoundError as e:
                if self.settings.missing_rate_policy == "fail":
                    raise
                ctx.warnings.append(str(e))
                rate = Decimal("0")
            ctx.piece_items.append(LineBuilder.create_piece_item(log, rate))

        # 4) Adjustments
        for adj in ordered_adjustments:
            ctx.adjustment_items.append(LineBuilder.create_adjustment_item(adj))

        # 5) Totals
        LineBuilder.apply_totals(ctx)

        # 6) Validate
        errors = LineBuilder.validate(ctx)
        if errors:
            raise ValueError("; ".join(errors))

        if ctx.net < 0:
            logger.warning(
                "Negative net pay %s for worker %s in pay period %s",
                ctx.net,
                worker_id,
                pay_period.pay_period_id,
            )

        inputs_fingerprint = LineBuilder.compute_hash(
            LineBuilder.inputs_data(ordered_logs, ordered_adjustments)
        )

        return WorkerCalculationResult(
            worker_id=worker_id,
            payroll_line_id=self._generate_line_id(pay_period.pay_period_id, worker_id),
            calculation_id=self._generate_calculation_id(
                pay_period.pay_period_id,
                worker_id,
                resolver.rate_card_id,
                inputs_fingerprint,
            ),
            gross=ctx.gross,
            deductions=ctx.deductions,
            bonuses=ctx.bonuses,
            net=ctx.net,
            breakdown=ctx.breakdown(),
            inputs_fingerprint=inputs_fingerprint,
            warnings=ctx.warnings,
        )

    def _generate_line_id(self, pay_period_id: UUID, worker_id: UUID) -> UUID:
        """Stable line id per (period, worker) so reruns overwrite in place."""
        data = {"pay_period_id": str(pay_period_id), "worker_id": str(worker_id)}
        hash_bytes = hashlib.sha256(json.dumps(data, sort_keys=True).encode()).digest()
        return UUID(bytes=hash_bytes[:16])

    def _generate_calculation_id(
        self,
        pay_period_id: UUID,
        worker_id: UUID,
        rate_card_id: UUID,
        inputs_fingerprint: str,
    ) -> UUID:
        """Generate deterministic calculation ID."""
        data = {
            "pay_period_id": str(pay_period_id),
            "worker_id": str(worker_id),
            "rate_card_id": str(rate_card_id),
            "engine_version": self.settings.engine_version,
            "inputs_fingerprint": inputs_fingerprint,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])

    # === Data Loading Methods ===

    async def _get_approved_logs(self, pay_period: PayPeriod) -> list[ApprovedLog]:
        """Approved logs of the period's farm with log_date inside the period."""
        result = await self.session.execute(
            select(
                JobLog.job_log_id,
                JobLog.performed_by_worker_id,
                JobLog.log_date,
                JobLog.acres_done,
                JobLog.created_at,
                Job.job_type,
                Job.crop,
            )
            .join(Job, JobLog.job_id == Job.job_id)
            .where(
                JobLog.farm_id == pay_period.farm_id,
                JobLog.status == "approved",
                JobLog.log_date >= pay_period.start_date,
                JobLog.log_date <= pay_period.end_date,
            )
            .order_by(JobLog.performed_by_worker_id, JobLog.log_date, JobLog.created_at)
        )
        return [
            ApprovedLog(
                job_log_id=row.job_log_id,
                worker_id=row.performed_by_worker_id,
                log_date=row.log_date,
                acres_done=Decimal(row.acres_done),
                job_type=row.job_type,
                crop=row.crop,
                created_at=row.created_at,
            )
            for row in result.all()
        ]

    async def _get_adjustments(
        self, pay_period: PayPeriod
    ) -> tuple[list[AdjustmentInput], int]:
        """Adjustments tied to the period, plus the count of floating ones."""
        result = await self.session.execute(
            select(Adjustment).where(
                Adjustment.farm_id == pay_period.farm_id,
                (Adjustment.pay_period_id == pay_period.pay_period_id)
                | Adjustment.pay_period_id.is_(None),
            )
        )
        tied: list[AdjustmentInput] = []
        floating = 0
        for adj in result.scalars().all():
            if adj.is_floating:
                floating += 1
                continue
            tied.append(
                AdjustmentInput(
                    adjustment_id=adj.adjustment_id,
                    worker_id=adj.worker_id,
                    adj_type=AdjustmentType(adj.adj_type),
                    amount=Decimal(adj.amount),
                    reason=adj.reason,
                )
            )
        return tied, floating
