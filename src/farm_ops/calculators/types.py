"""Type definitions for the payroll calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class AdjustmentType(str, Enum):
    """Manual pay adjustment kinds."""

    DEDUCTION = "deduction"
    BONUS = "bonus"
    ADVANCE = "advance"

    @property
    def reduces_pay(self) -> bool:
        return self in (AdjustmentType.DEDUCTION, AdjustmentType.ADVANCE)


@dataclass(frozen=True)
class ApprovedLog:
    """An approved job log flattened with its job's type and crop."""

    job_log_id: UUID
    worker_id: UUID
    log_date: date
    acres_done: Decimal
    job_type: str
    crop: str | None = None
    created_at: datetime | None = None

    def sort_key(self) -> tuple[Any, ...]:
        created = self.created_at.isoformat() if self.created_at else ""
        return (self.log_date, created, str(self.job_log_id))


@dataclass(frozen=True)
class AdjustmentInput:
    """An adjustment tied to the pay period being calculated."""

    adjustment_id: UUID
    worker_id: UUID
    adj_type: AdjustmentType
    amount: Decimal
    reason: str | None = None


@dataclass
class PieceItem:
    """Contribution of one approved log to a worker's gross pay."""

    job_log_id: UUID
    job_type: str
    crop: str | None
    log_date: date
    acres_done: Decimal
    rate: Decimal
    amount: Decimal

    def to_breakdown_dict(self) -> dict[str, Any]:
        """Serializable form stored in PayrollLine.breakdown."""
        return {
            "job_log_id": str(self.job_log_id),
            "job_type": self.job_type,
            "crop": self.crop,
            "log_date": self.log_date.isoformat(),
            "acres_done": str(self.acres_done),
            "rate": str(self.rate),
            "amount": str(self.amount),
        }


@dataclass
class AdjustmentItem:
    """Adjustment applied to a worker's payroll line."""

    adjustment_id: UUID
    adj_type: AdjustmentType
    amount: Decimal
    reason: str | None = None

    def to_breakdown_dict(self) -> dict[str, Any]:
        return {
            "adjustment_id": str(self.adjustment_id),
            "adj_type": self.adj_type.value,
            "amount": str(self.amount),
            "reason": self.reason,
        }


@dataclass
class WorkerPayrollContext:
    """Context for calculating a single worker's pay."""

    worker_id: UUID
    pay_period_id: UUID
    period_start: date
    period_end: date

    # Will be populated during calculation
    gross: Decimal = Decimal("0")
    deductions: Decimal = Decimal("0")
    bonuses: Decimal = Decimal("0")
    net: Decimal = Decimal("0")
    piece_items: list[PieceItem] = field(default_factory=list)
    adjustment_items: list[AdjustmentItem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def breakdown(self) -> dict[str, Any]:
        return {
            "piece_items": [p.to_breakdown_dict() for p in self.piece_items],
            "adjustments": [a.to_breakdown_dict() for a in self.adjustment_items],
        }
