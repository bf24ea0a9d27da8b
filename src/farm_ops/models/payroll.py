"""Rate card, pay period, adjustment and payroll line models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from farm_ops.models.base import Base, JSONType, TimestampMixin

if TYPE_CHECKING:
    from farm_ops.models.farm import Worker


# ===== Rate Cards =====


class RateCard(Base, TimestampMixin):
    """Named set of per-acre rates; at most one active per farm."""

    __tablename__ = "rate_card"

    rate_card_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    farm_id: Mapped[UUID] = mapped_column(
        ForeignKey("farm.farm_id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="NGN")
    effective_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    rates: Mapped[list[Rate]] = relationship(
        back_populates="rate_card", cascade="all, delete-orphan", passive_deletes=True
    )


class Rate(Base, TimestampMixin):
    """Per-acre rate for a job type, optionally narrowed to one crop."""

    __tablename__ = "rate"

    rate_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    rate_card_id: Mapped[UUID] = mapped_column(
        ForeignKey("rate_card.rate_card_id", ondelete="CASCADE"), nullable=False
    )
    job_type: Mapped[str] = mapped_column(String, nullable=False)
    crop: Mapped[str | None] = mapped_column(String, nullable=True)
    pay_type: Mapped[str] = mapped_column(String, nullable=False, default="per_acre")
    rate_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint("rate_card_id", "job_type", "crop", name="rate_card_job_crop_unique"),
        CheckConstraint("pay_type IN ('per_acre')", name="rate_pay_type_check"),
        CheckConstraint("rate_amount > 0", name="rate_amount_positive"),
    )

    # Relationships
    rate_card: Mapped[RateCard] = relationship(back_populates="rates")

    def matches(self, job_type: str, crop: str | None) -> int:
        """Score how well this rate matches a job.

        Returns:
            -1 if it does not apply, 0 for a crop-agnostic match,
            1 for an exact crop match.
        """
        if self.pay_type != "per_acre" or self.job_type != job_type:
            return -1
        if self.crop is None:
            return 0
        if crop is not None and self.crop == crop:
            return 1
        return -1


# ===== Pay Periods =====


class PayPeriod(Base, TimestampMixin):
    """Dated window over which payroll is computed."""

    __tablename__ = "pay_period"

    pay_period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    farm_id: Mapped[UUID] = mapped_column(
        ForeignKey("farm.farm_id", ondelete="CASCADE"), nullable=False, index=True
    )
    period_type: Mapped[str] = mapped_column(String, nullable=False, default="weekly")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="open")
    last_run_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_rate_card_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("rate_card.rate_card_id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "period_type IN ('weekly', 'biweekly', 'monthly')",
            name="pay_period_type_check",
        ),
        CheckConstraint("status IN ('open', 'closed')", name="pay_period_status_check"),
        CheckConstraint("end_date >= start_date", name="pay_period_dates_check"),
    )

    # Relationships
    lines: Mapped[list[PayrollLine]] = relationship(
        back_populates="pay_period", cascade="all, delete-orphan", passive_deletes=True
    )


# ===== Adjustments =====


class Adjustment(Base, TimestampMixin):
    """Manual bonus, deduction or advance for a worker."""

    __tablename__ = "adjustment"

    adjustment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    farm_id: Mapped[UUID] = mapped_column(
        ForeignKey("farm.farm_id", ondelete="CASCADE"), nullable=False
    )
    worker_id: Mapped[UUID] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="RESTRICT"), nullable=False
    )
    pay_period_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("pay_period.pay_period_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    adj_type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "adj_type IN ('deduction', 'bonus', 'advance')",
            name="adjustment_type_check",
        ),
        CheckConstraint("amount > 0", name="adjustment_amount_positive"),
    )

    # Relationships
    worker: Mapped[Worker] = relationship()

    @property
    def is_floating(self) -> bool:
        """Not yet tied to a pay period."""
        return self.pay_period_id is None


# ===== Payroll Lines =====


class PayrollLine(Base):
    """Computed pay for one worker in one pay period.

    Rows are replaced wholesale on every payroll run for the period, so the
    table carries no timestamps; reruns on unchanged inputs produce
    identical rows.
    """

    __tablename__ = "payroll_line"

    payroll_line_id: Mapped[UUID] = mapped_column(primary_key=True)
    farm_id: Mapped[UUID] = mapped_column(
        ForeignKey("farm.farm_id", ondelete="CASCADE"), nullable=False
    )
    pay_period_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_period.pay_period_id", ondelete="CASCADE"), nullable=False
    )
    worker_id: Mapped[UUID] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="RESTRICT"), nullable=False
    )
    rate_card_id: Mapped[UUID] = mapped_column(
        ForeignKey("rate_card.rate_card_id", ondelete="RESTRICT"), nullable=False
    )
    calculation_id: Mapped[UUID] = mapped_column(nullable=False)
    gross_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    deductions: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    bonuses: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    net_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    breakdown: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("pay_period_id", "worker_id", name="payroll_line_period_worker_unique"),
    )

    # Relationships
    pay_period: Mapped[PayPeriod] = relationship(back_populates="lines")
    worker: Mapped[Worker] = relationship()

    @property
    def piece_items(self) -> list[dict[str, Any]]:
        return list((self.breakdown or {}).get("piece_items", []))

    @property
    def worker_name(self) -> str | None:
        """Worker's name; requires ``worker`` to be loaded."""
        return self.worker.full_name if self.worker is not None else None
