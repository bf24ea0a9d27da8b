"""Plan, job and job log models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from farm_ops.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from farm_ops.models.farm import Plot, Team, Worker


class JobType(Base, TimestampMixin):
    """Catalog entry for a kind of field work (planting, weeding, ...)."""

    __tablename__ = "job_type"

    job_type_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    farm_id: Mapped[UUID] = mapped_column(
        ForeignKey("farm.farm_id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("farm_id", "name", name="job_type_farm_name_unique"),)


class Plan(Base, TimestampMixin):
    """Scheduling window that owns jobs."""

    __tablename__ = "plan"

    plan_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    farm_id: Mapped[UUID] = mapped_column(
        ForeignKey("farm.farm_id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    frequency: Mapped[str] = mapped_column(String, nullable=False, default="weekly")
    date_start: Mapped[date] = mapped_column(Date, nullable=False)
    date_end: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "frequency IN ('daily', 'weekly', 'biweekly', 'monthly')",
            name="plan_frequency_check",
        ),
        CheckConstraint("date_end >= date_start", name="plan_dates_check"),
    )

    # Relationships
    jobs: Mapped[list[Job]] = relationship(
        back_populates="plan", cascade="all, delete-orphan", passive_deletes=True
    )


class Job(Base, TimestampMixin):
    """Unit of planned work on a plot by a team."""

    __tablename__ = "job"

    job_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    farm_id: Mapped[UUID] = mapped_column(
        ForeignKey("farm.farm_id", ondelete="CASCADE"), nullable=False
    )
    plan_id: Mapped[UUID] = mapped_column(
        ForeignKey("plan.plan_id", ondelete="CASCADE"), nullable=False, index=True
    )
    team_id: Mapped[UUID] = mapped_column(
        ForeignKey("team.team_id", ondelete="RESTRICT"), nullable=False
    )
    plot_id: Mapped[UUID] = mapped_column(
        ForeignKey("plot.plot_id", ondelete="RESTRICT"), nullable=False
    )
    job_type: Mapped[str] = mapped_column(String, nullable=False)
    crop: Mapped[str | None] = mapped_column(String, nullable=True)
    activity: Mapped[str | None] = mapped_column(Text, nullable=True)
    allotted_acres: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="not_started")
    percent_complete: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        CheckConstraint("allotted_acres > 0", name="job_allotted_acres_positive"),
        CheckConstraint("due_date >= start_date", name="job_dates_check"),
        CheckConstraint(
            "status IN ('not_started', 'in_progress', 'done', 'blocked')",
            name="job_status_check",
        ),
        CheckConstraint(
            "percent_complete >= 0 AND percent_complete <= 100",
            name="job_percent_range",
        ),
        Index("ix_job_farm_due", "farm_id", "due_date"),
    )

    # Relationships
    plan: Mapped[Plan] = relationship(back_populates="jobs")
    team: Mapped[Team] = relationship(back_populates="jobs")
    plot: Mapped[Plot] = relationship()
    logs: Mapped[list[JobLog]] = relationship(
        back_populates="job", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def label(self) -> str:
        """Display label, e.g. 'planting • maize'."""
        return f"{self.job_type} • {self.crop}" if self.crop else self.job_type


class JobLog(Base, TimestampMixin):
    """A worker's dated record of acres completed against a job."""

    __tablename__ = "job_log"

    job_log_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    farm_id: Mapped[UUID] = mapped_column(
        ForeignKey("farm.farm_id", ondelete="CASCADE"), nullable=False
    )
    job_id: Mapped[UUID] = mapped_column(
        ForeignKey("job.job_id", ondelete="CASCADE"), nullable=False, index=True
    )
    log_date: Mapped[date] = mapped_column(Date, nullable=False)
    acres_done: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    performed_by_worker_id: Mapped[UUID] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[str] = mapped_column(String, nullable=False, default="submitted")
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint("acres_done > 0", name="job_log_acres_positive"),
        CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'rejected')",
            name="job_log_status_check",
        ),
        Index("ix_job_log_farm_status_date", "farm_id", "status", "log_date"),
    )

    # Relationships
    job: Mapped[Job] = relationship(back_populates="logs")
    performed_by: Mapped[Worker] = relationship()
