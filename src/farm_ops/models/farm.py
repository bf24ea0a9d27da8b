"""Farm, roster and land models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from farm_ops.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from farm_ops.models.planning import Job


class Farm(Base, TimestampMixin):
    """Tenant boundary; every other record belongs to exactly one farm."""

    __tablename__ = "farm"

    farm_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    location: Mapped[str | None] = mapped_column(String, nullable=True)

    # Relationships
    memberships: Mapped[list[FarmMembership]] = relationship(
        back_populates="farm", cascade="all, delete-orphan", passive_deletes=True
    )


class FarmMembership(Base, TimestampMixin):
    """Access grant of an authenticated user to a farm."""

    __tablename__ = "farm_membership"

    farm_membership_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    farm_id: Mapped[UUID] = mapped_column(
        ForeignKey("farm.farm_id", ondelete="CASCADE"), nullable=False
    )
    user_ref: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False, default="manager")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("farm_id", "user_ref", name="farm_membership_user_unique"),
        CheckConstraint(
            "role IN ('owner', 'manager', 'supervisor', 'viewer')",
            name="farm_membership_role_check",
        ),
    )

    # Relationships
    farm: Mapped[Farm] = relationship(back_populates="memberships")


class Plot(Base, TimestampMixin):
    """A parcel of land measured in acres."""

    __tablename__ = "plot"

    plot_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    farm_id: Mapped[UUID] = mapped_column(
        ForeignKey("farm.farm_id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    code: Mapped[str | None] = mapped_column(String, nullable=True)
    size_acres: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)

    __table_args__ = (CheckConstraint("size_acres > 0", name="plot_size_positive"),)


class Worker(Base, TimestampMixin):
    """Farm worker. Deactivated rather than deleted once history exists."""

    __tablename__ = "worker"

    worker_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    farm_id: Mapped[UUID] = mapped_column(
        ForeignKey("farm.farm_id", ondelete="CASCADE"), nullable=False, index=True
    )
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    role: Mapped[str | None] = mapped_column(String, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    photo_url: Mapped[str | None] = mapped_column(String, nullable=True)


class Team(Base, TimestampMixin):
    """Work team with an optional leader."""

    __tablename__ = "team"

    team_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    farm_id: Mapped[UUID] = mapped_column(
        ForeignKey("farm.farm_id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    leader_worker_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    leader: Mapped[Worker | None] = relationship()
    memberships: Mapped[list[TeamMembership]] = relationship(
        back_populates="team", cascade="all, delete-orphan", passive_deletes=True
    )
    jobs: Mapped[list[Job]] = relationship(back_populates="team")


class TeamMembership(Base, TimestampMixin):
    """Dated membership of a worker in a team; end_date NULL means current."""

    __tablename__ = "team_membership"

    team_membership_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    farm_id: Mapped[UUID] = mapped_column(
        ForeignKey("farm.farm_id", ondelete="CASCADE"), nullable=False
    )
    team_id: Mapped[UUID] = mapped_column(
        ForeignKey("team.team_id", ondelete="CASCADE"), nullable=False, index=True
    )
    worker_id: Mapped[UUID] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="RESTRICT"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="team_membership_dates_check",
        ),
    )

    # Relationships
    team: Mapped[Team] = relationship(back_populates="memberships")
    worker: Mapped[Worker] = relationship()
