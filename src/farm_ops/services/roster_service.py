"""Plots, workers and teams."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from farm_ops.errors import ImmutableStateError, ValidationError
from farm_ops.models import (
    Adjustment,
    Job,
    JobLog,
    PayrollLine,
    Plot,
    Team,
    TeamMembership,
    Worker,
)
from farm_ops.services.scoping import (
    get_owned,
    optional_text,
    require_farm,
    require_positive,
    require_text,
)

logger = logging.getLogger(__name__)


class RosterService:
    """CRUD for a farm's land and people.

    Every call takes the farm explicitly; records of other farms are
    invisible.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ===== Plots =====

    async def create_plot(
        self,
        farm_id: UUID,
        name: str,
        size_acres: Decimal | str | float,
        code: str | None = None,
    ) -> Plot:
        await require_farm(self.session, farm_id)
        plot = Plot(
            farm_id=farm_id,
            name=require_text(name, "name", "Plot name"),
            code=optional_text(code),
            size_acres=require_positive(size_acres, "size_acres", "Size (acres)"),
        )
        self.session.add(plot)
        await self.session.flush()
        return plot

    async def update_plot(
        self,
        farm_id: UUID,
        plot_id: UUID,
        name: str | None = None,
        size_acres: Decimal | str | float | None = None,
        code: str | None = None,
    ) -> Plot:
        plot = await get_owned(self.session, Plot, plot_id, farm_id)
        if name is not None:
            plot.name = require_text(name, "name", "Plot name")
        if size_acres is not None:
            plot.size_acres = require_positive(size_acres, "size_acres", "Size (acres)")
        if code is not None:
            plot.code = optional_text(code)
        await self.session.flush()
        return plot

    async def list_plots(self, farm_id: UUID) -> list[Plot]:
        result = await self.session.execute(
            select(Plot).where(Plot.farm_id == farm_id).order_by(Plot.name)
        )
        return list(result.scalars().all())

    async def delete_plot(self, farm_id: UUID, plot_id: UUID) -> None:
        plot = await get_owned(self.session, Plot, plot_id, farm_id)
        in_use = await self.session.scalar(select(exists().where(Job.plot_id == plot_id)))
        if in_use:
            raise ImmutableStateError("Cannot delete a plot that has jobs")
        await self.session.delete(plot)
        await self.session.flush()

    # ===== Workers =====

    async def create_worker(
        self,
        farm_id: UUID,
        full_name: str,
        phone: str | None = None,
        role: str | None = None,
    ) -> Worker:
        await require_farm(self.session, farm_id)
        worker = Worker(
            farm_id=farm_id,
            full_name=require_text(full_name, "full_name", "Full name"),
            phone=optional_text(phone),
            role=optional_text(role),
            active=True,
        )
        self.session.add(worker)
        await self.session.flush()
        return worker

    async def update_worker(
        self,
        farm_id: UUID,
        worker_id: UUID,
        full_name: str | None = None,
        phone: str | None = None,
        role: str | None = None,
    ) -> Worker:
        worker = await get_owned(self.session, Worker, worker_id, farm_id)
        if full_name is not None:
            worker.full_name = require_text(full_name, "full_name", "Full name")
        if phone is not None:
            worker.phone = optional_text(phone)
        if role is not None:
            worker.role = optional_text(role)
        await self.session.flush()
        return worker

    async def set_worker_active(self, farm_id: UUID, worker_id: UUID, active: bool) -> Worker:
        """Deactivate or reactivate a worker. History is untouched."""
        worker = await get_owned(self.session, Worker, worker_id, farm_id)
        worker.active = active
        await self.session.flush()
        logger.info("Worker %s %s", worker_id, "reactivated" if active else "deactivated")
        return worker

    async def set_photo_url(self, farm_id: UUID, worker_id: UUID, url: str | None) -> Worker:
        """Record the location of an already-uploaded photo."""
        worker = await get_owned(self.session, Worker, worker_id, farm_id)
        worker.photo_url = optional_text(url)
        await self.session.flush()
        return worker

    async def list_workers(self, farm_id: UUID, active_only: bool = False) -> list[Worker]:
        query = select(Worker).where(Worker.farm_id == farm_id)
        if active_only:
            query = query.where(Worker.active.is_(True))
        result = await self.session.execute(query.order_by(Worker.full_name))
        return list(result.scalars().all())

    async def delete_worker(self, farm_id: UUID, worker_id: UUID) -> None:
        """Hard-delete a worker that has no history.

        Raises:
            ImmutableStateError: If the worker has job logs, payroll lines
                or adjustments
        """
        worker = await get_owned(self.session, Worker, worker_id, farm_id)
        has_history = await self.session.scalar(
            select(
                or_(
                    exists().where(JobLog.performed_by_worker_id == worker_id),
                    exists().where(PayrollLine.worker_id == worker_id),
                    exists().where(Adjustment.worker_id == worker_id),
                )
            )
        )
        if has_history:
            raise ImmutableStateError(
                "Worker has job logs or payroll history; deactivate instead",
                {"worker_id": str(worker_id)},
            )

        memberships = await self.session.execute(
            select(TeamMembership).where(TeamMembership.worker_id == worker_id)
        )
        for membership in memberships.scalars().all():
            await self.session.delete(membership)
        await self.session.delete(worker)
        await self.session.flush()
        logger.info("Deleted worker %s", worker_id)

    # ===== Teams =====

    async def create_team(
        self, farm_id: UUID, name: str, leader_worker_id: UUID | None = None
    ) -> Team:
        await require_farm(self.session, farm_id)
        if leader_worker_id is not None:
            await get_owned(self.session, Worker, leader_worker_id, farm_id)
        team = Team(
            farm_id=farm_id,
            name=require_text(name, "name", "Team name"),
            leader_worker_id=leader_worker_id,
        )
        self.session.add(team)
        await self.session.flush()
        return team

    async def list_teams(self, farm_id: UUID) -> list[Team]:
        result = await self.session.execute(
            select(Team)
            .where(Team.farm_id == farm_id)
            .options(selectinload(Team.leader))
            .order_by(Team.name)
        )
        return list(result.scalars().all())

    async def delete_team(self, farm_id: UUID, team_id: UUID) -> None:
        """Delete a team and its memberships. Teams with jobs are kept."""
        team = await get_owned(
            self.session, Team, team_id, farm_id, options=[selectinload(Team.memberships)]
        )
        has_jobs = await self.session.scalar(select(exists().where(Job.team_id == team_id)))
        if has_jobs:
            raise ImmutableStateError("Cannot delete a team that has jobs")
        await self.session.delete(team)
        await self.session.flush()

    async def add_member(
        self,
        farm_id: UUID,
        team_id: UUID,
        worker_id: UUID,
        start_date: date,
    ) -> TeamMembership:
        """Add a worker to a team from ``start_date``.

        Raises:
            ValidationError: If the worker already has an active membership
                in the team
        """
        await get_owned(self.session, Team, team_id, farm_id)
        await get_owned(self.session, Worker, worker_id, farm_id)

        already_active = await self.session.scalar(
            select(
                exists().where(
                    TeamMembership.team_id == team_id,
                    TeamMembership.worker_id == worker_id,
                    TeamMembership.end_date.is_(None),
                )
            )
        )
        if already_active:
            raise ValidationError(
                "Worker is already an active member of this team", field="worker_id"
            )

        membership = TeamMembership(
            farm_id=farm_id,
            team_id=team_id,
            worker_id=worker_id,
            start_date=start_date,
        )
        self.session.add(membership)
        await self.session.flush()
        return membership

    async def end_membership(
        self, farm_id: UUID, team_membership_id: UUID, end_date: date
    ) -> TeamMembership:
        membership = await get_owned(self.session, TeamMembership, team_membership_id, farm_id)
        if end_date < membership.start_date:
            raise ValidationError("End date must be on or after start date.", field="end_date")
        membership.end_date = end_date
        await self.session.flush()
        return membership

    async def list_members(
        self, farm_id: UUID, team_id: UUID, active_only: bool = True
    ) -> list[TeamMembership]:
        await get_owned(self.session, Team, team_id, farm_id)
        query = (
            select(TeamMembership)
            .where(TeamMembership.team_id == team_id)
            .options(selectinload(TeamMembership.worker))
            .order_by(TeamMembership.start_date)
        )
        if active_only:
            query = query.where(TeamMembership.end_date.is_(None))
        result = await self.session.execute(query)
        return list(result.scalars().all())
