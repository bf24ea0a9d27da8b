"""Plans, jobs and job progress."""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import delete, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from farm_ops.errors import ImmutableStateError, ValidationError
from farm_ops.models import Job, JobLog, Plan, Plot, Team
from farm_ops.services.scoping import (
    get_owned,
    optional_text,
    require_date_order,
    require_farm,
    require_positive,
    require_text,
)
from farm_ops.services.state_machine import JobLogStatus, JobStatus

logger = logging.getLogger(__name__)

PLAN_FREQUENCIES = ("daily", "weekly", "biweekly", "monthly")
HUNDRED = Decimal("100")


class PlanningService:
    """Plans and the jobs scheduled inside them.

    Job status is only ever changed by ``set_status``. ``percent_complete``
    is derived from approved logs by ``recompute_progress``.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ===== Plans =====

    async def create_plan(
        self,
        farm_id: UUID,
        title: str,
        date_start: date | None,
        date_end: date | None,
        frequency: str = "weekly",
    ) -> Plan:
        await require_farm(self.session, farm_id)
        self._check_frequency(frequency)
        require_date_order(
            date_start, date_end, "date_end", "End date must be on or after start date."
        )
        plan = Plan(
            farm_id=farm_id,
            title=require_text(title, "title", "Title"),
            frequency=frequency,
            date_start=date_start,
            date_end=date_end,
        )
        self.session.add(plan)
        await self.session.flush()
        return plan

    async def update_plan(
        self,
        farm_id: UUID,
        plan_id: UUID,
        title: str | None = None,
        date_start: date | None = None,
        date_end: date | None = None,
        frequency: str | None = None,
    ) -> Plan:
        plan = await get_owned(self.session, Plan, plan_id, farm_id)
        if title is not None:
            plan.title = require_text(title, "title", "Title")
        if frequency is not None:
            self._check_frequency(frequency)
            plan.frequency = frequency
        new_start = date_start or plan.date_start
        new_end = date_end or plan.date_end
        require_date_order(
            new_start, new_end, "date_end", "End date must be on or after start date."
        )
        plan.date_start, plan.date_end = new_start, new_end
        await self.session.flush()
        return plan

    async def list_plans(self, farm_id: UUID) -> list[Plan]:
        result = await self.session.execute(
            select(Plan)
            .where(Plan.farm_id == farm_id)
            .order_by(Plan.date_start.desc(), Plan.title)
        )
        return list(result.scalars().all())

    async def delete_plan(self, farm_id: UUID, plan_id: UUID) -> None:
        """Delete a plan together with its jobs and their logs.

        Raises:
            ImmutableStateError: If any job of the plan has an approved log
        """
        plan = await get_owned(self.session, Plan, plan_id, farm_id, for_update=True)

        job_ids = select(Job.job_id).where(Job.plan_id == plan_id)
        has_approved = await self.session.scalar(
            select(
                exists().where(
                    JobLog.job_id.in_(job_ids),
                    JobLog.status == JobLogStatus.APPROVED.value,
                )
            )
        )
        if has_approved:
            raise ImmutableStateError(
                "Plan has approved job logs and cannot be deleted",
                {"plan_id": str(plan_id)},
            )

        # Explicit deletes so SQLite without FK enforcement cascades too
        removed_logs = await self.session.execute(
            delete(JobLog).where(JobLog.job_id.in_(job_ids))
        )
        removed_jobs = await self.session.execute(delete(Job).where(Job.plan_id == plan_id))
        await self.session.delete(plan)
        await self.session.flush()
        logger.info(
            "Deleted plan %s with %d jobs and %d logs",
            plan_id,
            removed_jobs.rowcount,
            removed_logs.rowcount,
        )

    # ===== Jobs =====

    async def create_job(
        self,
        farm_id: UUID,
        plan_id: UUID | None,
        team_id: UUID | None,
        plot_id: UUID | None,
        job_type: str,
        allotted_acres: Decimal | str | float,
        start_date: date | None,
        due_date: date | None,
        crop: str | None = None,
        activity: str | None = None,
    ) -> Job:
        """Schedule a job. Status starts at not_started, progress at 0."""
        job_type = require_text(job_type, "job_type", "Job type")
        acres = require_positive(allotted_acres, "allotted_acres", "Allotted acres")
        require_date_order(
            start_date, due_date, "due_date", "Due date must be on or after start date."
        )

        await get_owned(self.session, Plan, plan_id, farm_id)
        await get_owned(self.session, Team, team_id, farm_id)
        await get_owned(self.session, Plot, plot_id, farm_id)

        job = Job(
            farm_id=farm_id,
            plan_id=plan_id,
            team_id=team_id,
            plot_id=plot_id,
            job_type=job_type,
            crop=optional_text(crop),
            activity=optional_text(activity),
            allotted_acres=acres,
            start_date=start_date,
            due_date=due_date,
            status=JobStatus.NOT_STARTED.value,
            percent_complete=Decimal("0"),
        )
        self.session.add(job)
        await self.session.flush()
        return job

    async def get_job(self, farm_id: UUID, job_id: UUID) -> Job:
        return await get_owned(
            self.session,
            Job,
            job_id,
            farm_id,
            options=[selectinload(Job.team), selectinload(Job.plot)],
        )

    async def list_jobs(
        self,
        farm_id: UUID,
        status: str | None = None,
        team_id: UUID | None = None,
        plan_id: UUID | None = None,
    ) -> list[Job]:
        query = (
            select(Job)
            .where(Job.farm_id == farm_id)
            .options(selectinload(Job.team), selectinload(Job.plot))
        )
        if status is not None:
            self._check_job_status(status)
            query = query.where(Job.status == status)
        if team_id is not None:
            query = query.where(Job.team_id == team_id)
        if plan_id is not None:
            query = query.where(Job.plan_id == plan_id)
        result = await self.session.execute(query.order_by(Job.due_date, Job.job_type))
        return list(result.scalars().all())

    async def set_status(self, farm_id: UUID, job_id: UUID, status: str) -> Job:
        self._check_job_status(status)
        job = await get_owned(self.session, Job, job_id, farm_id)
        job.status = status
        await self.session.flush()
        return job

    async def recompute_progress(self, farm_id: UUID, job_id: UUID) -> Job:
        """Set percent_complete from approved acres, capped at 100.

        The job row is locked before summing so concurrent approvals on the
        same job are applied one after the other.
        """
        job = await get_owned(self.session, Job, job_id, farm_id, for_update=True)
        approved_acres = await self.session.scalar(
            select(func.coalesce(func.sum(JobLog.acres_done), 0)).where(
                JobLog.job_id == job_id,
                JobLog.status == JobLogStatus.APPROVED.value,
            )
        )
        job.percent_complete = compute_percent(Decimal(str(approved_acres)), job.allotted_acres)
        await self.session.flush()
        return job

    @staticmethod
    def _check_frequency(frequency: str) -> None:
        if frequency not in PLAN_FREQUENCIES:
            raise ValidationError(f"Unknown frequency '{frequency}'", field="frequency")

    @staticmethod
    def _check_job_status(status: str) -> None:
        if status not in {s.value for s in JobStatus}:
            raise ValidationError(f"Unknown job status '{status}'", field="status")


def compute_percent(approved_acres: Decimal, allotted_acres: Decimal) -> Decimal:
    """min(100, approved / allotted * 100), rounded half-up to 2 places."""
    allotted = Decimal(allotted_acres)
    if allotted <= 0:
        return Decimal("0.00")
    percent = (approved_acres / allotted * HUNDRED).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
    return min(percent, HUNDRED.quantize(Decimal("0.01")))
