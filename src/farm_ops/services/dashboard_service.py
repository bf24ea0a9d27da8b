"""Farm dashboard KPIs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Awaitable, Callable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from farm_ops.config import Settings, get_settings
from farm_ops.models import Job, JobLog, Plot, Team
from farm_ops.services.state_machine import JobLogStatus, JobStatus

logger = logging.getLogger(__name__)


@dataclass
class JobSummary:
    """A job as listed on the dashboard."""

    job_id: UUID
    label: str
    due_date: date
    percent: int
    team_name: str | None
    plot_name: str | None


@dataclass
class DashboardKPIs:
    """Headline figures for one farm.

    ``errors`` maps a branch name to its failure message; that branch keeps
    its default value.
    """

    submitted_count: int = 0
    approved_acres: Decimal = Decimal("0")
    overdue_jobs: list[JobSummary] = field(default_factory=list)
    due_soon_jobs: list[JobSummary] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)


class DashboardService:
    """Loads the dashboard with one concurrent query per KPI.

    Each branch opens its own session so a failure in one does not poison
    the others.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    async def load(self, farm_id: UUID, today: date | None = None) -> DashboardKPIs:
        today = today or date.today()
        branches: dict[str, Callable[[AsyncSession], Awaitable[Any]]] = {
            "submitted_count": lambda s: self._submitted_count(s, farm_id),
            "approved_acres": lambda s: self._approved_acres(s, farm_id, today),
            "overdue_jobs": lambda s: self._overdue_jobs(s, farm_id, today),
            "due_soon_jobs": lambda s: self._due_soon_jobs(s, farm_id, today),
        }

        outcomes = await asyncio.gather(
            *(self._run_branch(query) for query in branches.values()),
            return_exceptions=True,
        )

        kpis = DashboardKPIs()
        for name, outcome in zip(branches, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(
                    "Dashboard branch %s failed for farm %s: %s", name, farm_id, outcome
                )
                kpis.errors[name] = str(outcome)
                continue
            setattr(kpis, name, outcome)
        return kpis

    async def _run_branch(self, query: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
        async with self.session_factory() as session:
            return await query(session)

    async def _submitted_count(self, session: AsyncSession, farm_id: UUID) -> int:
        count = await session.scalar(
            select(func.count())
            .select_from(JobLog)
            .where(
                JobLog.farm_id == farm_id,
                JobLog.status == JobLogStatus.SUBMITTED.value,
            )
        )
        return int(count or 0)

    async def _approved_acres(self, session: AsyncSession, farm_id: UUID, today: date) -> Decimal:
        window_start = today - timedelta(days=self.settings.dashboard_window_days)
        total = await session.scalar(
            select(func.coalesce(func.sum(JobLog.acres_done), 0)).where(
                JobLog.farm_id == farm_id,
                JobLog.status == JobLogStatus.APPROVED.value,
                JobLog.log_date >= window_start,
                JobLog.log_date <= today,
            )
        )
        return Decimal(str(total))

    async def _overdue_jobs(
        self, session: AsyncSession, farm_id: UUID, today: date
    ) -> list[JobSummary]:
        return await self._job_list(session, farm_id, Job.due_date < today)

    async def _due_soon_jobs(
        self, session: AsyncSession, farm_id: UUID, today: date
    ) -> list[JobSummary]:
        window_end = today + timedelta(days=self.settings.dashboard_window_days)
        return await self._job_list(
            session, farm_id, Job.due_date >= today, Job.due_date <= window_end
        )

    async def _job_list(
        self, session: AsyncSession, farm_id: UUID, *criteria: Any
    ) -> list[JobSummary]:
        result = await session.execute(
            select(Job, Team.name, Plot.name)
            .outerjoin(Team, Job.team_id == Team.team_id)
            .outerjoin(Plot, Job.plot_id == Plot.plot_id)
            .where(
                Job.farm_id == farm_id,
                Job.status != JobStatus.DONE.value,
                *criteria,
            )
            .order_by(Job.due_date, Job.job_type)
            .limit(self.settings.dashboard_list_limit)
        )
        return [
            JobSummary(
                job_id=job.job_id,
                label=job.label,
                due_date=job.due_date,
                percent=int(
                    Decimal(job.percent_complete).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
                ),
                team_name=team_name,
                plot_name=plot_name,
            )
            for job, team_name, plot_name in result.all()
        ]
