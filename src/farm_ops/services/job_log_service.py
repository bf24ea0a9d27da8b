"""Job log service - recording field work and the approval workflow."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from farm_ops.errors import InvalidStateError, NotFoundError, PreconditionError, ValidationError
from farm_ops.models import Job, JobLog, Worker
from farm_ops.models.base import utcnow
from farm_ops.services.planning_service import PlanningService
from farm_ops.services.scoping import ModelT, get_owned, optional_text, require_positive
from farm_ops.services.state_machine import JobLogStateMachine, JobLogStatus

logger = logging.getLogger(__name__)


class JobLogService:
    """Creates job logs and moves them through draft/submitted/approved/rejected.

    Status changes are compare-and-swap updates: the row only changes if it
    is still in the expected source status, so two supervisors acting on
    the same log cannot both succeed.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        farm_id: UUID,
        job_id: UUID | None,
        log_date: date | None,
        acres_done: Decimal | str | float,
        worker_id: UUID | None,
        notes: str | None = None,
        mode: str = JobLogStatus.SUBMITTED.value,
    ) -> JobLog:
        """Record work done on a job, either as a draft or submitted for review.

        Job progress is not touched; only approval counts. Any worker of the
        farm may be recorded as the performer, not only members of the job's
        team, so stand-ins borrowed from other teams can be paid.

        Raises:
            ValidationError: On bad acres, missing worker or date, unknown
                mode, or a job or worker that is not in the farm
        """
        if not JobLogStateMachine.can_create_as(mode):
            raise ValidationError(f"Cannot create a job log as '{mode}'", field="mode")
        acres = require_positive(acres_done, "acres_done", "Acres done")
        if worker_id is None:
            raise ValidationError("Select who performed the work.", field="worker_id")
        if log_date is None:
            raise ValidationError("Log date is required.", field="log_date")

        await self._reference(Job, job_id, farm_id, "job_id")
        await self._reference(Worker, worker_id, farm_id, "worker_id")

        log = JobLog(
            farm_id=farm_id,
            job_id=job_id,
            log_date=log_date,
            acres_done=acres,
            notes=optional_text(notes),
            performed_by_worker_id=worker_id,
            status=mode,
        )
        self.session.add(log)
        await self.session.flush()
        logger.debug("Created job log %s for job %s as %s", log.job_log_id, job_id, mode)
        return log

    async def get(self, farm_id: UUID, job_log_id: UUID) -> JobLog:
        return await get_owned(self.session, JobLog, job_log_id, farm_id)

    async def update(
        self,
        farm_id: UUID,
        job_log_id: UUID,
        log_date: date | None = None,
        acres_done: Decimal | str | float | None = None,
        worker_id: UUID | None = None,
        notes: str | None = None,
    ) -> JobLog:
        """Edit a log that has not been approved.

        Raises:
            ImmutableStateError: If the log is approved
        """
        log = await get_owned(self.session, JobLog, job_log_id, farm_id, for_update=True)
        JobLogStateMachine.ensure_mutable(log.status, "edit")

        if log_date is not None:
            log.log_date = log_date
        if acres_done is not None:
            log.acres_done = require_positive(acres_done, "acres_done", "Acres done")
        if worker_id is not None:
            await self._reference(Worker, worker_id, farm_id, "worker_id")
            log.performed_by_worker_id = worker_id
        if notes is not None:
            log.notes = optional_text(notes)

        await self.session.flush()
        return log

    async def submit(self, farm_id: UUID, job_log_id: UUID) -> JobLog:
        """Send a draft for review."""
        return await self._transition(farm_id, job_log_id, JobLogStatus.SUBMITTED, {})

    async def approve(self, farm_id: UUID, job_log_id: UUID) -> JobLog:
        """Approve a submitted log and refresh its job's progress.

        Raises:
            InvalidStateError: If the log is not submitted; it is left unchanged
        """
        log = await self._transition(
            farm_id,
            job_log_id,
            JobLogStatus.APPROVED,
            {"approved_at": utcnow(), "rejection_reason": None},
        )
        await PlanningService(self.session).recompute_progress(farm_id, log.job_id)
        logger.info("Approved job log %s", job_log_id)
        return log

    async def reject(self, farm_id: UUID, job_log_id: UUID, reason: str | None) -> JobLog:
        """Reject a submitted log with a reason.

        Raises:
            ValidationError: If the reason is blank
            InvalidStateError: If the log is not submitted
        """
        cleaned = (reason or "").strip()
        if not cleaned:
            raise ValidationError("Rejection reason is required.", field="reason")

        log = await self._transition(
            farm_id, job_log_id, JobLogStatus.REJECTED, {"rejection_reason": cleaned}
        )
        logger.info("Rejected job log %s", job_log_id)
        return log

    async def delete(self, farm_id: UUID, job_log_id: UUID) -> None:
        """Hard-delete a log that has not been approved.

        Raises:
            ImmutableStateError: If the log is approved
        """
        log = await get_owned(self.session, JobLog, job_log_id, farm_id, for_update=True)
        JobLogStateMachine.ensure_mutable(log.status, "delete")
        await self.session.delete(log)
        await self.session.flush()
        logger.info("Deleted job log %s (%s)", job_log_id, log.status)

    async def list_for_job(self, farm_id: UUID, job_id: UUID) -> list[JobLog]:
        await get_owned(self.session, Job, job_id, farm_id)
        result = await self.session.execute(
            select(JobLog)
            .where(JobLog.farm_id == farm_id, JobLog.job_id == job_id)
            .options(selectinload(JobLog.performed_by))
            .order_by(JobLog.log_date.desc(), JobLog.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_approval_queue(self, farm_id: UUID) -> list[JobLog]:
        """Submitted logs awaiting review, newest first."""
        result = await self.session.execute(
            select(JobLog)
            .where(
                JobLog.farm_id == farm_id,
                JobLog.status == JobLogStatus.SUBMITTED.value,
            )
            .options(selectinload(JobLog.job), selectinload(JobLog.performed_by))
            .order_by(JobLog.log_date.desc(), JobLog.created_at.desc())
        )
        return list(result.scalars().all())

    async def _reference(
        self, model: type[ModelT], record_id: UUID | None, farm_id: UUID, field: str
    ) -> ModelT:
        """Resolve a job or worker named on a log; a bad reference is invalid input."""
        try:
            return await get_owned(self.session, model, record_id, farm_id)
        except (PreconditionError, NotFoundError) as e:
            raise ValidationError(e.message, field=field) from e

    async def _transition(
        self,
        farm_id: UUID,
        job_log_id: UUID,
        to_status: JobLogStatus,
        values: dict[str, Any],
    ) -> JobLog:
        """Conditionally move a log into ``to_status``.

        Raises:
            NotFoundError: If the log is not in the farm
            InvalidStateError: If the log is not in the required source status
        """
        expected = JobLogStateMachine.required_from(to_status)
        result = await self.session.execute(
            update(JobLog)
            .where(
                JobLog.job_log_id == job_log_id,
                JobLog.farm_id == farm_id,
                JobLog.status == expected,
            )
            .values(status=to_status.value, **values)
        )

        log = await get_owned(self.session, JobLog, job_log_id, farm_id)
        await self.session.refresh(log)
        if result.rowcount == 0:
            raise InvalidStateError(log.status, to_status.value, f"job log must be '{expected}'")
        return log
