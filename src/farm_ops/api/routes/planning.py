"""Plan, job, job log and approval endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from farm_ops.api.dependencies import DbSession, FarmId
from farm_ops.api.schemas import (
    ErrorResponse,
    JobCreate,
    JobLogCreate,
    JobLogResponse,
    JobLogUpdate,
    JobResponse,
    JobStatusUpdate,
    PlanCreate,
    PlanResponse,
    PlanUpdate,
    RejectRequest,
)
from farm_ops.services import JobLogService, PlanningService

router = APIRouter(tags=["planning"])


# ============================================================================
# Plans
# ============================================================================


@router.post("/plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(db: DbSession, farm_id: FarmId, payload: PlanCreate) -> PlanResponse:
    plan = await PlanningService(db).create_plan(
        farm_id,
        payload.title,
        payload.date_start,
        payload.date_end,
        frequency=payload.frequency,
    )
    return PlanResponse.model_validate(plan)


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans(db: DbSession, farm_id: FarmId) -> list[PlanResponse]:
    plans = await PlanningService(db).list_plans(farm_id)
    return [PlanResponse.model_validate(p) for p in plans]


@router.patch("/plans/{plan_id}", response_model=PlanResponse)
async def update_plan(
    db: DbSession,
    farm_id: FarmId,
    plan_id: Annotated[UUID, Path()],
    payload: PlanUpdate,
) -> PlanResponse:
    plan = await PlanningService(db).update_plan(
        farm_id,
        plan_id,
        title=payload.title,
        date_start=payload.date_start,
        date_end=payload.date_end,
        frequency=payload.frequency,
    )
    return PlanResponse.model_validate(plan)


@router.delete(
    "/plans/{plan_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={409: {"model": ErrorResponse}},
)
async def delete_plan(
    db: DbSession, farm_id: FarmId, plan_id: Annotated[UUID, Path()]
) -> Response:
    """Delete a plan with its jobs and logs, unless work was approved."""
    await PlanningService(db).delete_plan(farm_id, plan_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Jobs
# ============================================================================


@router.post(
    "/jobs",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_job(db: DbSession, farm_id: FarmId, payload: JobCreate) -> JobResponse:
    job = await PlanningService(db).create_job(
        farm_id,
        payload.plan_id,
        payload.team_id,
        payload.plot_id,
        payload.job_type,
        payload.allotted_acres,
        payload.start_date,
        payload.due_date,
        crop=payload.crop,
        activity=payload.activity,
    )
    return JobResponse.model_validate(job)


@router.get("/jobs", response_model=list[JobResponse])
async def list_jobs(
    db: DbSession,
    farm_id: FarmId,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    team_id: UUID | None = None,
    plan_id: UUID | None = None,
) -> list[JobResponse]:
    jobs = await PlanningService(db).list_jobs(
        farm_id, status=status_filter, team_id=team_id, plan_id=plan_id
    )
    return [JobResponse.model_validate(j) for j in jobs]


@router.get(
    "/jobs/{job_id}",
    response_model=JobResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_job(
    db: DbSession, farm_id: FarmId, job_id: Annotated[UUID, Path()]
) -> JobResponse:
    job = await PlanningService(db).get_job(farm_id, job_id)
    return JobResponse.model_validate(job)


@router.post("/jobs/{job_id}/status", response_model=JobResponse)
async def set_job_status(
    db: DbSession,
    farm_id: FarmId,
    job_id: Annotated[UUID, Path()],
    payload: JobStatusUpdate,
) -> JobResponse:
    job = await PlanningService(db).set_status(farm_id, job_id, payload.status)
    return JobResponse.model_validate(job)


@router.post("/jobs/{job_id}/recompute-progress", response_model=JobResponse)
async def recompute_job_progress(
    db: DbSession, farm_id: FarmId, job_id: Annotated[UUID, Path()]
) -> JobResponse:
    job = await PlanningService(db).recompute_progress(farm_id, job_id)
    return JobResponse.model_validate(job)


# ============================================================================
# Job logs
# ============================================================================


@router.post(
    "/jobs/{job_id}/logs",
    response_model=JobLogResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_job_log(
    db: DbSession,
    farm_id: FarmId,
    job_id: Annotated[UUID, Path()],
    payload: JobLogCreate,
) -> JobLogResponse:
    log = await JobLogService(db).create(
        farm_id,
        job_id,
        payload.log_date,
        payload.acres_done,
        payload.performed_by_worker_id,
        notes=payload.notes,
        mode=payload.mode,
    )
    return JobLogResponse.model_validate(log)


@router.get("/jobs/{job_id}/logs", response_model=list[JobLogResponse])
async def list_job_logs(
    db: DbSession, farm_id: FarmId, job_id: Annotated[UUID, Path()]
) -> list[JobLogResponse]:
    logs = await JobLogService(db).list_for_job(farm_id, job_id)
    return [JobLogResponse.model_validate(log) for log in logs]


@router.patch(
    "/job-logs/{job_log_id}",
    response_model=JobLogResponse,
    responses={409: {"model": ErrorResponse}},
)
async def update_job_log(
    db: DbSession,
    farm_id: FarmId,
    job_log_id: Annotated[UUID, Path()],
    payload: JobLogUpdate,
) -> JobLogResponse:
    log = await JobLogService(db).update(
        farm_id,
        job_log_id,
        log_date=payload.log_date,
        acres_done=payload.acres_done,
        worker_id=payload.performed_by_worker_id,
        notes=payload.notes,
    )
    return JobLogResponse.model_validate(log)


@router.delete(
    "/job-logs/{job_log_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={409: {"model": ErrorResponse}},
)
async def delete_job_log(
    db: DbSession, farm_id: FarmId, job_log_id: Annotated[UUID, Path()]
) -> Response:
    await JobLogService(db).delete(farm_id, job_log_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/job-logs/{job_log_id}/submit",
    response_model=JobLogResponse,
    responses={409: {"model": ErrorResponse}},
)
async def submit_job_log(
    db: DbSession, farm_id: FarmId, job_log_id: Annotated[UUID, Path()]
) -> JobLogResponse:
    log = await JobLogService(db).submit(farm_id, job_log_id)
    return JobLogResponse.model_validate(log)


@router.post(
    "/job-logs/{job_log_id}/approve",
    response_model=JobLogResponse,
    responses={409: {"model": ErrorResponse}},
)
async def approve_job_log(
    db: DbSession, farm_id: FarmId, job_log_id: Annotated[UUID, Path()]
) -> JobLogResponse:
    log = await JobLogService(db).approve(farm_id, job_log_id)
    return JobLogResponse.model_validate(log)


@router.post(
    "/job-logs/{job_log_id}/reject",
    response_model=JobLogResponse,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def reject_job_log(
    db: DbSession,
    farm_id: FarmId,
    job_log_id: Annotated[UUID, Path()],
    payload: RejectRequest,
) -> JobLogResponse:
    log = await JobLogService(db).reject(farm_id, job_log_id, payload.reason)
    return JobLogResponse.model_validate(log)


@router.get("/approvals", response_model=list[JobLogResponse])
async def approval_queue(db: DbSession, farm_id: FarmId) -> list[JobLogResponse]:
    """Submitted logs awaiting a decision."""
    logs = await JobLogService(db).list_approval_queue(farm_id)
    return [JobLogResponse.model_validate(log) for log in logs]
