"""Pay period, adjustment and payroll run endpoints."""

from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from farm_ops.api.dependencies import DbSession, FarmId
from farm_ops.api.schemas import (
    AdjustmentCreate,
    AdjustmentResponse,
    ErrorResponse,
    PayPeriodCreate,
    PayPeriodResponse,
    PayrollLineResponse,
    PayrollRunRequest,
    PayrollRunResponse,
)
from farm_ops.services import ExportService, PayrollService

router = APIRouter(tags=["payroll"])


@router.post(
    "/pay-periods", response_model=PayPeriodResponse, status_code=status.HTTP_201_CREATED
)
async def create_pay_period(
    db: DbSession, farm_id: FarmId, payload: PayPeriodCreate
) -> PayPeriodResponse:
    period = await PayrollService(db).create_pay_period(
        farm_id, payload.start_date, payload.end_date, period_type=payload.period_type
    )
    return PayPeriodResponse.model_validate(period)


@router.get("/pay-periods", response_model=list[PayPeriodResponse])
async def list_pay_periods(db: DbSession, farm_id: FarmId) -> list[PayPeriodResponse]:
    periods = await PayrollService(db).list_pay_periods(farm_id)
    return [PayPeriodResponse.model_validate(p) for p in periods]


@router.post(
    "/adjustments", response_model=AdjustmentResponse, status_code=status.HTTP_201_CREATED
)
async def add_adjustment(
    db: DbSession, farm_id: FarmId, payload: AdjustmentCreate
) -> AdjustmentResponse:
    adjustment = await PayrollService(db).add_adjustment(
        farm_id,
        payload.worker_id,
        payload.adj_type,
        payload.amount,
        reason=payload.reason,
        pay_period_id=payload.pay_period_id,
    )
    return AdjustmentResponse.model_validate(adjustment)


@router.get("/adjustments", response_model=list[AdjustmentResponse])
async def list_adjustments(
    db: DbSession,
    farm_id: FarmId,
    pay_period_id: UUID | None = None,
) -> list[AdjustmentResponse]:
    adjustments = await PayrollService(db).list_adjustments(farm_id, pay_period_id)
    return [AdjustmentResponse.model_validate(a) for a in adjustments]


@router.post(
    "/pay-periods/{pay_period_id}/run",
    response_model=PayrollRunResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def run_payroll(
    db: DbSession,
    farm_id: FarmId,
    pay_period_id: Annotated[UUID, Path()],
    payload: PayrollRunRequest,
) -> PayrollRunResponse:
    """Compute payroll for the period and replace its lines."""
    result = await PayrollService(db).run_payroll(farm_id, pay_period_id, payload.rate_card_id)
    return PayrollRunResponse(
        pay_period_id=result.pay_period_id,
        rate_card_id=result.rate_card_id,
        worker_count=result.worker_count,
        total_gross=result.total_gross,
        total_deductions=result.total_deductions,
        total_bonuses=result.total_bonuses,
        total_net=result.total_net,
        floating_adjustments=result.floating_adjustments,
        unapplied_adjustments=result.unapplied_adjustments,
        warnings=result.warnings,
    )


@router.get(
    "/pay-periods/{pay_period_id}/lines",
    response_model=list[PayrollLineResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_payroll_lines(
    db: DbSession, farm_id: FarmId, pay_period_id: Annotated[UUID, Path()]
) -> list[PayrollLineResponse]:
    lines = await PayrollService(db).list_payroll_lines(farm_id, pay_period_id)
    return [PayrollLineResponse.model_validate(line) for line in lines]


@router.get(
    "/pay-periods/{pay_period_id}/export",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}, 404: {"model": ErrorResponse}},
)
async def export_payroll(
    db: DbSession,
    farm_id: FarmId,
    pay_period_id: Annotated[UUID, Path()],
    variant: Annotated[Literal["summary", "breakdown"], Query()] = "summary",
) -> Response:
    """Download the period's payroll as CSV."""
    content = await ExportService(db).export_payroll(farm_id, pay_period_id, variant)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=payroll_{variant}.csv"},
    )
