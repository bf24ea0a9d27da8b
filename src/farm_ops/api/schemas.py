"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Body of every domain error response."""

    detail: str
    code: str
    context: dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Farms
# ============================================================================


class FarmCreate(BaseModel):
    name: str
    location: str | None = None
    owner_ref: str | None = None


class FarmResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    farm_id: UUID
    name: str
    location: str | None = None
    created_at: datetime


class FarmWithRole(FarmResponse):
    role: str


class MembershipCreate(BaseModel):
    user_ref: str
    role: Literal["owner", "manager", "supervisor", "viewer"] = "manager"


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    farm_membership_id: UUID
    farm_id: UUID
    user_ref: str
    role: str
    is_active: bool


# ============================================================================
# Roster
# ============================================================================


class PlotCreate(BaseModel):
    name: str
    size_acres: Decimal
    code: str | None = None


class PlotUpdate(BaseModel):
    name: str | None = None
    size_acres: Decimal | None = None
    code: str | None = None


class PlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    plot_id: UUID
    name: str
    code: str | None = None
    size_acres: Decimal


class WorkerCreate(BaseModel):
    full_name: str
    phone: str | None = None
    role: str | None = None


class WorkerUpdate(BaseModel):
    full_name: str | None = None
    phone: str | None = None
    role: str | None = None


class WorkerPhoto(BaseModel):
    photo_url: str | None = None


class WorkerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    worker_id: UUID
    full_name: str
    phone: str | None = None
    role: str | None = None
    active: bool
    photo_url: str | None = None


class TeamCreate(BaseModel):
    name: str
    leader_worker_id: UUID | None = None


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    team_id: UUID
    name: str
    leader_worker_id: UUID | None = None


class MemberAdd(BaseModel):
    worker_id: UUID
    start_date: date


class MembershipEnd(BaseModel):
    end_date: date


class TeamMemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    team_membership_id: UUID
    team_id: UUID
    worker_id: UUID
    start_date: date
    end_date: date | None = None


# ============================================================================
# Planning
# ============================================================================


class PlanCreate(BaseModel):
    title: str
    date_start: date
    date_end: date
    frequency: str = "weekly"


class PlanUpdate(BaseModel):
    title: str | None = None
    date_start: date | None = None
    date_end: date | None = None
    frequency: str | None = None


class PlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    plan_id: UUID
    title: str
    frequency: str
    date_start: date
    date_end: date


class JobCreate(BaseModel):
    plan_id: UUID | None = None
    team_id: UUID | None = None
    plot_id: UUID | None = None
    job_type: str
    allotted_acres: Decimal
    start_date: date
    due_date: date
    crop: str | None = None
    activity: str | None = None


class JobStatusUpdate(BaseModel):
    status: str


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job_id: UUID
    plan_id: UUID
    team_id: UUID
    plot_id: UUID
    job_type: str
    crop: str | None = None
    activity: str | None = None
    label: str
    allotted_acres: Decimal
    start_date: date
    due_date: date
    status: str
    percent_complete: Decimal


class JobLogCreate(BaseModel):
    log_date: date
    acres_done: Decimal
    performed_by_worker_id: UUID | None = None
    notes: str | None = None
    mode: Literal["draft", "submitted"] = "submitted"


class JobLogUpdate(BaseModel):
    log_date: date | None = None
    acres_done: Decimal | None = None
    performed_by_worker_id: UUID | None = None
    notes: str | None = None


class RejectRequest(BaseModel):
    reason: str = ""


class JobLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job_log_id: UUID
    job_id: UUID
    log_date: date
    acres_done: Decimal
    notes: str | None = None
    performed_by_worker_id: UUID
    status: str
    rejection_reason: str | None = None
    approved_at: datetime | None = None
    created_at: datetime


# ============================================================================
# Rates
# ============================================================================


class JobTypeCreate(BaseModel):
    name: str


class JobTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job_type_id: UUID
    name: str
    is_active: bool


class RateCardCreate(BaseModel):
    name: str
    currency: str | None = None
    effective_from: date | None = None


class RateCardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rate_card_id: UUID
    name: str
    currency: str
    effective_from: date | None = None
    is_active: bool


class RatesUpsert(BaseModel):
    """Per-acre amounts keyed by job type."""

    rates: dict[str, Decimal]
    crop: str | None = None


class RateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rate_id: UUID
    job_type: str
    crop: str | None = None
    pay_type: str
    rate_amount: Decimal


# ============================================================================
# Payroll
# ============================================================================


class PayPeriodCreate(BaseModel):
    start_date: date
    end_date: date
    period_type: str = "weekly"


class PayPeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pay_period_id: UUID
    period_type: str
    start_date: date
    end_date: date
    status: str
    last_run_at: datetime | None = None
    last_rate_card_id: UUID | None = None


class AdjustmentCreate(BaseModel):
    worker_id: UUID | None = None
    adj_type: str
    amount: Decimal
    reason: str | None = None
    pay_period_id: UUID | None = None


class AdjustmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    adjustment_id: UUID
    worker_id: UUID
    pay_period_id: UUID | None = None
    adj_type: str
    amount: Decimal
    reason: str | None = None


class PayrollRunRequest(BaseModel):
    rate_card_id: UUID | None = None


class PieceItemResponse(BaseModel):
    job_log_id: UUID
    job_type: str
    crop: str | None = None
    log_date: date
    acres_done: Decimal
    rate: Decimal
    amount: Decimal


class AdjustmentItemResponse(BaseModel):
    adjustment_id: UUID
    adj_type: str
    amount: Decimal
    reason: str | None = None


class PayrollBreakdown(BaseModel):
    """How a line's totals were reached.

    Quantities and money are decimal strings (``"60000.00"``), matching
    how they are stored, so no value passes through a float.
    """

    piece_items: list[PieceItemResponse] = Field(default_factory=list)
    adjustments: list[AdjustmentItemResponse] = Field(default_factory=list)


class PayrollLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payroll_line_id: UUID
    worker_id: UUID
    worker_name: str | None = None
    rate_card_id: UUID
    calculation_id: UUID
    gross_pay: Decimal
    deductions: Decimal
    bonuses: Decimal
    net_pay: Decimal
    breakdown: PayrollBreakdown


class PayrollRunResponse(BaseModel):
    pay_period_id: UUID
    rate_card_id: UUID
    worker_count: int
    total_gross: Decimal
    total_deductions: Decimal
    total_bonuses: Decimal
    total_net: Decimal
    floating_adjustments: int
    unapplied_adjustments: int
    warnings: list[str] = Field(default_factory=list)


# ============================================================================
# Dashboard
# ============================================================================


class JobSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job_id: UUID
    label: str
    due_date: date
    percent: int
    team_name: str | None = None
    plot_name: str | None = None


class DashboardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    submitted_count: int
    approved_acres: Decimal
    overdue_jobs: list[JobSummaryResponse]
    due_soon_jobs: list[JobSummaryResponse]
    errors: dict[str, str]
