"""Job type and rate card endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from farm_ops.api.dependencies import DbSession, FarmId
from farm_ops.api.schemas import (
    ErrorResponse,
    JobTypeCreate,
    JobTypeResponse,
    RateCardCreate,
    RateCardResponse,
    RateResponse,
    RatesUpsert,
)
from farm_ops.services import RateCardService

router = APIRouter(tags=["rates"])


@router.post("/job-types", response_model=JobTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_job_type(
    db: DbSession, farm_id: FarmId, payload: JobTypeCreate
) -> JobTypeResponse:
    job_type = await RateCardService(db).create_job_type(farm_id, payload.name)
    return JobTypeResponse.model_validate(job_type)


@router.get("/job-types", response_model=list[JobTypeResponse])
async def list_job_types(
    db: DbSession,
    farm_id: FarmId,
    active_only: Annotated[bool, Query()] = True,
) -> list[JobTypeResponse]:
    job_types = await RateCardService(db).list_job_types(farm_id, active_only=active_only)
    return [JobTypeResponse.model_validate(jt) for jt in job_types]


@router.post("/job-types/{job_type_id}/deactivate", response_model=JobTypeResponse)
async def deactivate_job_type(
    db: DbSession, farm_id: FarmId, job_type_id: Annotated[UUID, Path()]
) -> JobTypeResponse:
    job_type = await RateCardService(db).deactivate_job_type(farm_id, job_type_id)
    return JobTypeResponse.model_validate(job_type)


@router.post("/rate-cards", response_model=RateCardResponse, status_code=status.HTTP_201_CREATED)
async def create_rate_card(
    db: DbSession, farm_id: FarmId, payload: RateCardCreate
) -> RateCardResponse:
    card = await RateCardService(db).create_rate_card(
        farm_id, payload.name, currency=payload.currency, effective_from=payload.effective_from
    )
    return RateCardResponse.model_validate(card)


@router.get("/rate-cards", response_model=list[RateCardResponse])
async def list_rate_cards(db: DbSession, farm_id: FarmId) -> list[RateCardResponse]:
    cards = await RateCardService(db).list_rate_cards(farm_id)
    return [RateCardResponse.model_validate(c) for c in cards]


@router.get(
    "/rate-cards/active",
    response_model=RateCardResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_active_rate_card(db: DbSession, farm_id: FarmId) -> RateCardResponse:
    card = await RateCardService(db).get_active_rate_card(farm_id)
    if card is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active rate card",
        )
    return RateCardResponse.model_validate(card)


@router.post(
    "/rate-cards/{rate_card_id}/activate",
    response_model=RateCardResponse,
    responses={404: {"model": ErrorResponse}},
)
async def activate_rate_card(
    db: DbSession, farm_id: FarmId, rate_card_id: Annotated[UUID, Path()]
) -> RateCardResponse:
    card = await RateCardService(db).activate_rate_card(farm_id, rate_card_id)
    return RateCardResponse.model_validate(card)


@router.put(
    "/rate-cards/{rate_card_id}/rates",
    response_model=list[RateResponse],
    responses={422: {"model": ErrorResponse}},
)
async def upsert_rates(
    db: DbSession,
    farm_id: FarmId,
    rate_card_id: Annotated[UUID, Path()],
    payload: RatesUpsert,
) -> list[RateResponse]:
    rates = await RateCardService(db).upsert_rates(
        farm_id, rate_card_id, payload.rates, crop=payload.crop
    )
    return [RateResponse.model_validate(r) for r in rates]


@router.get("/rate-cards/{rate_card_id}/rates", response_model=list[RateResponse])
async def list_rates(
    db: DbSession, farm_id: FarmId, rate_card_id: Annotated[UUID, Path()]
) -> list[RateResponse]:
    rates = await RateCardService(db).list_rates(farm_id, rate_card_id)
    return [RateResponse.model_validate(r) for r in rates]
