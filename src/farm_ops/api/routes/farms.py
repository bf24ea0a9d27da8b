"""Farm and membership endpoints.

These are the only routes that do not require the X-Farm-ID header.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from farm_ops.api.dependencies import DbSession
from farm_ops.api.schemas import (
    ErrorResponse,
    FarmCreate,
    FarmResponse,
    FarmWithRole,
    MembershipCreate,
    MembershipResponse,
)
from farm_ops.services import FarmService

router = APIRouter(prefix="/farms", tags=["farms"])


@router.post("", response_model=FarmResponse, status_code=status.HTTP_201_CREATED)
async def create_farm(db: DbSession, payload: FarmCreate) -> FarmResponse:
    farm = await FarmService(db).create_farm(
        payload.name, location=payload.location, owner_ref=payload.owner_ref
    )
    return FarmResponse.model_validate(farm)


@router.get("", response_model=list[FarmWithRole])
async def list_farms_for_user(
    db: DbSession,
    user_ref: Annotated[str, Query(min_length=1)],
) -> list[FarmWithRole]:
    """Farms the user can select, with their role in each."""
    farms = await FarmService(db).list_farms_for_user(user_ref)
    return [
        FarmWithRole(
            farm_id=farm.farm_id,
            name=farm.name,
            location=farm.location,
            created_at=farm.created_at,
            role=role,
        )
        for farm, role in farms
    ]


@router.post(
    "/{farm_id}/memberships",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def add_membership(
    db: DbSession,
    farm_id: Annotated[UUID, Path()],
    payload: MembershipCreate,
) -> MembershipResponse:
    membership = await FarmService(db).add_membership(farm_id, payload.user_ref, payload.role)
    return MembershipResponse.model_validate(membership)
