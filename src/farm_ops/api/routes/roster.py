"""Plot, worker and team endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from farm_ops.api.dependencies import DbSession, FarmId
from farm_ops.api.schemas import (
    ErrorResponse,
    MemberAdd,
    MembershipEnd,
    PlotCreate,
    PlotResponse,
    PlotUpdate,
    TeamCreate,
    TeamMemberResponse,
    TeamResponse,
    WorkerCreate,
    WorkerPhoto,
    WorkerResponse,
    WorkerUpdate,
)
from farm_ops.services import RosterService

router = APIRouter(tags=["roster"])


# ============================================================================
# Plots
# ============================================================================


@router.post("/plots", response_model=PlotResponse, status_code=status.HTTP_201_CREATED)
async def create_plot(db: DbSession, farm_id: FarmId, payload: PlotCreate) -> PlotResponse:
    plot = await RosterService(db).create_plot(
        farm_id, payload.name, payload.size_acres, code=payload.code
    )
    return PlotResponse.model_validate(plot)


@router.get("/plots", response_model=list[PlotResponse])
async def list_plots(db: DbSession, farm_id: FarmId) -> list[PlotResponse]:
    plots = await RosterService(db).list_plots(farm_id)
    return [PlotResponse.model_validate(p) for p in plots]


@router.patch(
    "/plots/{plot_id}",
    response_model=PlotResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_plot(
    db: DbSession,
    farm_id: FarmId,
    plot_id: Annotated[UUID, Path()],
    payload: PlotUpdate,
) -> PlotResponse:
    plot = await RosterService(db).update_plot(
        farm_id, plot_id, name=payload.name, size_acres=payload.size_acres, code=payload.code
    )
    return PlotResponse.model_validate(plot)


@router.delete("/plots/{plot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plot(
    db: DbSession, farm_id: FarmId, plot_id: Annotated[UUID, Path()]
) -> Response:
    await RosterService(db).delete_plot(farm_id, plot_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Workers
# ============================================================================


@router.post("/workers", response_model=WorkerResponse, status_code=status.HTTP_201_CREATED)
async def create_worker(
    db: DbSession, farm_id: FarmId, payload: WorkerCreate
) -> WorkerResponse:
    worker = await RosterService(db).create_worker(
        farm_id, payload.full_name, phone=payload.phone, role=payload.role
    )
    return WorkerResponse.model_validate(worker)


@router.get("/workers", response_model=list[WorkerResponse])
async def list_workers(
    db: DbSession,
    farm_id: FarmId,
    active_only: Annotated[bool, Query()] = False,
) -> list[WorkerResponse]:
    workers = await RosterService(db).list_workers(farm_id, active_only=active_only)
    return [WorkerResponse.model_validate(w) for w in workers]


@router.patch(
    "/workers/{worker_id}",
    response_model=WorkerResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_worker(
    db: DbSession,
    farm_id: FarmId,
    worker_id: Annotated[UUID, Path()],
    payload: WorkerUpdate,
) -> WorkerResponse:
    worker = await RosterService(db).update_worker(
        farm_id,
        worker_id,
        full_name=payload.full_name,
        phone=payload.phone,
        role=payload.role,
    )
    return WorkerResponse.model_validate(worker)


@router.post("/workers/{worker_id}/deactivate", response_model=WorkerResponse)
async def deactivate_worker(
    db: DbSession, farm_id: FarmId, worker_id: Annotated[UUID, Path()]
) -> WorkerResponse:
    worker = await RosterService(db).set_worker_active(farm_id, worker_id, False)
    return WorkerResponse.model_validate(worker)


@router.post("/workers/{worker_id}/reactivate", response_model=WorkerResponse)
async def reactivate_worker(
    db: DbSession, farm_id: FarmId, worker_id: Annotated[UUID, Path()]
) -> WorkerResponse:
    worker = await RosterService(db).set_worker_active(farm_id, worker_id, True)
    return WorkerResponse.model_validate(worker)


@router.put("/workers/{worker_id}/photo", response_model=WorkerResponse)
async def set_worker_photo(
    db: DbSession,
    farm_id: FarmId,
    worker_id: Annotated[UUID, Path()],
    payload: WorkerPhoto,
) -> WorkerResponse:
    worker = await RosterService(db).set_photo_url(farm_id, worker_id, payload.photo_url)
    return WorkerResponse.model_validate(worker)


@router.delete(
    "/workers/{worker_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={409: {"model": ErrorResponse}},
)
async def delete_worker(
    db: DbSession, farm_id: FarmId, worker_id: Annotated[UUID, Path()]
) -> Response:
    """Delete a worker without history; others must be deactivated."""
    await RosterService(db).delete_worker(farm_id, worker_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Teams
# ============================================================================


@router.post("/teams", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(db: DbSession, farm_id: FarmId, payload: TeamCreate) -> TeamResponse:
    team = await RosterService(db).create_team(
        farm_id, payload.name, leader_worker_id=payload.leader_worker_id
    )
    return TeamResponse.model_validate(team)


@router.get("/teams", response_model=list[TeamResponse])
async def list_teams(db: DbSession, farm_id: FarmId) -> list[TeamResponse]:
    teams = await RosterService(db).list_teams(farm_id)
    return [TeamResponse.model_validate(t) for t in teams]


@router.delete("/teams/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    db: DbSession, farm_id: FarmId, team_id: Annotated[UUID, Path()]
) -> Response:
    await RosterService(db).delete_team(farm_id, team_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/teams/{team_id}/members",
    response_model=TeamMemberResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def add_team_member(
    db: DbSession,
    farm_id: FarmId,
    team_id: Annotated[UUID, Path()],
    payload: MemberAdd,
) -> TeamMemberResponse:
    membership = await RosterService(db).add_member(
        farm_id, team_id, payload.worker_id, payload.start_date
    )
    return TeamMemberResponse.model_validate(membership)


@router.get("/teams/{team_id}/members", response_model=list[TeamMemberResponse])
async def list_team_members(
    db: DbSession,
    farm_id: FarmId,
    team_id: Annotated[UUID, Path()],
    active_only: Annotated[bool, Query()] = True,
) -> list[TeamMemberResponse]:
    members = await RosterService(db).list_members(farm_id, team_id, active_only=active_only)
    return [TeamMemberResponse.model_validate(m) for m in members]


@router.post("/team-memberships/{team_membership_id}/end", response_model=TeamMemberResponse)
async def end_team_membership(
    db: DbSession,
    farm_id: FarmId,
    team_membership_id: Annotated[UUID, Path()],
    payload: MembershipEnd,
) -> TeamMemberResponse:
    membership = await RosterService(db).end_membership(
        farm_id, team_membership_id, payload.end_date
    )
    return TeamMemberResponse.model_validate(membership)
