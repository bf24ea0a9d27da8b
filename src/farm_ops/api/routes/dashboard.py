"""Dashboard endpoint."""

from datetime import date

from fastapi import APIRouter

from farm_ops.api.dependencies import FarmId, SessionFactory
from farm_ops.api.schemas import DashboardResponse
from farm_ops.services import DashboardService

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    factory: SessionFactory,
    farm_id: FarmId,
    today: date | None = None,
) -> DashboardResponse:
    """KPIs for the selected farm; failed figures are listed in ``errors``."""
    kpis = await DashboardService(factory).load(farm_id, today)
    return DashboardResponse.model_validate(kpis)
