"""API routes."""

from farm_ops.api.routes.dashboard import router as dashboard_router
from farm_ops.api.routes.farms import router as farms_router
from farm_ops.api.routes.health import router as health_router
from farm_ops.api.routes.payroll import router as payroll_router
from farm_ops.api.routes.planning import router as planning_router
from farm_ops.api.routes.rates import router as rates_router
from farm_ops.api.routes.roster import router as roster_router

__all__ = [
    "dashboard_router",
    "farms_router",
    "health_router",
    "payroll_router",
    "planning_router",
    "rates_router",
    "roster_router",
]
