"""Liveness, readiness and database health checks."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import func, select, text
from sqlalchemy.exc import DBAPIError

from farm_ops.api.dependencies import DbSession
from farm_ops.config import get_settings
from farm_ops.models import Farm

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
    engine_version: str


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """Report API status, database reachability and the payroll engine version."""
    database = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except DBAPIError as exc:
        logger.warning("Database health check failed: %s", exc)
        await db.rollback()
        database = "unhealthy"

    return HealthResponse(
        status="healthy" if database == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=database,
        engine_version=get_settings().engine_version,
    )


@router.get("/ready")
async def readiness_check(db: DbSession) -> JSONResponse:
    """Ready once the farm tables exist; 503 before ``init-db`` has run."""
    try:
        farms = await db.scalar(select(func.count()).select_from(Farm))
    except DBAPIError as exc:
        logger.warning("Readiness check failed: %s", exc)
        await db.rollback()
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready"},
        )
    return JSONResponse(content={"status": "ready", "farms": farms})


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
