"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, IntegrityError

from farm_ops.api.routes import (
    dashboard_router,
    farms_router,
    health_router,
    payroll_router,
    planning_router,
    rates_router,
    roster_router,
)
from farm_ops.config import get_settings
from farm_ops.database import dispose_db, driver_message, init_db
from farm_ops.errors import (
    ConflictError,
    FarmOpsError,
    ImmutableStateError,
    InvalidStateError,
    NotFoundError,
    PreconditionError,
    RemoteError,
    ValidationError,
)
from farm_ops.logging_setup import configure_logging

logger = logging.getLogger(__name__)

# Most specific first; FarmOpsError itself falls through to 500
ERROR_STATUS: list[tuple[type[FarmOpsError], int]] = [
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (ImmutableStateError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PreconditionError, status.HTTP_400_BAD_REQUEST),
    (RemoteError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: FarmOpsError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()
    configure_logging(settings.log_level)
    init_db()
    logger.info("Farm operations API started")
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Farm Operations API",
        description="Plans, job logs, approvals and per-acre payroll for farms",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FarmOpsError)
    async def farm_ops_exception_handler(request: Request, exc: FarmOpsError) -> JSONResponse:
        """Map domain errors to HTTP status codes."""
        code = status_for(exc)
        if code >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc)
        return JSONResponse(
            status_code=code,
            content={"detail": exc.message, "code": exc.code, "context": exc.context},
        )

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        """Constraint violations, such as two requests inserting the same key."""
        message = driver_message(exc)
        logger.warning("Conflict on %s %s: %s", request.method, request.url.path, message)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": message, "code": ConflictError.code, "context": {}},
        )

    @app.exception_handler(DBAPIError)
    async def database_exception_handler(request: Request, exc: DBAPIError) -> JSONResponse:
        """Driver and connection failures."""
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": driver_message(exc), "code": RemoteError.code, "context": {}},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
                "context": {},
            },
        )

    app.include_router(health_router)
    app.include_router(farms_router, prefix="/api/v1")
    app.include_router(roster_router, prefix="/api/v1")
    app.include_router(planning_router, prefix="/api/v1")
    app.include_router(rates_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")
    app.include_router(dashboard_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
