"""Health check router."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import Settings
from ..core.database import get_db
from ..core.dependencies import get_app_settings
from ..core.observability import SERVICE_NAME
from ..schemas.health import HealthResponse, HealthStatus, ReadinessResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

SETTINGS_DEPENDENCY = Depends(get_app_settings)
DB_DEPENDENCY = Depends(get_db)


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Health Check",
    description="Check if the service is healthy and responsive",
    response_model=HealthResponse,
)
async def health_check(settings: Settings = SETTINGS_DEPENDENCY) -> JSONResponse:
    """
    Liveness endpoint.

    Returns current service status and timestamp.
    """
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY,
        service=SERVICE_NAME,
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc)
    )

    logger.debug(
        "Health check requested",
        extra={
            "status": response_data.status,
            "timestamp": response_data.timestamp.isoformat()
        }
    )

    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )


@router.get(
    "/ready",
    summary="Readiness Check",
    description="Check if the service can reach its database",
    response_model=ReadinessResponse,
)
async def readiness_check(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """
    Readiness endpoint that verifies the database answers a trivial query.

    Responds 503 while the database is unreachable.
    """
    checks = {}
    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        logger.warning("Readiness check failed", extra={"error": str(e)})
        checks["database"] = "unavailable"

    ready = all(value == "ok" for value in checks.values())
    response_data = ReadinessResponse(
        status=HealthStatus.READY if ready else HealthStatus.DEGRADED,
        checks=checks
    )

    return JSONResponse(
        status_code=200 if ready else 503,
        content=response_data.model_dump(mode="json")
    )


@router.get(
    "/info",
    tags=["Info"],
    summary="Service Information",
    description="Get detailed information about the service",
    response_model=dict,
)
async def service_info(settings: Settings = SETTINGS_DEPENDENCY):
    """
    Service information endpoint.

    Returns:
        dict: Detailed service information
    """
    return {
        "service": SERVICE_NAME,
        "version": "1.0.0",
        "description": "Multi-tenant venue booking API with conflict-free scheduling",
        "environment": settings.environment,
        "debug": settings.debug,
        "features": {
            "authentication": True,
            "tracing": True,
            "problem_details": True,
        },
        "endpoints": {
            "health": "/health",
            "readiness": "/ready",
            "metrics": "/metrics",
            "bookings": "/v1/bookings",
            "venues": "/v1/venues",
            "docs": "/docs" if settings.debug else None,
        },
    }
