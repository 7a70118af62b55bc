"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from doorstep.config import settings
from doorstep.core.redis_client import check_redis_connection
from doorstep.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Health of the service and its backing stores."""

    database: str
    redis: str
    payments: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Liveness probe."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Readiness probe with database, Redis and payment configuration status.

    Redis only backs the rate limiter and the doctor directory cache, so a
    Redis outage reports ``degraded`` rather than failing requests.
    """
    db_healthy = await check_database_connection()
    redis_healthy = await check_redis_connection()
    payments_configured = not settings.missing_payment_settings()

    return DetailedHealthResponse(
        status="healthy" if db_healthy and redis_healthy and payments_configured else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        redis="healthy" if redis_healthy else "unhealthy",
        payments="configured" if payments_configured else "not_configured",
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    return {"message": "pong"}
