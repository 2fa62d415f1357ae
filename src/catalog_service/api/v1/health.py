"""Health check endpoints."""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text

from catalog_service import __version__
from catalog_service.config import Settings, get_settings
from catalog_service.infrastructure.database.connection import get_session_factory
from catalog_service.infrastructure.redis import CacheService, get_redis_client

logger = structlog.get_logger()

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    ok: bool
    status: str
    version: str
    environment: str
    timestamp: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    ok: bool
    checks: dict[str, bool]


async def database_ready() -> bool:
    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("Database readiness check failed", error=str(e))
        return False


async def redis_ready() -> bool:
    return await CacheService(await get_redis_client()).health_check()


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Basic health check endpoint.

    Returns the service status and version information.
    """
    return HealthResponse(
        ok=True,
        status="healthy",
        version=__version__,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(
    postgres: bool = Depends(database_ready),
    redis: bool = Depends(redis_ready),
) -> ReadinessResponse:
    """
    Readiness check endpoint.

    PostgreSQL is required; Redis only backs the embedding cache and is
    reported without affecting readiness.
    """
    return ReadinessResponse(ok=postgres, checks={"postgres": postgres, "redis": redis})


@router.get("/health/live")
async def liveness_check() -> dict[str, bool | str]:
    """Returns 200 while the process is running."""
    return {"ok": True, "status": "alive"}
