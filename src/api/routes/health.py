"""Health check endpoints for Kubernetes probes."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from src.api.container import ServiceContainer
from src.api.deps import Container

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str
    checks: dict | None = None


async def check_database(container: ServiceContainer) -> tuple[bool, str]:
    """Check PostgreSQL connectivity."""
    if container.repository is None:
        return False, "unavailable: not configured"
    try:
        await container.repository.ping()
        return True, "healthy"
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Database health check failed: {e}")
        return False, f"unhealthy: {e!s}"


@router.get("/health/live", response_model=HealthResponse)
async def liveness(container: Container):
    """Kubernetes liveness probe.

    Returns 200 if the process is alive.
    """
    return HealthResponse(
        status="alive",
        timestamp=datetime.now(UTC).isoformat(),
        version=container.settings.app_version,
    )


@router.get("/health/ready", response_model=HealthResponse)
async def readiness(container: Container):
    """Kubernetes readiness probe.

    Returns 200 if configuration is complete and the database is reachable.
    """
    checks = {}

    if container.configuration_error:
        checks["configuration"] = container.configuration_error.message
    else:
        checks["configuration"] = "complete"

    db_ok, db_status = await check_database(container)
    checks["database"] = db_status

    if container.configuration_error or not db_ok:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "unhealthy", "checks": checks},
        )

    return HealthResponse(
        status="ready",
        timestamp=datetime.now(UTC).isoformat(),
        version=container.settings.app_version,
        checks=checks,
    )
