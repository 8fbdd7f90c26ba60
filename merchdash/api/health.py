"""
Liveness and readiness probes for the container orchestrator.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from merchdash.core.config import get_settings
from merchdash.core.logging import get_logger
from merchdash.database.connection import check_database_health

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


def _service_info() -> dict[str, str]:
    settings = get_settings()
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/health", summary="Process is up")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", **_service_info()}


@router.get("/live", summary="Process is responsive")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive", **_service_info()}


@router.get(
    "/ready",
    summary="Database reachable",
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Not ready"}},
)
async def readiness_check():
    """
    Report ready only when Postgres answers a single ``SELECT 1``.

    No retries here; the orchestrator polls again on its own schedule.
    """
    if not await check_database_health(max_retries=1):
        logger.warning("Readiness check failed")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "database": "unhealthy", **_service_info()},
        )

    return {"status": "ready", "database": "healthy", **_service_info()}
