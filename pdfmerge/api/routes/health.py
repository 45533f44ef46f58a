# pdfmerge/api/routes/health.py
from fastapi import APIRouter, Depends
from datetime import datetime
import os

from pdfmerge.api.dependencies import get_settings_dependency
from pdfmerge.config import Settings
from pdfmerge.schemas.responses import HealthResponse, HealthStatus

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check if the service is healthy and running"
)
async def health_check(
    settings: Settings = Depends(get_settings_dependency)
) -> HealthResponse:
    """Return service health status."""
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        version=settings.app_version,
        timestamp=datetime.utcnow()
    )


@router.get(
    "/ready",
    response_model=HealthResponse,
    summary="Readiness Check"
)
async def readiness_check(
    settings: Settings = Depends(get_settings_dependency)
) -> HealthResponse:
    """Ready when the record and upload directories are writable."""
    writable = all(
        os.path.isdir(path) and os.access(path, os.W_OK)
        for path in (settings.data_dir, settings.upload_root)
    )
    return HealthResponse(
        status=HealthStatus.HEALTHY if writable else HealthStatus.DEGRADED,
        version=settings.app_version,
        timestamp=datetime.utcnow()
    )
