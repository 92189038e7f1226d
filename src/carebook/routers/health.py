"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from carebook.dependencies import get_diagnostic_service
from carebook.services.diagnostic_service import DiagnosticService

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/api/health", summary="Health check with calendar round trip")
async def health_check(service: DiagnosticService = Depends(get_diagnostic_service)):
    """Check that the calendar credentials authenticate and can read.

    Returns 503 when the round trip fails.
    """
    check = await service.check_liveness()
    healthy = check.status == "ok"
    if not healthy:
        logger.warning(f"Health check failed: {check.message}")

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "ok" if healthy else "degraded",
            "service": "carebook",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": {"calendar": check.status},
            "message": check.message,
        },
    )


@router.get("/api/diagnose", summary="Comprehensive booking service diagnostics")
async def diagnose(service: DiagnosticService = Depends(get_diagnostic_service)) -> dict:
    """Run comprehensive diagnostics.

    Checks:
    - Google credentials
    - Caregiver configuration
    - Read access to every caregiver calendar
    - Mirror calendars, SMTP and public base URL
    """
    result = await service.run_diagnostics()
    return result.to_dict()


@router.get("/health", summary="Simple health check")
async def simple_health() -> dict:
    """Simple health check (no dependencies).

    Used for load balancer health checks.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
