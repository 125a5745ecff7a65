"""
EcoCodeAI Backend - Health Check Route
========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the database (SELECT 1) and the analysis provider, then
       aggregates a status.

Status levels:
    - healthy:   all dependencies operational
    - degraded:  analysis service down or circuit open (auth still works)
    - unhealthy: database unreachable (nothing works)
"""

import logging
import time

from fastapi import APIRouter, Depends

from ecocode import __version__
from ecocode.database import check_connection
from ecocode.schemas.common import HealthResponse
from ecocode.services.analysis_base import AnalysisService
from ecocode.services.analysis_provider import get_analysis_service
from ecocode.services.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns the health status of the backend service and its dependencies "
        "(database and code analysis service)."
    ),
)
async def health_check(
    analysis_service: AnalysisService = Depends(get_analysis_service),
) -> HealthResponse:
    overall = "healthy"

    db_status = "connected"
    if not await check_connection():
        db_status = "disconnected"
        overall = "unhealthy"

    analysis_status = "available"
    if analysis_service.circuit_breaker.state == CircuitBreaker.OPEN:
        analysis_status = "circuit_open"
    elif not await analysis_service.health_check():
        analysis_status = "unavailable"

    if analysis_status != "available" and overall != "unhealthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        analysis_service=analysis_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
