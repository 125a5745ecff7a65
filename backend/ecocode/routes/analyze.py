"""
EcoCodeAI Backend - Code Analysis Route
=========================================

What:  POST /api/analyze forwards submitted code to the analysis service and
       relays its JSON answer unchanged.

Request Flow:
    1. Client sends {"code": "..."}
    2. Blank or oversized code is rejected with 400
    3. If ANALYSIS_REQUIRES_AUTH is on, a bearer token is required (401 otherwise)
    4. The configured AnalysisService is called (retry + circuit breaker inside)
    5. Its response body goes back to the client as-is

Error responses (handled by global exception handlers):
    HTTP 400: blank or oversized code (ValidationError)
    HTTP 401: missing/invalid token when auth is required (AuthenticationError)
    HTTP 503: upstream failure or open circuit
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from ecocode.config import settings
from ecocode.exceptions import ValidationError
from ecocode.middleware.auth import require_analysis_user
from ecocode.models.user import User
from ecocode.schemas.analysis import AnalysisMessage, AnalyzeRequest
from ecocode.schemas.common import ErrorResponse
from ecocode.services.analysis_base import AnalysisService
from ecocode.services.analysis_provider import get_analysis_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Analysis"])


def validate_code(code: str) -> str:
    """Reject empty submissions and anything over max_code_length characters."""
    if not code or not code.strip():
        raise ValidationError(message="Please enter some code to analyze.", field="code")
    if len(code) > settings.max_code_length:
        raise ValidationError(
            message=(
                f"Code is too long ({len(code)} characters). "
                f"The limit is {settings.max_code_length} characters."
            ),
            field="code",
            context={"length": len(code), "max_length": settings.max_code_length},
        )
    return code


@router.post(
    "/analyze",
    responses={
        200: {"description": "Analysis result from the analysis service", "model": AnalysisMessage},
        400: {"description": "Blank or oversized code", "model": ErrorResponse},
        401: {"description": "Authentication required", "model": ErrorResponse},
        503: {"description": "Analysis service unavailable", "model": ErrorResponse},
    },
    summary="Analyze a code snippet",
)
async def analyze_code(
    body: AnalyzeRequest,
    user: Optional[User] = Depends(require_analysis_user),
    analysis_service: AnalysisService = Depends(get_analysis_service),
) -> Dict[str, Any]:
    code = validate_code(body.code)

    logger.info(
        "Analysis requested: %d chars, provider=%s, user=%s",
        len(code),
        analysis_service.name,
        user.username if user else "anonymous",
    )

    return await analysis_service.analyze(code)
