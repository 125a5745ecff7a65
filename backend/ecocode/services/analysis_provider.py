"""
EcoCodeAI Backend - Analysis Provider Selection
=================================================

What:  Builds the configured AnalysisService once per process.
How:   get_analysis_service() is cached, so the circuit breaker and the HTTP
       connection pool are shared by every request. Routes receive it through
       FastAPI's Depends(), which also lets tests swap in a fake via
       app.dependency_overrides.
"""

import logging
from functools import lru_cache

from ecocode.config import settings
from ecocode.services.analysis_base import AnalysisService

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_analysis_service() -> AnalysisService:
    """Return the process-wide analysis provider for settings.analysis_provider."""
    if settings.analysis_provider == "http":
        from ecocode.services.http_analysis_service import HttpAnalysisService
        return HttpAnalysisService()

    from ecocode.services.gemini_service import GeminiAnalysisService
    return GeminiAnalysisService()


async def close_analysis_service() -> None:
    """Close the cached provider, if one was ever built."""
    if get_analysis_service.cache_info().currsize:
        await get_analysis_service().aclose()
        get_analysis_service.cache_clear()
