"""
EcoCodeAI Backend - Abstract Analysis Service Interface
=========================================================

What:  Abstract base class for the external code-analysis providers.
How:   Concrete providers inherit from AnalysisService and implement
       analyze() and health_check(). The route never knows which one it got.
Who:   Used by POST /api/analyze and GET /health.

Implementations:
    - GeminiAnalysisService: Google Gemini via google-generativeai
    - HttpAnalysisService:   any JSON endpoint accepting {"code": "..."}
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from ecocode.config import settings
from ecocode.services.circuit_breaker import CircuitBreaker


class AnalysisService(ABC):
    """
    Contract:
        - analyze() accepts a code string and returns a JSON object (dict)
        - Implementations handle their own retry logic and error translation
        - All provider-specific errors are wrapped in AnalysisServiceError
        - Each instance owns one CircuitBreaker shared by all of its calls
    """

    #: Short provider name, reported in logs.
    name = "analysis"

    def __init__(self) -> None:
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

    @abstractmethod
    async def analyze(self, code: str) -> Dict[str, Any]:
        """
        Send code to the analysis provider and return its answer.

        Args:
            code: Non-blank source code (already validated by the route).

        Returns:
            A JSON-serializable dict. Providers that produce plain text return
            it under the "message" key.

        Raises:
            AnalysisServiceError: When the provider fails after all retries.
            CircuitBreakerOpenError: When too many consecutive failures have
                occurred and calls are being short-circuited.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the provider is reachable.

        Must not consume analysis quota. Returns True/False, never raises.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources. Called on application shutdown."""
        return None
