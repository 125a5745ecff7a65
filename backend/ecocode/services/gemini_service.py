"""
EcoCodeAI Backend - Google Gemini Analysis Provider
=====================================================

What:  AnalysisService implementation backed by Google Gemini.
How:   Sends a review prompt plus the submitted code to Gemini, returns the
       model's text as {"message": ...}. Calls are wrapped in a tenacity retry
       (exponential backoff with jitter) and the shared circuit breaker.
Who:   Built by get_analysis_service() when ANALYSIS_PROVIDER=gemini (default).

Error Handling Chain:
    API call fails → tenacity retries (default: 3 attempts with backoff)
    → All retries fail → record circuit breaker failure → AnalysisServiceError
    → Threshold reached → future calls rejected instantly (CircuitBreakerOpenError)
"""

import asyncio
import logging
import time
import uuid
from typing import Any, Dict, List

import google.generativeai as genai
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ecocode.config import settings
from ecocode.exceptions import AnalysisServiceError, CircuitBreakerOpenError
from ecocode.services.analysis_base import AnalysisService

logger = logging.getLogger(__name__)


def _list_model_names() -> List[str]:
    return [m.name for m in genai.list_models()]


class GeminiAnalysisService(AnalysisService):
    """Forwards code to a Gemini model and relays the generated report."""

    name = "gemini"

    ANALYZE_PROMPT = """You are a senior software engineer reviewing code for energy efficiency.
Read the code below and write a short report with these sections:

1. Summary: what the code does, in one or two sentences.
2. Hotspots: loops, allocations, I/O or network calls likely to dominate CPU time or memory.
3. Suggestions: concrete changes that reduce work done per run, with small code snippets.
4. Footprint: a qualitative estimate (low / medium / high) of the runtime energy cost
   and the main reason for it.

Reply in plain text. Do not repeat the input code in full.

Code:
"""

    def __init__(self):
        super().__init__()
        # The SDK keeps auth in module-level state
        if settings.gemini_api_key and settings.gemini_api_key != "your_gemini_api_key_here":
            genai.configure(api_key=settings.gemini_api_key)

        self.model = genai.GenerativeModel(settings.gemini_model)

        logger.info(
            "GeminiAnalysisService initialized with model=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            settings.gemini_model,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def analyze(self, code: str) -> Dict[str, Any]:
        """
        Flow:
            1. Check circuit breaker → may raise CircuitBreakerOpenError
            2. Call Gemini with retry logic
            3. Record success/failure in circuit breaker
            4. Return {"message": <report text>}
        """
        call_id = str(uuid.uuid4())[:8]

        self.circuit_breaker.can_execute()

        logger.info("[%s] Starting Gemini analysis (%d chars of code)", call_id, len(code))

        try:
            text = await self._call_gemini_with_retry(code, call_id)
        except CircuitBreakerOpenError:
            raise
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Gemini analysis failed after retries: %s",
                call_id,
                str(e),
            )
            raise AnalysisServiceError(
                message="Code analysis failed after multiple attempts. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={
                    "call_id": call_id,
                    "attempts": settings.retry_max_attempts,
                    "error_type": type(e).__name__,
                },
            ) from e

        self.circuit_breaker.record_success()
        return {"message": text}

    @retry(
        # The SDK raises assorted exception types for API errors
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_gemini_with_retry(self, code: str, call_id: str) -> str:
        """Single Gemini request; retried as a whole by tenacity."""
        start_time = time.time()

        try:
            response = await self.model.generate_content_async(
                [self.ANALYZE_PROMPT, code],
                request_options={"timeout": settings.analysis_timeout},
            )
            duration_ms = (time.time() - start_time) * 1000
            text = response.text.strip() if response.text else ""

            logger.info(
                "[%s] Gemini analysis completed in %.0fms, %d chars returned",
                call_id,
                duration_ms,
                len(text),
            )
            return text

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Gemini API call failed after %.0fms: %s",
                call_id,
                duration_ms,
                str(e),
            )
            raise

    async def health_check(self) -> bool:
        """Lists models (no token cost) to verify the key and connectivity."""
        try:
            # list_models() is a blocking SDK call
            model_names = await asyncio.to_thread(_list_model_names)
            target = f"models/{settings.gemini_model}"
            if target not in model_names:
                logger.warning("Configured model %s not found in available models", target)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False
