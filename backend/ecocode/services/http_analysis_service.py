"""
EcoCodeAI Backend - HTTP Analysis Provider
============================================

What:  AnalysisService that forwards code to an external JSON endpoint.
How:   POST {ANALYSIS_SERVICE_URL} with body {"code": "..."} through a shared
       httpx.AsyncClient. The upstream answer is relayed to the caller as-is.
Who:   Built by get_analysis_service() when ANALYSIS_PROVIDER=http.

Retry policy:
    - Transport errors (connect/read timeouts, refused connections) → retried
    - 5xx responses                                               → retried
    - 4xx responses                                               → not retried, 502
    Retries use the same tenacity settings as the Gemini provider.

Response relay:
    - JSON object            → returned unchanged
    - other JSON (list, str) → {"message": <value>}
    - non-JSON body          → {"message": <body text>}
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ecocode.config import settings
from ecocode.exceptions import AnalysisServiceError, UpstreamRejectedError
from ecocode.services.analysis_base import AnalysisService

logger = logging.getLogger(__name__)


def _is_retryable(exc: BaseException) -> bool:
    """Transport failures and upstream 5xx are worth another attempt."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


class HttpAnalysisService(AnalysisService):
    """Relays code submissions to a configurable HTTP analysis backend."""

    name = "http"

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: Override settings.analysis_service_url (used in tests).
            client: Pre-built client (tests pass one with httpx.MockTransport).
        """
        super().__init__()
        self.url = base_url or settings.analysis_service_url
        if not self.url:
            raise ValueError("ANALYSIS_SERVICE_URL must be set for the http analysis provider")
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.analysis_timeout, connect=10.0),
        )
        logger.info(
            "HttpAnalysisService initialized with url=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            self.url,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def analyze(self, code: str) -> Dict[str, Any]:
        call_id = str(uuid.uuid4())[:8]

        self.circuit_breaker.can_execute()

        logger.info("[%s] Forwarding %d chars of code to %s", call_id, len(code), self.url)

        try:
            response = await self._post_with_retry(code, call_id)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("[%s] Analysis service answered %d", call_id, status)
            if status < 500:
                # Upstream is up and answered; the request itself was refused
                self.circuit_breaker.record_success()
                raise UpstreamRejectedError(
                    upstream_status=status,
                    context={"call_id": call_id},
                ) from e
            self.circuit_breaker.record_failure()
            raise AnalysisServiceError(
                message="The code analysis service kept failing. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"call_id": call_id, "upstream_status": status},
            ) from e
        except httpx.HTTPError as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Analysis service unreachable after retries: %s",
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
        return self._relay(response)

    @retry(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _post_with_retry(self, code: str, call_id: str) -> httpx.Response:
        """One POST to the analysis service; raises on non-2xx."""
        start_time = time.time()
        response = await self._client.post(
            self.url,
            json={"code": code},
            headers={"X-Request-ID": call_id},
        )
        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "[%s] Analysis service responded %d in %.0fms",
            call_id,
            response.status_code,
            duration_ms,
        )
        response.raise_for_status()
        return response

    @staticmethod
    def _relay(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {"message": response.text}
        if isinstance(payload, dict):
            return payload
        return {"message": payload}

    async def health_check(self) -> bool:
        """Any answer below 500 from the service URL counts as reachable."""
        try:
            response = await self._client.get(self.url, timeout=5.0)
            return response.status_code < 500
        except httpx.HTTPError as e:
            logger.warning("Analysis service health check failed: %s", str(e))
            return False

    async def aclose(self) -> None:
        await self._client.aclose()
