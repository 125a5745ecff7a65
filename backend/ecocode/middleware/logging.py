"""
EcoCodeAI Backend - Request Logging Middleware
================================================

What:  One access log line per HTTP request with method, path, status,
       duration, body size, request ID and client IP.
When:  Runs after RequestIDMiddleware so the request ID is available.

Levels:
    5xx or an exception escaping the route  → ERROR
    4xx, or slower than SLOW_REQUEST_MS     → WARNING
    / and /health answering < 400           → DEBUG (probes hit them constantly)
    everything else                         → INFO

What we log vs what we don't:
    Logged:     the declared body size of a submission (Content-Length)
    Not logged: request bodies (submitted code, passwords), Authorization headers
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ecocode.config import settings
from ecocode.middleware.request_id import request_id_var

logger = logging.getLogger("ecocode.access")

PROBE_PATHS = {"/", "/health"}


def access_log_level(path: str, status: int, duration_ms: float) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400 or duration_ms >= settings.slow_request_ms:
        return logging.WARNING
    if path in PROBE_PATHS:
        return logging.DEBUG
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            # Also runs when the route raised; the error handler answers 500
            self._log(request, status, (time.perf_counter() - start_time) * 1000)

    @staticmethod
    def _log(request: Request, status: int, duration_ms: float) -> None:
        path = request.url.path
        level = access_log_level(path, status, duration_ms)
        if not logger.isEnabledFor(level):
            return

        rid = request_id_var.get("")
        client_ip = request.client.host if request.client else "unknown"
        body_bytes = request.headers.get("content-length", "-")
        slow = " SLOW" if duration_ms >= settings.slow_request_ms else ""

        logger.log(
            level,
            "%s %s %d %.1fms%s body=%s [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            slow,
            body_bytes,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
