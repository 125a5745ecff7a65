"""
EcoCodeAI Backend - Rate Limiting Middleware
==============================================

What:  Per-IP sliding window rate limiter with two budgets.
Why:   Each /api/analyze call costs upstream model quota; the credential
       endpoints are a password-guessing target.

Budgets:
    auth     POST /api/auth/login, /api/auth/token, /api/auth/register
             AUTH_RATE_LIMIT_REQUESTS per AUTH_RATE_LIMIT_WINDOW (10 / 5 min)
    default  every other non-exempt path
             RATE_LIMIT_REQUESTS per RATE_LIMIT_WINDOW (100 / hour)

    A request counts against exactly one budget, so a burst of failed logins
    does not lock the same client out of /api/analyze, and the reverse.

Algorithm: Sliding Window Log
    Each (budget, IP) pair keeps its request timestamps; timestamps older
    than the window are dropped on every request and the call is rejected
    once the remaining count reaches the limit.

State is in-process; with several workers each one enforces its own limit.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ecocode.config import settings
from ecocode.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

AUTH_BUDGET = "auth"
DEFAULT_BUDGET = "default"

EXEMPT_PATHS = {"/", "/health", "/docs", "/openapi.json", "/redoc"}
CREDENTIAL_PATHS = {"/api/auth/login", "/api/auth/token", "/api/auth/register"}


def budget_for(request: Request) -> Tuple[str, int, int]:
    """(budget name, max requests, window seconds) that this request counts against."""
    if request.method == "POST" and request.url.path in CREDENTIAL_PATHS:
        return AUTH_BUDGET, settings.auth_rate_limit_requests, settings.auth_rate_limit_window
    return DEFAULT_BUDGET, settings.rate_limit_requests, settings.rate_limit_window


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Liveness, health and documentation paths are never limited."""

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[Tuple[str, str], List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        budget, limit, window = budget_for(request)
        key = (budget, client_ip)

        now = time.time()
        timestamps = [ts for ts in self._requests[key] if ts > now - window]
        self._requests[key] = timestamps

        if len(timestamps) >= limit:
            exc = RateLimitExceededError(
                retry_after=int(timestamps[0] + window - now) + 1,
                context={"budget": budget},
            )
            logger.warning(
                "Rate limit (%s) exceeded for IP %s: %d requests in %ds window",
                budget,
                client_ip,
                len(timestamps),
                window,
            )
            # Raised errors would bypass the app's exception handlers from here
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        timestamps.append(now)

        self._seen += 1
        if self._seen % 1000 == 0:
            self._cleanup_idle(now)

        return await call_next(request)

    def _cleanup_idle(self, now: float) -> None:
        """Drop (budget, IP) entries whose newest request is outside the widest window."""
        horizon = now - max(settings.rate_limit_window, settings.auth_rate_limit_window)
        idle = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < horizon
        ]
        for key in idle:
            del self._requests[key]

        if idle:
            logger.debug("Cleaned up %d idle rate-limit entries", len(idle))
