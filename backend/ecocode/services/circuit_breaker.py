"""
EcoCodeAI Backend - Circuit Breaker
=====================================

What:  Circuit breaker guarding calls to the external analysis service.
Who:   Owned by each AnalysisService instance; consulted before every call.

State Machine:
    CLOSED
        → each failure increments failure_count
        → failure_count >= threshold: OPEN

    OPEN
        → every call raises CircuitBreakerOpenError
        → after recovery_timeout seconds the next caller becomes the trial call
          and the breaker moves to HALF_OPEN

    HALF_OPEN
        → exactly one trial call is in flight; concurrent callers are
          rejected with CircuitBreakerOpenError until it reports back
        → trial succeeds: CLOSED; trial fails: OPEN with a fresh timer
        → a trial that never reports back (cancelled request) is given up
          after recovery_timeout and another caller is admitted

The breaker is only touched from the event loop thread, so the check and the
state change in can_execute() happen without an await in between.
Not shared across worker processes; each uvicorn worker keeps its own state.
"""

import logging
import time
from typing import Optional

from ecocode.exceptions import CircuitBreakerOpenError

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """Counts consecutive upstream failures and short-circuits when too many occur."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        """
        Args:
            failure_threshold: Consecutive failures before opening circuit
            recovery_timeout: Seconds to wait before admitting a trial call
        """
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None
        self._trial_started_at: Optional[float] = None

    @property
    def trial_in_flight(self) -> bool:
        return self._trial_started_at is not None

    def can_execute(self) -> bool:
        """
        Admit or reject a call.

        Returns:
            True when the call may go upstream.

        Raises:
            CircuitBreakerOpenError while OPEN, or while HALF_OPEN with a
            trial call already in flight.
        """
        if self.state == self.CLOSED:
            return True

        now = time.time()

        if self.state == self.OPEN:
            elapsed = now - (self.last_failure_time or 0)
            if elapsed < self.recovery_timeout:
                raise CircuitBreakerOpenError(
                    recovery_time=max(int(self.recovery_timeout - elapsed), 1)
                )
            logger.info("Circuit breaker HALF_OPEN after %.1fs, admitting trial call", elapsed)
            self.state = self.HALF_OPEN
            self._trial_started_at = now
            return True

        # HALF_OPEN
        if self._trial_started_at is not None:
            waited = now - self._trial_started_at
            if waited < self.recovery_timeout:
                raise CircuitBreakerOpenError(
                    recovery_time=max(int(self.recovery_timeout - waited), 1)
                )
            logger.warning("Trial call never reported back after %.1fs, admitting another", waited)
        self._trial_started_at = now
        return True

    def record_success(self) -> None:
        """Record a successful call. Resets the circuit breaker to CLOSED."""
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None
        self._trial_started_at = None

    def record_failure(self) -> None:
        """Record a failed call. May trigger CLOSED → OPEN or HALF_OPEN → OPEN."""
        self.failure_count += 1
        self.last_failure_time = time.time()
        self._trial_started_at = None

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker back to OPEN (trial call failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN
