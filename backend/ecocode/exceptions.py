"""
EcoCodeAI Backend - Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for the different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching status code.
Who:   Raised by services and middleware; caught by global handlers.

Exception Hierarchy:
    EcoCodeError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── AnalysisServiceError     → 503 Service Unavailable (retry later)
    ├── CircuitBreakerOpenError  → 503 Service Unavailable (circuit open)
    ├── DatabaseError            → 500 Internal Server Error
    └── RateLimitExceededError   → 429 Too Many Requests
"""

from typing import Any, Dict, Optional


class EcoCodeError(Exception):
    """
    Base exception for all EcoCodeAI application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where the handler allows)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(EcoCodeError):
    """
    Raised when client input fails a business rule.

    When:    Blank code submission, code over the size limit.
    HTTP:    400 Bad Request

    Schema-level problems (missing fields, wrong types) are still answered
    by FastAPI with 422.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(EcoCodeError):
    """
    Raised when credentials or a bearer token cannot be verified.

    When:    Wrong username/password, missing, malformed or expired token,
             token for a user that no longer exists.
    HTTP:    401 Unauthorized (with `WWW-Authenticate: Bearer`)

    The message never says which half of a credential pair was wrong.
    """

    def __init__(
        self,
        message: str = "Could not validate credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(EcoCodeError):
    """Raised when a requested resource does not exist. HTTP 404."""

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(EcoCodeError):
    """
    Raised when a write would violate a uniqueness rule.

    When:    Registering a username that is already taken.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The resource already exists",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AnalysisServiceError(EcoCodeError):
    """
    Raised when the external analysis service fails after all retries.

    When:    Upstream timeouts, connection failures, or 5xx after retries are
             exhausted.
    HTTP:    503 Service Unavailable

    `retry_after` (seconds) is sent back as a Retry-After header when known.
    """

    def __init__(
        self,
        message: str = "The code analysis service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class UpstreamRejectedError(AnalysisServiceError):
    """
    Raised when the analysis service is reachable but answers 4xx.

    The service is healthy and retrying will not help, so this does not
    count toward the circuit breaker.
    HTTP:    502 Bad Gateway (upstream status kept in details)
    """

    def __init__(
        self,
        upstream_status: int,
        message: str = "The code analysis service rejected the request.",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["upstream_status"] = upstream_status
        super().__init__(message=message, context=ctx)
        self.upstream_status = upstream_status


class CircuitBreakerOpenError(EcoCodeError):
    """
    Raised when the circuit breaker around the analysis service is OPEN.

    State machine:
        CLOSED → failures increment counter
        → threshold reached → OPEN (reject calls for recovery_time seconds)
        → timeout elapsed → HALF_OPEN (allow one test call)
        → test succeeds → CLOSED; test fails → OPEN again
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Code analysis is temporarily unavailable due to repeated failures. "
            f"The service will automatically retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class DatabaseError(EcoCodeError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; SQL and constraint
    details are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(EcoCodeError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with Retry-After header.
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
