"""
EcoCodeAI Backend - FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() returns a configured FastAPI instance; `app` is the
       module-level instance uvicorn serves (uvicorn ecocode.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Rate Limit  │→│ Req ID   │→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌────────┐ ┌──────────┐ ┌───────────┐ ┌─────────┐  │
    │  │ GET /  │ │ /health  │ │ /api/auth │ │/analyze │  │
    │  └────────┘ └──────────┘ └───────────┘ └─────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  Validation→400 │ Auth→401 │ Conflict→409 │         │
    │  Analysis→503 │ Upstream 4xx→502 │ other→500        │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → settings validation → create tables
    Shutdown: close analysis client → dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from ecocode import __version__
from ecocode.config import settings
from ecocode.database import dispose_engine, init_models
from ecocode.exceptions import (
    AnalysisServiceError,
    AuthenticationError,
    CircuitBreakerOpenError,
    ConflictError,
    DatabaseError,
    EcoCodeError,
    NotFoundError,
    RateLimitExceededError,
    UpstreamRejectedError,
    ValidationError,
)
from ecocode.middleware.logging import RequestLoggingMiddleware
from ecocode.middleware.rate_limit import RateLimitMiddleware
from ecocode.middleware.request_id import RequestIDMiddleware, request_id_var
from ecocode.routes import analyze, auth, health, root
from ecocode.services.analysis_provider import close_analysis_service

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again or contact support."


def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    # These log every operation at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup before the yield, shutdown after it."""
    setup_logging()
    logger.info("=" * 60)
    logger.info("EcoCodeAI Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: / and /health still answer and point at the problem
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    if settings.db_create_tables:
        try:
            await init_models()
        except Exception as e:
            logger.error("Could not create database tables: %s", str(e))

    logger.info("Analysis provider: %s", settings.analysis_provider)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("EcoCodeAI Backend shutting down...")
    await close_analysis_service()
    await dispose_engine()
    logger.info("Shutdown complete.")


def _error_body(error: str, message: str, rid: str, details=None) -> dict:
    body = {"error": error, "message": message, "request_id": rid}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and the shared error envelope.

    Handler hierarchy:
        ValidationError         → 400
        AuthenticationError     → 401 (WWW-Authenticate: Bearer)
        NotFoundError           → 404
        ConflictError           → 409
        RateLimitExceededError  → 429
        UpstreamRejectedError   → 502 (analysis service answered 4xx)
        AnalysisServiceError    → 503
        CircuitBreakerOpenError → 503
        DatabaseError           → 500 (generic message)
        EcoCodeError (base)     → 500
        Exception (fallback)    → 500 (fixed message, stack trace logged)
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, rid, exc.context),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        rid = request_id_var.get("")
        logger.info("[%s] Authentication failed: %s %s", rid, exc.message, exc.context)
        # Token failure reasons stay server-side
        return JSONResponse(
            status_code=401,
            content=_error_body("unauthorized", exc.message, rid),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message, rid),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=409,
            content=_error_body("conflict", exc.message, rid, exc.context),
        )

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=429,
            content=_error_body("rate_limit_exceeded", exc.message, rid, exc.context),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        rid = request_id_var.get("")
        logger.warning("[%s] Circuit breaker open: %s", rid, exc.message)
        return JSONResponse(
            status_code=503,
            content=_error_body(
                "service_unavailable", exc.message, rid, {"recovery_time": exc.recovery_time}
            ),
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(UpstreamRejectedError)
    async def handle_upstream_rejected(request: Request, exc: UpstreamRejectedError):
        rid = request_id_var.get("")
        logger.warning("[%s] Analysis service rejected request: %s", rid, exc.context)
        return JSONResponse(
            status_code=502,
            content=_error_body(
                "bad_gateway", exc.message, rid, {"upstream_status": exc.upstream_status}
            ),
        )

    @app.exception_handler(AnalysisServiceError)
    async def handle_analysis_error(request: Request, exc: AnalysisServiceError):
        rid = request_id_var.get("")
        logger.error("[%s] Analysis service error: %s | Context: %s", rid, exc.message, exc.context)
        headers = {}
        if exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)
        details = {"retry_after": exc.retry_after} if exc.retry_after else None
        return JSONResponse(
            status_code=503,
            content=_error_body("analysis_service_error", exc.message, rid, details),
            headers=headers,
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "server_error", "An internal error occurred. Please try again later.", rid
            ),
        )

    @app.exception_handler(EcoCodeError)
    async def handle_app_error(request: Request, exc: EcoCodeError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc.message, rid),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: fixed 500 body, stack trace logged server-side only."""
        rid = request_id_var.get("")
        logger.error(
            "[%s] Unexpected error: %s",
            rid,
            str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("internal_server_error", GENERIC_ERROR_MESSAGE, rid),
        )


def create_app() -> FastAPI:
    """Assemble middleware, exception handlers and routers into a FastAPI app."""
    app = FastAPI(
        title="EcoCodeAI API",
        description=(
            "Submit source code for an energy-efficiency review by an external AI "
            "analysis service. Includes user registration and bearer-token login."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "Retry-After",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(root.router)
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(analyze.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve `app` with uvicorn on BACKEND_HOST:PORT."""
    import uvicorn

    uvicorn.run(
        "ecocode.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
