"""
EcoCodeAI Backend - Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.

Fixture Hierarchy:
    Function-scoped:
    ├── mock_db_session:   AsyncMock session for service unit tests
    ├── db_tables:         real tables in a throwaway SQLite file (aiosqlite)
    ├── fake_analysis:     in-memory AnalysisService recording submissions
    └── test_client:       HTTPX AsyncClient wired to the app with the fakes above
"""

import os
import tempfile
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Settings are read at import time, so the environment must be set first
_TEST_DIR = tempfile.mkdtemp(prefix="ecocode_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["JWT_SECRET_KEY"] = "test-secret-not-for-production"
os.environ["ANALYSIS_PROVIDER"] = "http"
os.environ["ANALYSIS_SERVICE_URL"] = "http://analysis.test/analyze"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["AUTH_RATE_LIMIT_REQUESTS"] = "1000"
os.environ["RETRY_MIN_WAIT"] = "1"
os.environ["RETRY_MAX_WAIT"] = "5"
os.environ["LOG_LEVEL"] = "WARNING"

from ecocode.services.analysis_base import AnalysisService  # noqa: E402


class FakeAnalysisService(AnalysisService):
    """Stands in for the external analysis service in endpoint tests."""

    name = "fake"

    def __init__(
        self,
        response: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None,
        healthy: bool = True,
    ):
        super().__init__()
        self.response = response if response is not None else {"message": "Looks efficient."}
        self.error = error
        self.healthy = healthy
        self.calls: List[str] = []

    async def analyze(self, code: str) -> Dict[str, Any]:
        self.calls.append(code)
        if self.error is not None:
            raise self.error
        return self.response

    async def health_check(self) -> bool:
        return self.healthy


@pytest.fixture
def mock_db_session():
    """
    A mock async database session (no real DB needed).

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = user
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def db_tables():
    """Create all tables before the test, drop them after."""
    from ecocode.database import Base, engine, init_models

    await init_models()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Pooled aiosqlite connections belong to this test's event loop
    await engine.dispose()


@pytest.fixture
def fake_analysis():
    return FakeAnalysisService()


@pytest_asyncio.fixture
async def test_client(db_tables, fake_analysis):
    """
    HTTPX AsyncClient routed straight into the FastAPI app via ASGITransport.

    The analysis provider is replaced with `fake_analysis` through
    app.dependency_overrides.
    """
    from ecocode.main import app
    from ecocode.services.analysis_provider import get_analysis_service

    app.dependency_overrides[get_analysis_service] = lambda: fake_analysis
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
