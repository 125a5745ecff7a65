"""
EcoCodeAI Backend - API Endpoint Tests
========================================

What:  End-to-end HTTP tests through the FastAPI app with a real (SQLite)
       user table and a fake analysis service.

What we test:
    ✅ GET / returns the fixed liveness string
    ✅ Register → login → /me flow, and the stored password is a hash
    ✅ Duplicate usernames, bad credentials and bad tokens map to 409/401
    ✅ /api/analyze relays the analysis service response unchanged
    ✅ Blank/oversized code → 400, upstream failure → 503, upstream 4xx → 502
    ✅ Uncaught errors → 500 with a fixed message
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from ecocode.config import settings
from ecocode.database import async_session_factory
from ecocode.exceptions import (
    AnalysisServiceError,
    CircuitBreakerOpenError,
    UpstreamRejectedError,
)
from ecocode.models.user import User
from ecocode.routes.root import LIVENESS_MESSAGE


async def _register(client, username="ada", password="s3cret!"):
    return await client.post(
        "/api/auth/register", json={"username": username, "password": password}
    )


async def _login(client, username="ada", password="s3cret!"):
    return await client.post(
        "/api/auth/login", json={"username": username, "password": password}
    )


class TestLiveness:

    @pytest.mark.asyncio
    async def test_root_returns_fixed_string(self, test_client):
        response = await test_client.get("/")
        assert response.status_code == 200
        assert response.text == LIVENESS_MESSAGE
        assert response.headers["content-type"].startswith("text/plain")

    @pytest.mark.asyncio
    async def test_health_reports_dependencies(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["analysis_service"] == "available"

    @pytest.mark.asyncio
    async def test_health_degraded_when_circuit_open(self, test_client, fake_analysis):
        for _ in range(fake_analysis.circuit_breaker.failure_threshold):
            fake_analysis.circuit_breaker.record_failure()

        body = (await test_client.get("/health")).json()
        assert body["status"] == "degraded"
        assert body["analysis_service"] == "circuit_open"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client):
        response = await test_client.get("/", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"


class TestAuthFlow:

    @pytest.mark.asyncio
    async def test_register_login_me(self, test_client):
        registered = await _register(test_client)
        assert registered.status_code == 201
        assert registered.json()["user"]["username"] == "ada"
        assert "password" not in registered.text

        login = await _login(test_client)
        assert login.status_code == 200
        token = login.json()
        assert token["token_type"] == "bearer"
        assert token["expires_in"] == settings.access_token_expire_minutes * 60

        me = await test_client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {token['access_token']}"}
        )
        assert me.status_code == 200
        assert me.json()["username"] == "ada"

    @pytest.mark.asyncio
    async def test_stored_password_is_hashed(self, test_client):
        await _register(test_client, password="plain-text-pw")

        async with async_session_factory() as session:
            user = (await session.execute(select(User).where(User.username == "ada"))).scalar_one()

        assert user.hashed_password != "plain-text-pw"
        assert "plain-text-pw" not in user.hashed_password
        assert user.hashed_password.startswith("$2")

    @pytest.mark.asyncio
    async def test_login_records_last_login(self, test_client):
        await _register(test_client)
        await _login(test_client)

        async with async_session_factory() as session:
            user = (await session.execute(select(User).where(User.username == "ada"))).scalar_one()
        assert user.last_login_at is not None

    @pytest.mark.asyncio
    async def test_duplicate_username_conflict(self, test_client):
        assert (await _register(test_client)).status_code == 201

        response = await _register(test_client, password="different")
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_register_rejects_short_password(self, test_client):
        response = await _register(test_client, password="123")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_register_rejects_password_over_72_bytes(self, test_client):
        # 37 characters, 74 bytes: bcrypt would silently drop the tail
        response = await _register(test_client, password="\u00e9" * 37)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_register_accepts_72_byte_password(self, test_client):
        response = await _register(test_client, password="\u00e9" * 36)
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, test_client):
        await _register(test_client)

        response = await _login(test_client, password="wrong-password")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["message"] == "Incorrect username or password"

    @pytest.mark.asyncio
    async def test_login_unknown_user(self, test_client):
        response = await _login(test_client, username="ghost")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_oauth2_token_form(self, test_client):
        await _register(test_client)

        response = await test_client.post(
            "/api/auth/token", data={"username": "ada", "password": "s3cret!"}
        )
        assert response.status_code == 200
        assert response.json()["access_token"]

    @pytest.mark.asyncio
    async def test_me_requires_token(self, test_client):
        response = await test_client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_me_rejects_garbage_token(self, test_client):
        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": "Bearer not.a.token"}
        )
        assert response.status_code == 401


class TestAnalyze:

    @pytest.mark.asyncio
    async def test_relays_service_response(self, test_client, fake_analysis):
        fake_analysis.response = {"message": "Cache the regex.", "footprint": "medium"}

        response = await test_client.post("/api/analyze", json={"code": "import re"})

        assert response.status_code == 200
        assert response.json() == {"message": "Cache the regex.", "footprint": "medium"}
        assert fake_analysis.calls == ["import re"]

    @pytest.mark.asyncio
    async def test_blank_code_rejected(self, test_client, fake_analysis):
        response = await test_client.post("/api/analyze", json={"code": "   \n\t"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "code"
        assert fake_analysis.calls == []

    @pytest.mark.asyncio
    async def test_missing_code_field(self, test_client):
        response = await test_client.post("/api/analyze", json={})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_oversized_code_rejected(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, "max_code_length", 100)

        response = await test_client.post("/api/analyze", json={"code": "x" * 101})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_service_failure_maps_to_503(self, test_client, fake_analysis):
        fake_analysis.error = AnalysisServiceError(retry_after=30)

        response = await test_client.post("/api/analyze", json={"code": "x = 1"})

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "30"
        assert response.json()["error"] == "analysis_service_error"

    @pytest.mark.asyncio
    async def test_upstream_rejection_maps_to_502(self, test_client, fake_analysis):
        fake_analysis.error = UpstreamRejectedError(upstream_status=422)

        response = await test_client.post("/api/analyze", json={"code": "x = 1"})

        assert response.status_code == 502
        body = response.json()
        assert body["error"] == "bad_gateway"
        assert body["details"] == {"upstream_status": 422}
        assert "Retry-After" not in response.headers

    @pytest.mark.asyncio
    async def test_open_circuit_maps_to_503(self, test_client, fake_analysis):
        fake_analysis.error = CircuitBreakerOpenError(recovery_time=12)

        response = await test_client.post("/api/analyze", json={"code": "x = 1"})

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "12"

    @pytest.mark.asyncio
    async def test_auth_required_when_enabled(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, "analysis_requires_auth", True)

        anonymous = await test_client.post("/api/analyze", json={"code": "x = 1"})
        assert anonymous.status_code == 401

        await _register(test_client)
        token = (await _login(test_client)).json()["access_token"]
        authed = await test_client.post(
            "/api/analyze",
            json={"code": "x = 1"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert authed.status_code == 200


class TestUnexpectedErrors:

    @pytest.mark.asyncio
    async def test_uncaught_exception_returns_fixed_500(self):
        from ecocode.main import GENERIC_ERROR_MESSAGE, create_app

        app = create_app()

        @app.get("/boom")
        async def boom():
            raise RuntimeError("database password is hunter2")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == GENERIC_ERROR_MESSAGE
        assert "hunter2" not in response.text
