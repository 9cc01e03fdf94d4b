"""
SnippetDeck Backend — Application Plumbing Tests
=================================================

What:  Health check, middleware (request ID, rate limiting), configuration
       validation and the startup database wait.
"""

from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from snippetdeck.config import DEFAULT_JWT_SECRET, Settings
from snippetdeck.database import wait_for_database


class TestHealth:

    @pytest.mark.asyncio
    async def test_healthy(self, test_client):
        response = await test_client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_unhealthy_when_database_unreachable(self, test_app, test_client):
        broken = MagicMock()
        broken.connect.side_effect = OSError("connection refused")
        test_app.state.engine = broken

        response = await test_client.get("/api/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


class TestRequestId:

    @pytest.mark.asyncio
    async def test_generated_when_absent(self, test_client):
        response = await test_client.get("/api/snippets/public")
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_client_value_echoed(self, test_client):
        response = await test_client.get(
            "/api/snippets/public", headers={"X-Request-ID": "trace-123"},
        )
        assert response.headers["X-Request-ID"] == "trace-123"


class TestRateLimit:

    @pytest.fixture
    def test_settings(self):
        return Settings(auth_rate_limit_requests=3, rate_limit_requests=10)

    @pytest.mark.asyncio
    async def test_auth_bucket_exhausted(self, test_client):
        credentials = {"email": "nobody@example.com", "password": "whatever"}
        for _ in range(3):
            response = await test_client.post("/api/auth/login", json=credentials)
            assert response.status_code == 401

        response = await test_client.post("/api/auth/login", json=credentials)

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0
        assert response.json()["error"] == "rate_limit_exceeded"

    @pytest.mark.asyncio
    async def test_buckets_are_independent(self, test_client):
        credentials = {"email": "nobody@example.com", "password": "whatever"}
        for _ in range(4):
            await test_client.post("/api/auth/login", json=credentials)

        response = await test_client.get("/api/snippets/public")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_health_not_counted(self, test_client):
        for _ in range(12):
            assert (await test_client.get("/api/health")).status_code == 200


class TestSettings:

    def test_default_secret_fails_production_check(self):
        config = Settings(jwt_secret=DEFAULT_JWT_SECRET)
        with pytest.raises(ValueError, match="JWT_SECRET"):
            config.validate_required_for_production()

    def test_custom_secret_passes(self):
        Settings(jwt_secret="a-long-random-value").validate_required_for_production()

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            Settings(jwt_algorithm="none")
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD")

    def test_cors_origins_list(self):
        config = Settings(cors_origins="http://a.example, http://b.example ,")
        assert config.cors_origins_list == ["http://a.example", "http://b.example"]


class TestWaitForDatabase:

    @pytest.mark.asyncio
    async def test_returns_once_reachable(self, db_engine):
        await wait_for_database(db_engine, Settings(db_connect_attempts=1))

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self):
        engine = MagicMock()
        engine.connect.side_effect = OperationalError("SELECT 1", {}, Exception("down"))
        config = Settings(db_connect_attempts=2, db_connect_max_wait=1)

        with pytest.raises(OperationalError):
            await wait_for_database(engine, config)

        assert engine.connect.call_count == 2
