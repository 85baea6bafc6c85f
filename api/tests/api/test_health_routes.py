"""API tests for health check endpoints.

Tests the /health, /health/detailed, and /ready endpoints.
"""

from unittest.mock import AsyncMock, patch

from httpx import AsyncClient


class TestHealthEndpoints:
    """Test health check API endpoints."""

    async def test_health_returns_200(self, client: AsyncClient):
        """GET /health returns 200 with healthy status."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "booking-api"}

    async def test_health_detailed_reports_database(self, client: AsyncClient):
        """GET /health/detailed checks the real test database."""
        response = await client.get("/health/detailed")

        data = response.json()
        assert response.status_code == 200
        assert data["status"] == "healthy"
        assert data["database"] is True
        # SQLite under NullPool has no queue pool to report
        assert data["pool"] is None

    async def test_health_detailed_unhealthy_database(self, client: AsyncClient):
        with patch(
            "routes.health_routes.comprehensive_health_check",
            new_callable=AsyncMock,
            return_value={"database": False, "pool": None},
        ):
            response = await client.get("/health/detailed")

        assert response.status_code == 200
        assert response.json()["status"] == "unhealthy"

    async def test_health_detailed_lists_providers(self, client: AsyncClient):
        response = await client.get("/health/detailed")

        providers = {p["name"]: p for p in response.json()["providers"]}
        assert set(providers) == {"push", "sms", "mail"}
        # No provider credentials in the test environment
        assert providers["push"]["enabled"] is False

    async def test_open_circuit_on_enabled_provider_is_degraded(
        self, client: AsyncClient
    ):
        with patch(
            "routes.health_routes.provider_status",
            return_value=[{"name": "sms", "enabled": True, "circuit": "open"}],
        ):
            response = await client.get("/health/detailed")

        assert response.json()["status"] == "degraded"

    async def test_ready_returns_200_when_initialized(self, client: AsyncClient):
        response = await client.get("/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_ready_returns_503_during_startup(self, app, client: AsyncClient):
        app.state.init_done = False

        response = await client.get("/ready")

        assert response.status_code == 503
        assert response.json() == {"message": "Starting"}

    async def test_ready_returns_503_after_init_failure(
        self, app, client: AsyncClient
    ):
        app.state.init_error = "migrations failed"

        response = await client.get("/ready")

        assert response.status_code == 503
        assert "migrations failed" in response.json()["message"]

    async def test_security_headers_are_set(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
