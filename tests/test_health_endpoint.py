"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi import status

from recipe_assistant.app import app


class TestHealthEndpoint:
    """Test suite for /healthz endpoints."""

    def test_health_check_returns_ok(self, test_client):
        response = test_client.get("/healthz")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == "0.1.0"
        assert data["environment"] == "test"

    def test_liveness_probe(self, test_client):
        response = test_client.get("/healthz/live")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "alive"}

    def test_readiness_when_dependencies_up(self, test_client):
        app.state.graph_executor.verify_connectivity = AsyncMock(return_value=None)

        with patch(
            "recipe_assistant.routers.health.database.ping",
            AsyncMock(return_value=1.234),
        ):
            response = test_client.get("/healthz/ready")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["ready"] is True
        assert data["database"] == {"ok": True, "latency_ms": 1.23}
        assert data["graph"] == {"ok": True}

    def test_readiness_when_graph_down(self, test_client):
        app.state.graph_executor.verify_connectivity = AsyncMock(
            side_effect=ConnectionError("connection refused")
        )

        with patch(
            "recipe_assistant.routers.health.database.ping",
            AsyncMock(return_value=1.0),
        ):
            response = test_client.get("/healthz/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        data = response.json()
        assert data["ready"] is False
        assert data["graph"]["ok"] is False
        assert "connection refused" in data["graph"]["error"]

    def test_readiness_when_database_down(self, test_client):
        app.state.graph_executor.verify_connectivity = AsyncMock(return_value=None)

        with patch(
            "recipe_assistant.routers.health.database.ping",
            AsyncMock(side_effect=OSError("could not connect")),
        ):
            response = test_client.get("/healthz/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["database"]["ok"] is False

    def test_root_endpoint(self, test_client):
        response = test_client.get("/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["health"] == "/healthz"
