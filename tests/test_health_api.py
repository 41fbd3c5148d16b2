"""Tests for health check API endpoints."""

from flask.testing import FlaskClient

from tests.testing_utils import StubConnectionService, StubLifecycleCoordinator


class TestHealthEndpoints:
    """Test health check endpoints for Kubernetes probes."""

    def test_healthz(self, client: FlaskClient):
        """Test liveness probe returns 200 while running."""
        response = client.get("/health/healthz")

        assert response.status_code == 200
        assert response.json == {"status": "alive", "ready": True}

    def test_readyz_when_database_reachable(self, client: FlaskClient):
        response = client.get("/health/readyz")

        assert response.status_code == 200
        assert response.json["ready"] is True
        assert response.json["database"]["connected"] is True

    def test_readyz_when_database_unreachable(
        self, client: FlaskClient, connection_service: StubConnectionService
    ):
        connection_service.connect_error = "Adaptive Server is unavailable"

        response = client.get("/health/readyz")

        assert response.status_code == 503
        assert response.json["status"] == "not ready"
        assert response.json["database"] == {
            "connected": False,
            "message": "Adaptive Server is unavailable",
        }

    def test_probes_when_shutting_down(
        self, client: FlaskClient, lifecycle_coordinator: StubLifecycleCoordinator
    ):
        lifecycle_coordinator.simulate_shutdown()

        healthz = client.get("/health/healthz")
        readyz = client.get("/health/readyz")

        assert healthz.status_code == 503
        assert readyz.status_code == 503
        assert readyz.json["ready"] is False
