"""Tests for health check and metrics endpoints."""

from __future__ import annotations


class TestHealthEndpoints:
    """Tests for /health and /health/detailed endpoints."""

    def test_health_basic(self, test_client) -> None:
        """Test GET /health returns 200 with status=healthy."""
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_detailed_structure(self, test_client) -> None:
        """Test GET /health/detailed returns expected structure."""
        response = test_client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["active_calls"] == 0
        assert data["version"] == "0.1.0"

    def test_health_detailed_checks(self, test_client) -> None:
        """Test /health/detailed reports storage and service configuration."""
        checks = test_client.get("/health/detailed").json()["checks"]

        assert checks["storage"] == "ok"
        assert checks["greeting_clip"] == "ok"
        assert checks["groq"] == "configured"
        assert checks["tts"] == "gtts"
        assert checks["recording"] == "disabled"
        assert checks["ffmpeg"] in {"ok", "missing"}


class TestMetricsEndpoint:
    def test_metrics_exposed(self, test_client) -> None:
        response = test_client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "voxmenu_active_calls" in response.text
