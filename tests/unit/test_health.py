"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "meeting-planner"


def test_healthz_echoes_request_id():
    response = client.get("/healthz", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"


def test_readyz_endpoint_all_services_healthy():
    """Test readiness endpoint when the cache and configuration are healthy."""
    with (
        patch("app.routes.health.cache_store.ping", new=AsyncMock(return_value=True)),
        patch("app.routes.health.settings.JWT_SECRET", "test-secret"),
        patch("app.routes.health.settings.GOOGLE_MAPS_API_KEY", "test-key"),
    ):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["redis"]["ok"] is True
    assert data["checks"]["configuration"]["ok"] is True


def test_readyz_endpoint_redis_unhealthy():
    """Test readiness endpoint when Redis is down."""
    with (
        patch("app.routes.health.cache_store.ping", new=AsyncMock(return_value=False)),
        patch("app.routes.health.settings.JWT_SECRET", "test-secret"),
        patch("app.routes.health.settings.GOOGLE_MAPS_API_KEY", "test-key"),
    ):
        response = client.get("/readyz")

    # Should still return 200, but overall_ok should be False
    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["redis"]["ok"] is False


def test_readyz_endpoint_redis_exception():
    with (
        patch(
            "app.routes.health.cache_store.ping",
            new=AsyncMock(side_effect=ConnectionError("refused")),
        ),
        patch("app.routes.health.settings.JWT_SECRET", "test-secret"),
        patch("app.routes.health.settings.GOOGLE_MAPS_API_KEY", "test-key"),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert "ConnectionError" in data["checks"]["redis"]["error"]


def test_readyz_endpoint_missing_configuration():
    """Test readiness endpoint when required settings are missing."""
    with (
        patch("app.routes.health.cache_store.ping", new=AsyncMock(return_value=True)),
        patch("app.routes.health.settings.JWT_SECRET", None),
        patch("app.routes.health.settings.GOOGLE_MAPS_API_KEY", None),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["configuration"]["issues"] == [
        "JWT_SECRET not set",
        "GOOGLE_MAPS_API_KEY not set",
    ]
