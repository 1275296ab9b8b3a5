"""Health endpoint tests."""

from fastapi.testclient import TestClient
from httpx import AsyncClient


def test_health_check(client: TestClient) -> None:
    """Test health check endpoint returns ok status."""
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_health_check_ready(api_client: AsyncClient) -> None:
    """Test readiness check endpoint reaches the database."""
    response = await api_client.get("/api/v1/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_endpoint(client: TestClient) -> None:
    """Test root endpoint returns service info."""
    response = client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "OVR Workflow API"
    assert "version" in data
