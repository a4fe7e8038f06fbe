import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_keep_alive(client: AsyncClient):
    """Test the uptime ping answers with a fixed body"""
    response = await client.get("/keep-alive")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_root_points_at_websocket(client: AsyncClient):
    response = await client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert "Welcome" in data["message"]
    assert data["websocket"] == "/api/v1/sync/ws"


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_liveness(client: AsyncClient):
    response = await client.get("/api/v1/health/live")

    assert response.status_code == 200
    assert response.json()["status"] == "alive"


@pytest.mark.asyncio
async def test_readiness(client: AsyncClient):
    """Test readiness reports the database and the sync hub"""
    response = await client.get("/api/v1/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["database"]["status"] == "healthy"
    assert data["checks"]["sync_hub"] == {
        "status": "healthy",
        "rooms": 0,
        "connections": 0,
        "pending_tasks": 0,
    }


@pytest.mark.asyncio
async def test_request_id_headers(client: AsyncClient):
    response = await client.get("/keep-alive", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["X-Response-Time"].endswith("ms")
