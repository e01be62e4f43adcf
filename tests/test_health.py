"""
Endpoints de estado del servicio.
"""
import pytest
from httpx import AsyncClient

from app.config import settings


@pytest.mark.asyncio
async def test_root_describes_service(client: AsyncClient):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json() == {
        "service": "Event Ticketing API",
        "version": "1.0.0",
        "database": settings.db_name,
        "environment": settings.app_env,
    }


@pytest.mark.asyncio
async def test_health_needs_no_session(client: AsyncClient, store):
    """/health responde sin cookie y sin tocar la base de datos."""
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert set(data) == {"status", "database", "host"}
    assert store.sessions == {}


@pytest.mark.asyncio
async def test_unknown_path_is_404(client: AsyncClient):
    response = await client.get("/no-such-endpoint")
    assert response.status_code == 404
