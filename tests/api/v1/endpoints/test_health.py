"""
Tests for health check endpoints.
"""

import pytest
from unittest.mock import patch, AsyncMock

from httpx import AsyncClient

from product_verification import __version__


@pytest.mark.asyncio
async def test_root_endpoint(async_client: AsyncClient):
    """Test root endpoint."""
    response = await async_client.get("/")
    assert response.status_code == 200

    data = response.json()
    assert data["message"] == "Product Verification API"
    assert data["version"] == __version__
    assert data["status"] == "operational"


@pytest.mark.asyncio
async def test_health_check_healthy(async_client: AsyncClient):
    """Test health check with the database reachable."""
    response = await async_client.get("/api/v1/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == "1.0.0"
    assert data["services"]["database"]["status"] == "healthy"
    assert data["services"]["database"]["type"] == "sqlite"
    assert data["services"]["api"]["status"] == "healthy"


@pytest.mark.asyncio
async def test_health_check_database_down(async_client: AsyncClient):
    """Test health check with database down."""
    with patch(
        "product_verification.config.database.Database.check_connection",
        new_callable=AsyncMock
    ) as mock_db:
        mock_db.return_value = False

        response = await async_client.get("/api/v1/health")
        assert response.status_code == 503

        data = response.json()
        assert "Database connection unavailable" in data["detail"]


@pytest.mark.asyncio
async def test_liveness_probe(async_client: AsyncClient):
    """Test liveness probe endpoint."""
    response = await async_client.get("/api/v1/health/liveness")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}
