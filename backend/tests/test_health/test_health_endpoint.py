"""Tests for the health check endpoint."""

import pytest
from unittest.mock import AsyncMock, patch
from pokerledger.config import settings


@pytest.mark.asyncio
class TestHealthEndpoint:
    """Test the /health endpoint behavior."""

    async def test_health_endpoint_returns_200_when_db_is_healthy(self, client):
        """Health check returns 200 OK when database is connected."""
        with patch('pokerledger.routes.health.get_database') as mock_get_db:
            mock_db = AsyncMock()
            mock_db.command = AsyncMock(return_value={"ok": 1})
            mock_get_db.return_value = mock_db

            response = await client.get("/health")

            assert response.status_code == 200
            data = response.json()
            assert data["status"] == "healthy"
            assert data["version"] == settings.APP_VERSION
            assert data["checks"]["database"] == "ok"

    async def test_health_endpoint_reports_degraded_when_db_missing(self, client):
        """Health check still answers 200 before the database is connected."""
        with patch('pokerledger.routes.health.get_database') as mock_get_db:
            mock_get_db.side_effect = RuntimeError("Database not initialized")

            response = await client.get("/health")

            assert response.status_code == 200
            data = response.json()
            assert data["status"] == "degraded"
            assert data["checks"]["database"] == "down"

    async def test_health_endpoint_at_api_prefix(self, client):
        """Health check is also available at /api/health."""
        with patch('pokerledger.routes.health.get_database') as mock_get_db:
            mock_db = AsyncMock()
            mock_db.command = AsyncMock(return_value={"ok": 1})
            mock_get_db.return_value = mock_db

            response = await client.get("/api/health")

            assert response.status_code == 200
            assert response.json()["status"] == "healthy"

    async def test_root_endpoint(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "Poker Ledger API"
