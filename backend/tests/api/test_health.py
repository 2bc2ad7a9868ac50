"""
Health endpoint tests.
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from app.core.config import settings
from app.db.redis import check_redis_health
from app.db.session import check_db_health


@pytest.mark.asyncio
class TestHealth:
    """Database connectivity reporting."""

    async def test_healthy(self, client: AsyncClient):
        with patch("app.main.check_db_health", new=AsyncMock(return_value=True)):
            response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    async def test_database_down(self, client: AsyncClient):
        with patch("app.main.check_db_health", new=AsyncMock(return_value=False)):
            response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    async def test_redis_disabled(self, client: AsyncClient):
        with patch("app.main.check_db_health", new=AsyncMock(return_value=True)):
            response = await client.get("/health")

        assert response.json()["redis"] == "disabled"

    async def test_redis_down_keeps_service_healthy(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)

        with patch("app.main.check_db_health", new=AsyncMock(return_value=True)), \
                patch("app.main.check_redis_health", new=AsyncMock(return_value=False)):
            response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["redis"] == "disconnected"

    async def test_redis_connected(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)

        with patch("app.main.check_db_health", new=AsyncMock(return_value=True)), \
                patch("app.main.check_redis_health", new=AsyncMock(return_value=True)):
            response = await client.get("/health")

        assert response.json()["redis"] == "connected"


@pytest.mark.asyncio
async def test_check_db_health_against_test_database(test_engine):
    assert await check_db_health(test_engine) is True


@pytest.mark.asyncio
async def test_check_redis_health_reports_unreachable_server():
    with patch("app.db.redis.get_redis", new=AsyncMock(side_effect=ConnectionError("redis unreachable"))):
        assert await check_redis_health() is False
