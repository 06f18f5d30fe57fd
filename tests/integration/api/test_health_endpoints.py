"""Tests for health check endpoints."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient

from hatchery.core.database import get_db


pytestmark = pytest.mark.integration


def fake_redis(ping: AsyncMock):
    @asynccontextmanager
    async def redis_client():
        yield MagicMock(ping=ping)

    return redis_client


async def test_liveness_endpoint(client: AsyncClient):
    """Liveness never touches dependencies."""
    response = await client.get("/health/live")

    assert response.status_code == 200
    assert response.json()["status"] == "alive"


async def test_info_endpoint(client: AsyncClient):
    response = await client.get("/info")

    assert response.status_code == 200
    data = response.json()
    assert "app" in data
    assert "environment" in data
    assert "tenant_base_domain" in data


async def test_readiness_reports_each_check(client: AsyncClient):
    from hatchery.main import app

    session = MagicMock()
    session.execute = AsyncMock()

    async def override_db():
        yield session

    app.dependency_overrides[get_db] = override_db
    with patch("hatchery.api.router.redis_client", fake_redis(AsyncMock(return_value=True))):
        response = await client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready", "checks": {"database": "ok", "redis": "ok"}}


async def test_readiness_degrades_when_redis_is_down(client: AsyncClient):
    from hatchery.main import app

    session = MagicMock()
    session.execute = AsyncMock()

    async def override_db():
        yield session

    app.dependency_overrides[get_db] = override_db
    ping = AsyncMock(side_effect=ConnectionError("connection refused"))
    with patch("hatchery.api.router.redis_client", fake_redis(ping)):
        response = await client.get("/health/ready")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["database"] == "ok"
    assert "connection refused" in data["checks"]["redis"]
