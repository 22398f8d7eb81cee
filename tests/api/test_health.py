"""
Tests for Health Check and Dashboard Endpoints
"""

import pytest
from httpx import AsyncClient


class TestHealthEndpoints:
    """Tests for health check endpoint"""

    @pytest.mark.asyncio
    async def test_root_health_check(self, client: AsyncClient):
        """Test root health check endpoint"""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data
        assert "environment" in data


class TestDashboardPages:
    """Tests for the static dashboard"""

    @pytest.mark.asyncio
    async def test_index_page(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "HKDSE Statistics Dashboard" in response.text

    @pytest.mark.asyncio
    async def test_dashboard_assets(self, client: AsyncClient):
        script = await client.get("/js/dashboard.js")
        styles = await client.get("/css/dashboard.css")

        assert script.status_code == 200
        assert "/api/insights" in script.text
        assert styles.status_code == 200

    @pytest.mark.asyncio
    async def test_unknown_page(self, client: AsyncClient):
        response = await client.get("/missing.html")

        assert response.status_code == 404
