"""
Tests for backend/autotrader/main.py: health check and AppError translation.
"""

import json

import pytest
from unittest.mock import MagicMock

from autotrader.exceptions import AppError, ExchangeUnavailableError


class TestAppErrorHandler:
    @pytest.mark.asyncio
    async def test_status_and_body(self):
        from autotrader.main import app_error_handler

        request = MagicMock()
        request.method = "POST"
        request.url.path = "/api/trading/auto"

        response = await app_error_handler(request, AppError("A cycle is already in progress", status_code=409))

        assert response.status_code == 409
        assert json.loads(response.body) == {"success": False, "error": "A cycle is already in progress"}

    @pytest.mark.asyncio
    async def test_upstream_error_is_503(self):
        from autotrader.main import app_error_handler

        request = MagicMock()
        response = await app_error_handler(request, ExchangeUnavailableError())
        assert response.status_code == 503


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_ok(self):
        from autotrader.main import health_check

        result = await health_check()
        assert result["status"] == "ok"
        assert "paper_trading" in result

    def test_routes_registered(self):
        from autotrader.main import app

        paths = {route.path for route in app.routes}
        assert {
            "/api/market/data",
            "/api/trading/analyze",
            "/api/trading/execute",
            "/api/trading/auto",
            "/api/account/balance",
            "/api/account/trades",
            "/api/account/reset",
            "/api/cron/trade",
            "/api/health",
        } <= paths
