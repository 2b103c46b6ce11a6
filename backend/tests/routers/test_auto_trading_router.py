"""
Tests for backend/autotrader/routers/auto_trading_router.py

Covers GET/POST /api/trading/auto against a real controller over the
in-memory store, with a mocked exchange and oracle.
"""

from uuid import uuid4

import pytest
from unittest.mock import AsyncMock, MagicMock

from autotrader.exceptions import AppError, ValidationError
from autotrader.schemas.decision import PortfolioDecision
from autotrader.schemas.trading import AutoTradingRequest
from autotrader.services.performance_service import PerformanceService
from autotrader.trading_engine.auto_trade_controller import AutoTradeController, _get_cycle_lock


@pytest.fixture
def controller(store, mock_exchange, test_settings):
    oracle = MagicMock()
    oracle.decide = AsyncMock(return_value=PortfolioDecision(confidence=0.4, market_outlook="neutral", source="test-ai"))
    return AutoTradeController(store, mock_exchange, oracle, settings=test_settings, bot_id=f"router-{uuid4().hex[:8]}")


class TestControlAutoTrading:
    """Tests for POST /api/trading/auto"""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, controller):
        from autotrader.routers.auto_trading_router import control_auto_trading

        started = await control_auto_trading(AutoTradingRequest(action="start", symbol="ethusdt"), controller=controller)
        assert started == {"success": True, "message": "Auto-trading started for ETHUSDT"}
        assert (await controller.get_state()).is_running is True

        stopped = await control_auto_trading(AutoTradingRequest(action="STOP"), controller=controller)
        assert stopped["success"] is True
        assert (await controller.get_state()).is_running is False

    @pytest.mark.asyncio
    async def test_check_runs_one_cycle(self, controller, mock_exchange):
        from autotrader.routers.auto_trading_router import control_auto_trading

        await controller.start("BTCUSDT")
        result = await control_auto_trading(AutoTradingRequest(action="check"), controller=controller)

        assert result["success"] is True
        assert result["data"]["status"] == "completed"
        assert result["data"]["decision"]["kind"] == "portfolio"
        mock_exchange.get_candles.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_check_while_stopped(self, controller):
        from autotrader.routers.auto_trading_router import control_auto_trading

        result = await control_auto_trading(AutoTradingRequest(action="check"), controller=controller)
        assert result["data"]["status"] == "stopped"

    @pytest.mark.asyncio
    async def test_check_while_busy_is_conflict(self, controller):
        from autotrader.routers.auto_trading_router import control_auto_trading

        lock = _get_cycle_lock(controller.bot_id)
        await lock.acquire()
        try:
            with pytest.raises(AppError) as exc_info:
                await control_auto_trading(AutoTradingRequest(action="check"), controller=controller)
        finally:
            lock.release()
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_action(self, controller):
        from autotrader.routers.auto_trading_router import control_auto_trading

        with pytest.raises(ValidationError):
            await control_auto_trading(AutoTradingRequest(action="pause"), controller=controller)


class TestGetAutoTradingStatus:
    """Tests for GET /api/trading/auto"""

    @pytest.mark.asyncio
    async def test_status_logs_and_stats(self, controller, store):
        from autotrader.routers.auto_trading_router import get_auto_trading_status

        await controller.start("BTCUSDT")
        await controller.run_cycle()

        result = await get_auto_trading_status(
            controller=controller, store=store, performance=PerformanceService(store),
        )

        data = result["data"]
        assert data["is_running"] is True
        assert data["symbol"] == "BTCUSDT"
        assert data["last_check"] is not None
        assert data["is_busy"] is False
        assert [log["type"] for log in data["logs"]] == ["decision", "info"]
        assert data["stats"]["total_checks"] == 1
        assert data["last_decision"]["decision"]["kind"] == "portfolio"
        assert data["stale"] is False

    @pytest.mark.asyncio
    async def test_fresh_install(self, controller, store):
        from autotrader.routers.auto_trading_router import get_auto_trading_status

        result = await get_auto_trading_status(
            controller=controller, store=store, performance=PerformanceService(store),
        )

        assert result["data"]["is_running"] is False
        assert result["data"]["last_check"] is None
        assert result["data"]["logs"] == []
        assert result["data"]["last_decision"] is None
