"""
Tests for backend/autotrader/routers/trading_router.py

Covers:
- POST /api/trading/analyze
- POST /api/trading/execute
- GET / DELETE /api/trading/orders
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from autotrader.exceptions import DataError, ExchangeUnavailableError, ValidationError
from autotrader.schemas.decision import SingleAssetDecision
from autotrader.schemas.market import OpenOrder, OrderResult
from autotrader.schemas.trading import AnalyzeRequest, CancelOrderRequest, ExecuteOrderRequest


# =============================================================================
# POST /api/trading/analyze
# =============================================================================


class TestAnalyzeMarket:
    """Tests for POST /api/trading/analyze"""

    @pytest.mark.asyncio
    async def test_returns_decision_and_indicators(self, mock_exchange):
        from autotrader.routers.trading_router import analyze_market

        oracle = MagicMock()
        oracle.decide = AsyncMock(return_value=SingleAssetDecision(
            action="BUY", confidence=0.8, reason="momentum", source="gemini-ai",
        ))

        result = await analyze_market(AnalyzeRequest(symbol="btcusdt"), exchange=mock_exchange, oracle=oracle)

        assert result["success"] is True
        assert result["data"]["decision"]["action"] == "BUY"
        assert result["data"]["decision"]["kind"] == "single"
        assert "rsi" in result["data"]["indicators"]
        assert oracle.decide.await_args.kwargs["mode"] == "single"
        mock_exchange.place_market_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_short_history_is_data_error(self, mock_exchange, make_candles):
        """Failure: fewer than 50 candles -> DataError (422)."""
        from autotrader.routers.trading_router import analyze_market

        mock_exchange.get_candles.return_value = make_candles([100.0] * 20)
        oracle = MagicMock()
        oracle.decide = AsyncMock()

        with pytest.raises(DataError) as exc_info:
            await analyze_market(AnalyzeRequest(), exchange=mock_exchange, oracle=oracle)
        assert exc_info.value.status_code == 422
        oracle.decide.assert_not_awaited()


# =============================================================================
# POST /api/trading/execute
# =============================================================================


class TestExecuteOrder:
    """Tests for POST /api/trading/execute"""

    @pytest.mark.asyncio
    async def test_manual_order_is_recorded(self, mock_exchange, store, make_order):
        from autotrader.routers.trading_router import execute_order

        mock_exchange.place_market_order.return_value = make_order("9001", "BUY", 2.0, 220.0)

        result = await execute_order(
            ExecuteOrderRequest(symbol="btcusdt", side="buy", quantity=2.0),
            exchange=mock_exchange,
            store=store,
        )

        assert result["data"]["price"] == pytest.approx(110.0)
        assert result["data"]["recorded"] is True
        mock_exchange.place_market_order.assert_awaited_once_with("BTCUSDT", "BUY", 2.0)
        trades = await store.list_trades("BTCUSDT")
        assert trades[0].source == "manual"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("side,quantity", [("HOLD", 1.0), ("BUY", 0.0), ("SELL", -0.5)])
    async def test_invalid_request_rejected(self, mock_exchange, store, side, quantity):
        from autotrader.routers.trading_router import execute_order

        with pytest.raises(ValidationError):
            await execute_order(
                ExecuteOrderRequest(symbol="BTCUSDT", side=side, quantity=quantity),
                exchange=mock_exchange,
                store=store,
            )
        mock_exchange.place_market_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exchange_rejection_records_nothing(self, mock_exchange, store):
        from autotrader.routers.trading_router import execute_order

        mock_exchange.place_market_order.side_effect = ExchangeUnavailableError("Account has insufficient balance")

        with pytest.raises(ExchangeUnavailableError):
            await execute_order(
                ExecuteOrderRequest(symbol="BTCUSDT", side="BUY", quantity=1.0),
                exchange=mock_exchange,
                store=store,
            )
        assert await store.list_trades() == []


# =============================================================================
# GET / DELETE /api/trading/orders
# =============================================================================


class TestOpenOrders:
    """Tests for GET and DELETE /api/trading/orders"""

    @pytest.mark.asyncio
    async def test_lists_open_orders(self, mock_exchange):
        from autotrader.routers.trading_router import get_open_orders

        mock_exchange.get_open_orders.return_value = [OpenOrder(
            order_id="41", symbol="BTCUSDT", side="BUY", type="LIMIT", status="NEW",
            price=42000.0, orig_qty=0.01, executed_qty=0.0, time=1700000000000,
        )]

        result = await get_open_orders(symbol="btcusdt", exchange=mock_exchange)

        mock_exchange.get_open_orders.assert_awaited_once_with("BTCUSDT")
        order = result["data"][0]
        assert order["order_id"] == "41"
        assert order["orig_qty"] == 0.01
        assert order["time"] == "2023-11-14T22:13:20"

    @pytest.mark.asyncio
    async def test_lists_account_wide_without_symbol(self, mock_exchange):
        from autotrader.routers.trading_router import get_open_orders

        result = await get_open_orders(symbol=None, exchange=mock_exchange)

        assert result == {"success": True, "data": []}
        mock_exchange.get_open_orders.assert_awaited_once_with(None)

    @pytest.mark.asyncio
    async def test_cancel_order(self, mock_exchange):
        from autotrader.routers.trading_router import cancel_order

        mock_exchange.cancel_order.return_value = OrderResult(
            order_id="41", symbol="BTCUSDT", side="BUY", status="CANCELED",
        )

        result = await cancel_order(CancelOrderRequest(symbol="btcusdt", order_id="41"), exchange=mock_exchange)

        mock_exchange.cancel_order.assert_awaited_once_with("BTCUSDT", "41")
        assert result["data"]["status"] == "CANCELED"
        assert result["data"]["message"] == "Order cancelled successfully"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"symbol": "BTCUSDT"}, {"order_id": "41"}, {}])
    async def test_cancel_requires_symbol_and_order_id(self, mock_exchange, body):
        """Failure: a missing field is a 400 and nothing is sent to the exchange."""
        from autotrader.routers.trading_router import cancel_order

        with pytest.raises(ValidationError) as exc_info:
            await cancel_order(CancelOrderRequest(**body), exchange=mock_exchange)
        assert exc_info.value.status_code == 400
        mock_exchange.cancel_order.assert_not_awaited()
