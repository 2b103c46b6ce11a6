"""
Trading API routes

- POST /api/trading/analyze: one-shot single-asset decision
- POST /api/trading/execute: manual market order, recorded in the ledger
- GET  /api/trading/orders: resting orders
- DELETE /api/trading/orders: cancel one resting order
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends

from autotrader.config import settings
from autotrader.dependencies import get_exchange, get_oracle, get_store
from autotrader.exceptions import ValidationError
from autotrader.exchange_clients.base import ExchangeClient
from autotrader.indicators import analyze_indicators
from autotrader.oracle import DecisionOracle
from autotrader.schemas.trading import AnalyzeRequest, CancelOrderRequest, ExecuteOrderRequest
from autotrader.services.state_store import StateStore
from autotrader.trading_engine.fill_reconciler import trade_from_order
from autotrader.trading_engine.position_manager import split_symbol

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trading", tags=["trading"])


@router.post("/analyze")
async def analyze_market(
    request: AnalyzeRequest,
    exchange: ExchangeClient = Depends(get_exchange),
    oracle: DecisionOracle = Depends(get_oracle),
):
    """Indicators + oracle decision for a symbol (no order is placed)"""
    symbol = request.symbol.upper()
    candles, stats = await asyncio.gather(
        exchange.get_candles(symbol, request.interval, settings.candle_limit),
        exchange.get_24h_stats(symbol),
    )
    analysis = analyze_indicators(candles)
    decision = await oracle.decide(stats, analysis, candles, mode="single")

    return {
        "success": True,
        "data": {
            "decision": decision.model_dump(mode="json"),
            "market_data": stats.model_dump(),
            "indicators": analysis.snapshot.to_dict(),
            "signals": analysis.snapshot.signals.to_dict(),
            "strength": analysis.strength.to_dict(),
            "timestamp": datetime.utcnow().isoformat(),
        },
    }


@router.post("/execute")
async def execute_order(
    request: ExecuteOrderRequest,
    exchange: ExchangeClient = Depends(get_exchange),
    store: StateStore = Depends(get_store),
):
    """Place a manual market order and record its fill"""
    side = request.side.upper()
    if side not in ("BUY", "SELL"):
        raise ValidationError("Invalid side. Must be BUY or SELL")
    if request.quantity <= 0:
        raise ValidationError("Quantity must be positive")
    symbol = request.symbol.upper()
    try:
        _, quote_asset = split_symbol(symbol, settings.quote_asset)
    except ValueError as e:
        raise ValidationError(str(e))

    order = await exchange.place_market_order(symbol, side, request.quantity)
    trade = trade_from_order(order, quote_asset, source="manual")
    created = await store.save_trade(trade)
    logger.info(f"Manual {side} {trade.quantity} {symbol} @ {trade.price} (order {trade.order_id})")

    return {
        "success": True,
        "data": {
            "order_id": order.order_id,
            "symbol": order.symbol,
            "side": order.side,
            "status": order.status,
            "price": trade.price,
            "executed_qty": order.executed_qty,
            "cummulative_quote_qty": order.cummulative_quote_qty,
            "commission": trade.commission,
            "commission_asset": trade.commission_asset,
            "transact_time": trade.time.isoformat(),
            "recorded": created,
        },
    }


@router.get("/orders")
async def get_open_orders(
    symbol: Optional[str] = None,
    exchange: ExchangeClient = Depends(get_exchange),
):
    """Resting orders for one symbol, or across the account when no symbol is given"""
    orders = await exchange.get_open_orders(symbol.upper() if symbol else None)
    return {
        "success": True,
        "data": [
            {
                "order_id": order.order_id,
                "symbol": order.symbol,
                "side": order.side,
                "type": order.type,
                "status": order.status,
                "price": order.price,
                "orig_qty": order.orig_qty,
                "executed_qty": order.executed_qty,
                "time": datetime.fromtimestamp(order.time / 1000, tz=timezone.utc).replace(tzinfo=None).isoformat(),
            }
            for order in orders
        ],
    }


@router.delete("/orders")
async def cancel_order(
    request: CancelOrderRequest,
    exchange: ExchangeClient = Depends(get_exchange),
):
    """Cancel one resting order"""
    if not request.symbol or not request.order_id:
        raise ValidationError("Missing required fields: symbol, order_id")

    result = await exchange.cancel_order(request.symbol.upper(), request.order_id)
    logger.info(f"Cancelled order {result.order_id} on {result.symbol} ({result.status})")
    return {
        "success": True,
        "data": {
            "order_id": result.order_id,
            "symbol": result.symbol,
            "status": result.status,
            "message": "Order cancelled successfully",
        },
    }
