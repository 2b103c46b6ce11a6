"""
Account API routes

- GET  /api/account/balance: non-zero balances
- GET  /api/account/trades: ledger-annotated trade history (sync=true first records
  exchange fills the ledger is missing)
- POST /api/account/reset: sell the whole free base-asset balance
"""

import logging

from fastapi import APIRouter, Depends

from autotrader.config import settings
from autotrader.dependencies import get_exchange, get_performance_service, get_store
from autotrader.exceptions import ValidationError
from autotrader.exchange_clients.base import ExchangeClient
from autotrader.schemas.trading import ResetRequest
from autotrader.services.fill_sync_service import sync_exchange_fills
from autotrader.services.performance_service import PerformanceService
from autotrader.services.state_store import StateStore
from autotrader.trading_engine.fill_reconciler import trade_from_order
from autotrader.trading_engine.order_logger import info_entry, trade_entry
from autotrader.trading_engine.position_manager import find_balance, split_symbol

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/account", tags=["account"])


@router.get("/balance")
async def get_balance(exchange: ExchangeClient = Depends(get_exchange)):
    balances = await exchange.get_balances()
    return {
        "success": True,
        "data": {
            "balances": [{**b.model_dump(), "total": b.total} for b in balances],
        },
    }


@router.get("/trades")
async def get_trades(
    symbol: str = settings.default_symbol,
    limit: int = 50,
    sync: bool = False,
    performance: PerformanceService = Depends(get_performance_service),
    exchange: ExchangeClient = Depends(get_exchange),
    store: StateStore = Depends(get_store),
):
    """Most recent trades (newest first) with FIFO pnl and lot status"""
    symbol = symbol.upper()
    synced = 0
    if sync:
        try:
            _, quote_asset = split_symbol(symbol, settings.quote_asset)
        except ValueError as e:
            raise ValidationError(str(e))
        synced = await sync_exchange_fills(exchange, store, symbol, quote_asset, settings.fill_sync_limit)

    report = await performance.get_report(symbol)
    return {
        "success": True,
        "data": report["trades"][:limit],
        "stats": report["stats"],
        "stale": report["stale"],
        "synced": synced,
    }


@router.post("/reset")
async def reset_account(
    request: ResetRequest,
    exchange: ExchangeClient = Depends(get_exchange),
    store: StateStore = Depends(get_store),
):
    """Flatten the base-asset position by market-selling the whole free balance"""
    symbol = (request.symbol or settings.default_symbol).upper()
    try:
        base_asset, quote_asset = split_symbol(symbol, settings.quote_asset)
    except ValueError as e:
        raise ValidationError(str(e))

    balances = await exchange.get_balances()
    amount = find_balance(balances, base_asset).free
    if amount < settings.position_dust_threshold:
        return {
            "success": True,
            "message": f"No significant {base_asset} balance to reset. Account is already clean.",
        }

    logger.info(f"Resetting balance: selling {amount} {base_asset}")
    order = await exchange.place_market_order(symbol, "SELL", amount)
    trade = trade_from_order(order, quote_asset, source="reset")
    await store.save_trade(trade)
    await store.append_log(trade_entry(trade, "Balance reset"))
    await store.append_log(info_entry(f"Balance reset: sold {amount} {base_asset}", {"order_id": trade.order_id}))

    return {
        "success": True,
        "message": f"Balance reset successful. Sold {amount} {base_asset}.",
        "data": {
            "order_id": trade.order_id,
            "price": trade.price,
            "quantity": trade.quantity,
            "quote_qty": trade.quote_qty,
        },
    }
