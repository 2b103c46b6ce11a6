"""
Exchange fill sync

Re-reads the account's recent fills from the exchange and records every
order the ledger does not know yet, e.g. a market order whose response was
lost to a timeout after the exchange had already filled it.

The exchange reports one line per fill; lines are grouped by order_id so
one order is one Trade, priced the same way trade_from_order prices an
order response (quote total / base total, commissions summed).
Orders already in the ledger are left untouched.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Sequence

from autotrader.exchange_clients.base import ExchangeClient
from autotrader.schemas.market import ExchangeTrade
from autotrader.services.state_store import StateStore, save_trades
from autotrader.trading_engine.fill_reconciler import TradeRecord

logger = logging.getLogger(__name__)

SYNC_SOURCE = "exchange-sync"


def _from_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).replace(tzinfo=None)


def trades_from_fills(fills: Sequence[ExchangeTrade], quote_asset: str, source: str = SYNC_SOURCE) -> List[TradeRecord]:
    """Collapse fill lines into one TradeRecord per order, oldest order first."""
    grouped: Dict[str, List[ExchangeTrade]] = {}
    for fill in fills:
        grouped.setdefault(fill.order_id, []).append(fill)

    trades = []
    for order_id, lines in grouped.items():
        quantity = sum(line.qty for line in lines)
        quote_qty = sum(line.quote_qty or line.price * line.qty for line in lines)
        commission_asset = next((line.commission_asset for line in lines if line.commission_asset), quote_asset)
        trades.append(TradeRecord(
            order_id=order_id,
            symbol=lines[0].symbol,
            side=lines[0].side.upper(),
            price=quote_qty / quantity if quantity > 0 else lines[-1].price,
            quantity=quantity,
            quote_qty=quote_qty,
            commission=sum(line.commission for line in lines),
            commission_asset=commission_asset,
            time=_from_ms(max(line.time for line in lines)),
            source=source,
        ))
    trades.sort(key=lambda t: t.time)
    return trades


async def sync_exchange_fills(
    exchange: ExchangeClient,
    store: StateStore,
    symbol: str,
    quote_asset: str,
    limit: int = 50,
) -> int:
    """
    Record the exchange's recent fills for ``symbol`` that the ledger is missing.

    Returns:
        Number of orders newly recorded

    Raises:
        UpstreamError: the exchange could not be read
        PersistenceError: the ledger could not be read or written
    """
    fills = await exchange.get_my_trades(symbol, limit)
    if not fills:
        return 0

    known = {trade.order_id for trade in await store.list_trades(symbol)}
    missing = [t for t in trades_from_fills(fills, quote_asset) if t.order_id not in known]
    if not missing:
        return 0

    created = await save_trades(store, missing)
    logger.info(f"🔄 Fill sync recorded {created} missing order(s) for {symbol}")
    return created
