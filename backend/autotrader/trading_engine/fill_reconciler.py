"""
Translate exchange order responses into Trade records.

Market orders report their fill as executed quantity + cumulative quote
quantity, with an optional per-fill breakdown carrying commissions.
Both the auto-trade controller and the manual order/reset endpoints use
this so every recorded trade is priced the same way.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from autotrader.schemas.market import OrderResult

logger = logging.getLogger(__name__)


@dataclass
class FillData:
    """Result of order fill reconciliation."""
    executed_qty: float  # Base currency amount filled
    quote_qty: float  # Quote currency amount
    average_price: float  # Average fill price
    commission: float  # Sum of commissions across fill lines
    commission_asset: str


@dataclass
class TradeRecord:
    """Trade ready to be upserted into the ledger (keyed by order_id)."""
    order_id: str
    symbol: str
    side: str
    price: float
    quantity: float
    quote_qty: float
    commission: float
    commission_asset: str
    time: datetime
    status: str = "FILLED"
    source: Optional[str] = None


def reconcile_order_fill(order: OrderResult, quote_asset: str) -> FillData:
    """
    Average price = cummulative quote qty / executed qty; when nothing was
    executed the order's quoted price is used instead.
    """
    if order.executed_qty > 0:
        average_price = order.cummulative_quote_qty / order.executed_qty
    else:
        average_price = order.price
        logger.warning(
            f"Order {order.order_id} reports zero executed quantity, "
            f"recording quoted price {order.price}"
        )

    commission = sum(fill.commission for fill in order.fills)
    commission_asset = quote_asset
    for fill in order.fills:
        if fill.commission_asset:
            commission_asset = fill.commission_asset
            break

    return FillData(
        executed_qty=order.executed_qty,
        quote_qty=order.cummulative_quote_qty,
        average_price=average_price,
        commission=commission,
        commission_asset=commission_asset,
    )


def trade_from_order(order: OrderResult, quote_asset: str, source: Optional[str] = None) -> TradeRecord:
    fill = reconcile_order_fill(order, quote_asset)
    if order.transact_time:
        traded_at = datetime.fromtimestamp(order.transact_time / 1000, tz=timezone.utc).replace(tzinfo=None)
    else:
        traded_at = datetime.utcnow()

    return TradeRecord(
        order_id=str(order.order_id),
        symbol=order.symbol,
        side=order.side.upper(),
        price=fill.average_price,
        quantity=fill.executed_qty,
        quote_qty=fill.quote_qty,
        commission=fill.commission,
        commission_asset=fill.commission_asset,
        time=traded_at,
        status=order.status or "FILLED",
        source=source,
    )
