"""
Paper Trading Exchange Client

Simulates order execution without hitting the exchange's order endpoints.
Uses real market data for candles and prices but fakes fills and balance
updates in memory. Order responses mirror the live API's shape so the
fill reconciler treats them exactly like real fills.
"""

import asyncio
import itertools
import logging
import time
from typing import Dict, List, Optional

from autotrader.exceptions import UpstreamError
from autotrader.exchange_clients.base import ExchangeClient
from autotrader.schemas.market import (
    Balance,
    Candle,
    ExchangeTrade,
    MarketStats,
    OpenOrder,
    OrderFill,
    OrderResult,
)
from autotrader.trading_engine.position_manager import split_symbol

logger = logging.getLogger(__name__)

# Taker commission charged on the asset received
PAPER_COMMISSION_RATE = 0.001


class PaperTradingClient(ExchangeClient):
    """
    Simulated exchange client for paper trading.

    Market data is delegated to ``market_data`` (normally a BinanceClient);
    orders fill immediately at the latest close.
    """

    def __init__(
        self,
        market_data: ExchangeClient,
        quote_asset: str = "USDT",
        starting_balances: Optional[Dict[str, float]] = None,
        commission_rate: float = PAPER_COMMISSION_RATE,
    ):
        self.market_data = market_data
        self.quote_asset = quote_asset
        self.commission_rate = commission_rate
        self.balances: Dict[str, float] = dict(starting_balances or {quote_asset: 10000.0})
        self._trades: List[ExchangeTrade] = []
        self._order_ids = itertools.count(1)
        # Serializes balance read-modify-write across concurrent orders
        self._lock = asyncio.Lock()
        logger.info(f"Initialized paper trading client with balances {self.balances}")

    async def close(self):
        await self.market_data.close()

    async def get_candles(self, symbol: str, interval: str = "1h", limit: int = 100) -> List[Candle]:
        return await self.market_data.get_candles(symbol, interval, limit)

    async def get_24h_stats(self, symbol: str) -> MarketStats:
        return await self.market_data.get_24h_stats(symbol)

    async def get_balances(self) -> List[Balance]:
        return [Balance(asset=asset, free=amount) for asset, amount in sorted(self.balances.items()) if amount > 0]

    async def _fill_price(self, symbol: str) -> float:
        candles = await self.market_data.get_candles(symbol, "1m", 1)
        if candles:
            return candles[-1].close
        stats = await self.market_data.get_24h_stats(symbol)
        return stats.last_price

    async def place_market_order(self, symbol: str, side: str, quantity: float) -> OrderResult:
        side = side.upper()
        if side not in ("BUY", "SELL"):
            raise UpstreamError(f"Invalid side: {side}", status_code=400)
        if quantity <= 0:
            raise UpstreamError(f"Invalid quantity: {quantity}", status_code=400)

        base_asset, quote_asset = split_symbol(symbol, self.quote_asset)
        price = await self._fill_price(symbol)
        quote_qty = quantity * price

        async with self._lock:
            if side == "BUY":
                available = self.balances.get(quote_asset, 0.0)
                if available < quote_qty:
                    raise UpstreamError(
                        f"Account has insufficient balance for requested action "
                        f"({available:.2f} {quote_asset} < {quote_qty:.2f})",
                        status_code=400,
                    )
                commission = quantity * self.commission_rate
                commission_asset = base_asset
                self.balances[quote_asset] = available - quote_qty
                self.balances[base_asset] = self.balances.get(base_asset, 0.0) + quantity - commission
            else:
                available = self.balances.get(base_asset, 0.0)
                if available < quantity:
                    raise UpstreamError(
                        f"Account has insufficient balance for requested action "
                        f"({available} {base_asset} < {quantity})",
                        status_code=400,
                    )
                commission = quote_qty * self.commission_rate
                commission_asset = quote_asset
                self.balances[base_asset] = available - quantity
                self.balances[quote_asset] = self.balances.get(quote_asset, 0.0) + quote_qty - commission

            order_id = f"paper-{next(self._order_ids)}"
            now_ms = int(time.time() * 1000)
            self._trades.append(ExchangeTrade(
                id=order_id,
                order_id=order_id,
                symbol=symbol,
                side=side,
                price=price,
                qty=quantity,
                quote_qty=quote_qty,
                commission=commission,
                commission_asset=commission_asset,
                time=now_ms,
            ))

        logger.info(f"Paper {side} {quantity} {symbol} @ {price} (order {order_id})")
        return OrderResult(
            order_id=order_id,
            symbol=symbol,
            side=side,
            status="FILLED",
            executed_qty=quantity,
            cummulative_quote_qty=quote_qty,
            price=0.0,
            transact_time=now_ms,
            fills=[OrderFill(price=price, qty=quantity, commission=commission, commission_asset=commission_asset)],
        )

    async def get_open_orders(self, symbol: Optional[str] = None) -> List[OpenOrder]:
        # Paper market orders fill on submission, nothing ever rests on the book
        return []

    async def cancel_order(self, symbol: str, order_id: str) -> OrderResult:
        raise UpstreamError(f"Unknown order sent: {order_id} is not open on {symbol}", status_code=400)

    async def get_my_trades(self, symbol: str, limit: int = 50) -> List[ExchangeTrade]:
        trades = [t for t in self._trades if t.symbol == symbol]
        return trades[-limit:]
