"""
ExchangeClient Abstract Base Class

The narrow exchange contract the trading engine depends on: market data
(candles, 24h stats) plus a spot account (balances, market orders, open
orders, fill history). Implementations return the normalized schemas from
autotrader.schemas.market and raise UpstreamError subclasses on failure.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from autotrader.schemas.market import Balance, Candle, ExchangeTrade, MarketStats, OpenOrder, OrderResult


class ExchangeClient(ABC):
    """
    Abstract base class for spot exchange clients.

    Design Philosophy:
    - All prices and amounts are floats; order IDs are strings
    - Candles come back oldest first
    - Any transport or API failure raises ExchangeUnavailableError
    """

    # ========================================
    # MARKET DATA METHODS
    # ========================================

    @abstractmethod
    async def get_candles(self, symbol: str, interval: str = "1h", limit: int = 100) -> List[Candle]:
        """
        Get recent OHLCV candles.

        Args:
            symbol: Exchange symbol (e.g., "BTCUSDT")
            interval: Candle interval ("1m", "15m", "1h", "4h", "1d", ...)
            limit: Number of candles, newest last

        Returns:
            List of Candle ordered by open_time ascending
        """
        pass

    @abstractmethod
    async def get_24h_stats(self, symbol: str) -> MarketStats:
        """Get rolling 24h ticker statistics (last price, change %, high, low, volume)."""
        pass

    # ========================================
    # ACCOUNT METHODS
    # ========================================

    @abstractmethod
    async def get_balances(self) -> List[Balance]:
        """Get all non-zero asset balances (free + locked)."""
        pass

    @abstractmethod
    async def place_market_order(self, symbol: str, side: str, quantity: float) -> OrderResult:
        """
        Place a market order for ``quantity`` of the base asset.

        Returns:
            OrderResult with executed quantity, cumulative quote quantity
            and per-fill commission lines
        """
        pass

    @abstractmethod
    async def get_open_orders(self, symbol: Optional[str] = None) -> List[OpenOrder]:
        """Get resting orders, for one symbol or (symbol=None) across the account."""
        pass

    @abstractmethod
    async def cancel_order(self, symbol: str, order_id: str) -> OrderResult:
        """
        Cancel a resting order.

        Returns:
            OrderResult carrying the order's final status (e.g. "CANCELED")
        """
        pass

    @abstractmethod
    async def get_my_trades(self, symbol: str, limit: int = 50) -> List[ExchangeTrade]:
        """Get the account's recent fills for a symbol, oldest first."""
        pass

    async def close(self):
        """Release network resources. Default: nothing to release."""
        pass
