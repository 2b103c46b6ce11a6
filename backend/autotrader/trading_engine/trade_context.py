"""
Trade context dataclasses: the explicit bot state and the per-cycle
market/account view threaded through the controller's steps.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from autotrader.models.trading import GLOBAL_BOT_ID
from autotrader.schemas.market import Balance, Candle, MarketStats
from autotrader.trading_engine.position_manager import OpenPosition


@dataclass
class BotStatus:
    """Detached copy of the BotState row; the controller never shares ORM objects."""
    symbol: str
    is_running: bool = False
    id: str = GLOBAL_BOT_ID
    updated_at: Optional[datetime] = None


@dataclass
class CycleContext:
    """Everything one evaluation cycle fetched from the exchange."""
    symbol: str
    base_asset: str
    quote_asset: str
    candles: List[Candle]
    stats: MarketStats
    balances: List[Balance]
    positions: List[OpenPosition] = field(default_factory=list)

    @property
    def current_price(self) -> float:
        return self.stats.last_price or self.candles[-1].close

    def balance_of(self, asset: str) -> Balance:
        for balance in self.balances:
            if balance.asset == asset:
                return balance
        return Balance(asset=asset)
