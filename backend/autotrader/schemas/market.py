"""Market data and account Pydantic schemas shared with exchange clients"""
from typing import List, Optional

from pydantic import BaseModel, Field


class Candle(BaseModel):
    """One OHLCV bar. Times are epoch milliseconds, as the exchange reports them."""
    open_time: int
    close_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    class Config:
        frozen = True


class MarketStats(BaseModel):
    """Rolling 24h ticker statistics"""
    symbol: str
    last_price: float
    price_change: float = 0.0
    price_change_percent: float = 0.0
    high_price: float = 0.0
    low_price: float = 0.0
    volume: float = 0.0
    quote_volume: float = 0.0


class Balance(BaseModel):
    asset: str
    free: float = 0.0
    locked: float = 0.0

    @property
    def total(self) -> float:
        return self.free + self.locked


class OrderFill(BaseModel):
    price: float
    qty: float
    commission: float = 0.0
    commission_asset: Optional[str] = None


class OrderResult(BaseModel):
    """Normalized market order response (Binance field semantics)"""
    order_id: str
    symbol: str
    side: str
    status: str
    executed_qty: float = 0.0
    cummulative_quote_qty: float = 0.0
    price: float = 0.0
    transact_time: Optional[int] = None
    fills: List[OrderFill] = Field(default_factory=list)


class ExchangeTrade(BaseModel):
    """One fill line from the account's exchange trade history"""
    id: str
    order_id: str
    symbol: str
    side: str
    price: float
    qty: float
    quote_qty: float = 0.0
    commission: float = 0.0
    commission_asset: Optional[str] = None
    time: int
    is_maker: bool = False


class OpenOrder(BaseModel):
    """A resting order that has not fully filled yet"""
    order_id: str
    symbol: str
    side: str
    type: str
    status: str
    price: float = 0.0
    orig_qty: float = 0.0
    executed_qty: float = 0.0
    time: int
