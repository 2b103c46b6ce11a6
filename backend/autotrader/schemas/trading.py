"""Request bodies for the trading, auto-trading and account endpoints"""
from typing import Optional

from pydantic import BaseModel


class AnalyzeRequest(BaseModel):
    symbol: str = "BTCUSDT"
    interval: str = "1h"


class ExecuteOrderRequest(BaseModel):
    symbol: str
    side: str
    quantity: float


class AutoTradingRequest(BaseModel):
    action: str  # start, stop, check
    symbol: Optional[str] = None


class ResetRequest(BaseModel):
    symbol: Optional[str] = None


class CancelOrderRequest(BaseModel):
    symbol: Optional[str] = None
    order_id: Optional[str] = None
