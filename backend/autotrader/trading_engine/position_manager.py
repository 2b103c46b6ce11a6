"""
Position management utilities for the trading engine

This is a spot-only account: an open position is simply a base-asset
balance above dust. The ledger's open lots supply the entry price so the
oracle can see unrealized P&L.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from autotrader.schemas.market import Balance
from autotrader.trading_engine.pnl_ledger import LedgerSummary

logger = logging.getLogger(__name__)

KNOWN_QUOTE_ASSETS = ("USDT", "USDC", "BUSD", "FDUSD", "TUSD", "BTC", "ETH", "BNB", "EUR", "TRY")


@dataclass
class OpenPosition:
    asset: str
    symbol: str
    quantity: float  # total (free + locked)
    free: float
    entry_price: Optional[float] = None
    current_price: Optional[float] = None

    @property
    def unrealized_pnl_percent(self) -> Optional[float]:
        if not self.entry_price or self.current_price is None:
            return None
        return (self.current_price - self.entry_price) / self.entry_price * 100

    @property
    def value(self) -> Optional[float]:
        if self.current_price is None:
            return None
        return self.quantity * self.current_price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset": self.asset,
            "symbol": self.symbol,
            "quantity": self.quantity,
            "free": self.free,
            "entry_price": self.entry_price,
            "current_price": self.current_price,
            "value": self.value,
            "unrealized_pnl_percent": self.unrealized_pnl_percent,
        }


def split_symbol(symbol: str, quote_asset: Optional[str] = None) -> Tuple[str, str]:
    """
    Split an exchange symbol into (base, quote), e.g. BTCUSDT -> (BTC, USDT).

    The configured quote asset is tried first, then common quote assets.
    """
    symbol = symbol.upper()
    candidates = ([quote_asset.upper()] if quote_asset else []) + list(KNOWN_QUOTE_ASSETS)
    for quote in candidates:
        if symbol.endswith(quote) and len(symbol) > len(quote):
            return symbol[: -len(quote)], quote
    raise ValueError(f"Cannot determine quote asset for symbol {symbol}")


def find_balance(balances: Sequence[Balance], asset: str) -> Balance:
    for balance in balances:
        if balance.asset == asset:
            return balance
    return Balance(asset=asset)


def open_positions_from_balances(
    balances: Sequence[Balance],
    symbol: str,
    base_asset: str,
    dust_threshold: float,
    current_price: Optional[float] = None,
    ledger: Optional[LedgerSummary] = None,
) -> List[OpenPosition]:
    """
    Open positions for the tracked base asset.

    Any balance above ``dust_threshold`` counts as one open long position
    (no shorts, one lot per asset).
    """
    balance = find_balance(balances, base_asset)
    if balance.total <= dust_threshold:
        return []

    entry_price = ledger.average_entry_price if ledger else None
    position = OpenPosition(
        asset=base_asset,
        symbol=symbol,
        quantity=balance.total,
        free=balance.free,
        entry_price=entry_price,
        current_price=current_price,
    )
    logger.debug(f"Open position: {position.quantity} {base_asset} (entry={entry_price})")
    return [position]


def find_position(positions: Sequence[OpenPosition], asset: str) -> Optional[OpenPosition]:
    asset = asset.upper()
    for position in positions:
        if position.asset == asset or position.symbol == asset:
            return position
    return None
