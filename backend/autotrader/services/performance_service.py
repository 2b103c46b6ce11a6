"""
Performance Service

Ledger-annotated trade history and P&L statistics for the reporting
endpoints. Read paths only: the ledger is recomputed from the full trade
history on every request.

If the store cannot be read, the last successfully computed report is
served again with ``stale=True`` instead of failing the request.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from autotrader.exceptions import PersistenceError
from autotrader.services.state_store import StateStore
from autotrader.trading_engine.pnl_ledger import LedgerSummary, calculate_realized_pnl

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def build_trade_history(trades: Sequence[Any], ledger: Optional[LedgerSummary] = None) -> List[Dict[str, Any]]:
    """Trades annotated with FIFO pnl/status, newest first."""
    ledger = ledger or calculate_realized_pnl(trades)
    history = []
    for entry in ledger.entries:
        trade = entry.trade
        history.append({
            "order_id": trade.order_id,
            "symbol": trade.symbol,
            "side": entry.side,
            "price": trade.price,
            "quantity": trade.quantity,
            "quote_qty": trade.quote_qty,
            "commission": trade.commission,
            "commission_asset": trade.commission_asset,
            "time": _iso(trade.time),
            "order_status": trade.status,
            "status": entry.status,
            "pnl": entry.pnl,
            "remaining_qty": entry.remaining_qty,
            "unmatched_qty": entry.unmatched_qty,
            "source": getattr(trade, "source", None),
        })
    history.reverse()
    return history


def calculate_stats(trades: Sequence[Any], total_checks: int = 0, ledger: Optional[LedgerSummary] = None) -> Dict[str, Any]:
    """
    Aggregate realized P&L statistics.

    win_rate = wins / (wins + losses) * 100; break-even sells count for neither.
    """
    ledger = ledger or calculate_realized_pnl(trades)
    decided = ledger.win_count + ledger.loss_count
    win_rate = ledger.win_count / decided * 100 if decided else 0.0

    sells = [
        {"time": entry.trade.time, "pnl": entry.pnl}
        for entry in ledger.entries
        if entry.side == "SELL" and entry.trade.time is not None
    ]
    pnl_curve: List[Dict[str, Any]] = []
    daily_pnl: List[Dict[str, Any]] = []
    if sells:
        df = pd.DataFrame(sells)
        df["time"] = pd.to_datetime(df["time"])
        df = df.sort_values("time", kind="stable")
        df["cumulative_pnl"] = df["pnl"].cumsum()
        pnl_curve = [
            {"time": row.time.isoformat(), "pnl": float(row.pnl), "cumulative_pnl": float(row.cumulative_pnl)}
            for row in df.itertuples(index=False)
        ]
        daily = df.groupby(df["time"].dt.date)["pnl"].sum()
        daily_pnl = [{"date": day.isoformat(), "pnl": float(pnl)} for day, pnl in daily.items()]

    return {
        "total_checks": total_checks,
        "trades_executed": len(trades),
        "total_pnl": ledger.realized_pnl,
        "win_count": ledger.win_count,
        "loss_count": ledger.loss_count,
        "win_rate": win_rate,
        "open_quantity": ledger.open_quantity,
        "average_entry_price": ledger.average_entry_price,
        "pnl_curve": pnl_curve,
        "daily_pnl": daily_pnl,
    }


class PerformanceService:
    """Builds reports from the store with a last-known fallback per symbol."""

    def __init__(self, store: StateStore):
        self.store = store
        self._last_known: Dict[str, Dict[str, Any]] = {}

    async def get_report(self, symbol: Optional[str] = None) -> Dict[str, Any]:
        key = symbol or "*"
        try:
            trades = await self.store.list_trades(symbol)
            total_checks = await self.store.count_logs("decision")
        except PersistenceError as e:
            cached = self._last_known.get(key)
            if cached is None:
                raise
            logger.warning(f"Trade history unavailable, serving stale report for {key}: {e}")
            return {**cached, "stale": True}

        ledger = calculate_realized_pnl(trades)
        report = {
            "stats": calculate_stats(trades, total_checks, ledger),
            "trades": build_trade_history(trades, ledger),
            "generated_at": datetime.utcnow().isoformat(),
            "stale": False,
        }
        self._last_known[key] = report
        return report
