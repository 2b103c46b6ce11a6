"""
FIFO realized P&L ledger.

Replays a trade history in time order: every BUY opens a lot, every SELL
consumes lots from the front of the queue and realizes
(sell price - lot price) x consumed quantity. The ledger is a pure fold:
inputs are never mutated and lots are rebuilt on every call, so it is
always safe to recompute from the full history.

Trades are duck-typed: anything with ``side``, ``price``, ``quantity``
and ``time`` works (ORM rows, dataclasses, SimpleNamespace).
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, List, Optional, Sequence

# Float residue below this is treated as fully consumed
QTY_EPSILON = 1e-12

BUY_STATUSES = ("OPEN", "PARTIALLY_CLOSED", "CLOSED")
SELL_STATUSES = ("EXIT", "PARTIAL_EXIT")


@dataclass
class Lot:
    price: float
    remaining_qty: float
    trade_index: int


@dataclass
class LedgerEntry:
    """A trade annotated with its ledger outcome."""

    trade: Any
    side: str
    status: str
    # SELL: realized P&L of the matched quantity; BUY: None
    pnl: Optional[float] = None
    # BUY: quantity still open after replay; SELL: 0
    remaining_qty: float = 0.0
    # SELL: quantity with no cost basis (sold more than was bought)
    unmatched_qty: float = 0.0


@dataclass
class LedgerSummary:
    entries: List[LedgerEntry] = field(default_factory=list)
    open_lots: List[Lot] = field(default_factory=list)
    realized_pnl: float = 0.0
    win_count: int = 0
    loss_count: int = 0

    @property
    def open_quantity(self) -> float:
        return sum(lot.remaining_qty for lot in self.open_lots)

    @property
    def average_entry_price(self) -> Optional[float]:
        """Quantity-weighted cost of the lots still open."""
        qty = self.open_quantity
        if qty <= QTY_EPSILON:
            return None
        return sum(lot.price * lot.remaining_qty for lot in self.open_lots) / qty


def _sort_key(indexed):
    index, trade = indexed
    time = getattr(trade, "time", None)
    # Trades without a timestamp keep their input position at the front
    return (time is not None, time or datetime.min, index)


def _buy_status(original_qty: float, remaining_qty: float) -> str:
    if remaining_qty <= QTY_EPSILON:
        return "CLOSED"
    if remaining_qty < original_qty - QTY_EPSILON:
        return "PARTIALLY_CLOSED"
    return "OPEN"


def calculate_realized_pnl(trades: Sequence[Any]) -> LedgerSummary:
    """
    Replay ``trades`` (any order; sorted by time, ties keep input order)
    and return per-trade pnl/status plus the lots left open.
    """
    ordered = [trade for _, trade in sorted(enumerate(trades), key=_sort_key)]

    entries: List[LedgerEntry] = []
    queue: Deque[Lot] = deque()
    summary = LedgerSummary()

    for index, trade in enumerate(ordered):
        side = str(trade.side).upper()
        price = float(trade.price)
        quantity = float(trade.quantity)

        if side == "BUY":
            lot = Lot(price=price, remaining_qty=quantity, trade_index=index)
            queue.append(lot)
            entries.append(LedgerEntry(trade=trade, side=side, status="OPEN", remaining_qty=quantity))
            continue

        pnl = 0.0
        remaining_to_sell = quantity
        while remaining_to_sell > QTY_EPSILON and queue:
            lot = queue[0]
            take = min(remaining_to_sell, lot.remaining_qty)
            pnl += (price - lot.price) * take
            remaining_to_sell -= take
            lot.remaining_qty -= take
            if lot.remaining_qty <= QTY_EPSILON:
                lot.remaining_qty = 0.0
                queue.popleft()

        unmatched = remaining_to_sell if remaining_to_sell > QTY_EPSILON else 0.0
        entries.append(LedgerEntry(
            trade=trade,
            side=side,
            status="EXIT" if unmatched == 0.0 else "PARTIAL_EXIT",
            pnl=pnl,
            unmatched_qty=unmatched,
        ))
        summary.realized_pnl += pnl
        if pnl > 0:
            summary.win_count += 1
        elif pnl < 0:
            summary.loss_count += 1

    # Lot objects hold the final remaining quantities; reflect them on the BUY entries
    remaining_by_index = {lot.trade_index: lot.remaining_qty for lot in queue}
    for index, entry in enumerate(entries):
        if entry.side != "BUY":
            continue
        remaining = remaining_by_index.get(index, 0.0)
        entry.remaining_qty = remaining
        entry.status = _buy_status(float(entry.trade.quantity), remaining)

    summary.entries = entries
    summary.open_lots = list(queue)
    return summary
