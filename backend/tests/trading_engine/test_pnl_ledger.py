"""
Tests for backend/autotrader/trading_engine/pnl_ledger.py

Covers calculate_realized_pnl():
- FIFO lot matching and realized P&L
- BUY status transitions (OPEN / PARTIALLY_CLOSED / CLOSED)
- oversold SELLs (PARTIAL_EXIT with unmatched quantity)
- idempotency and prefix consistency
"""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from autotrader.trading_engine.pnl_ledger import calculate_realized_pnl

T0 = datetime(2024, 1, 1, 12, 0, 0)


def _trade(side, quantity, price, minutes=0, order_id=None):
    return SimpleNamespace(
        order_id=order_id or f"{side}-{minutes}",
        side=side,
        quantity=quantity,
        price=price,
        time=T0 + timedelta(minutes=minutes),
    )


@pytest.fixture
def worked_example():
    """BUY 1@100, BUY 1@110, SELL 1.5@120."""
    return [
        _trade("BUY", 1.0, 100.0, 0),
        _trade("BUY", 1.0, 110.0, 1),
        _trade("SELL", 1.5, 120.0, 2),
    ]


class TestFifoMatching:
    def test_worked_example(self, worked_example):
        """Happy path: (120-100)*1 + (120-110)*0.5 = 25, 0.5@110 stays open."""
        summary = calculate_realized_pnl(worked_example)

        assert summary.realized_pnl == pytest.approx(25.0)
        first_buy, second_buy, sell = summary.entries
        assert first_buy.status == "CLOSED"
        assert first_buy.remaining_qty == 0.0
        assert second_buy.status == "PARTIALLY_CLOSED"
        assert second_buy.remaining_qty == pytest.approx(0.5)
        assert sell.status == "EXIT"
        assert sell.pnl == pytest.approx(25.0)
        assert sell.unmatched_qty == 0.0

        assert len(summary.open_lots) == 1
        assert summary.open_lots[0].price == 110.0
        assert summary.open_quantity == pytest.approx(0.5)
        assert summary.average_entry_price == pytest.approx(110.0)

    def test_untouched_buy_is_open(self):
        summary = calculate_realized_pnl([_trade("BUY", 2.0, 50.0)])
        assert summary.entries[0].status == "OPEN"
        assert summary.entries[0].pnl is None
        assert summary.realized_pnl == 0.0

    def test_losing_sell_counts_as_loss(self):
        summary = calculate_realized_pnl([
            _trade("BUY", 1.0, 100.0, 0),
            _trade("SELL", 1.0, 90.0, 1),
        ])
        assert summary.realized_pnl == pytest.approx(-10.0)
        assert summary.loss_count == 1
        assert summary.win_count == 0
        assert summary.open_lots == []
        assert summary.average_entry_price is None

    def test_unsorted_input_is_replayed_by_time(self, worked_example):
        shuffled = [worked_example[2], worked_example[0], worked_example[1]]
        summary = calculate_realized_pnl(shuffled)
        assert summary.realized_pnl == pytest.approx(25.0)
        assert [e.side for e in summary.entries] == ["BUY", "BUY", "SELL"]

    def test_lowercase_side_accepted(self):
        summary = calculate_realized_pnl([
            _trade("buy", 1.0, 10.0, 0),
            _trade("sell", 1.0, 12.0, 1),
        ])
        assert summary.realized_pnl == pytest.approx(2.0)


class TestOversell:
    def test_sell_without_cost_basis(self):
        """Edge case: the unmatched portion contributes no P&L and is reported."""
        summary = calculate_realized_pnl([
            _trade("BUY", 1.0, 100.0, 0),
            _trade("SELL", 3.0, 150.0, 1),
        ])
        sell = summary.entries[1]
        assert sell.status == "PARTIAL_EXIT"
        assert sell.unmatched_qty == pytest.approx(2.0)
        assert sell.pnl == pytest.approx(50.0)
        assert summary.open_lots == []

    def test_sell_with_empty_queue(self):
        summary = calculate_realized_pnl([_trade("SELL", 1.0, 150.0)])
        assert summary.entries[0].pnl == 0.0
        assert summary.entries[0].unmatched_qty == pytest.approx(1.0)
        assert summary.win_count == 0
        assert summary.loss_count == 0

    def test_remaining_never_negative(self):
        trades = [
            _trade("BUY", 0.1, 100.0, 0),
            _trade("BUY", 0.2, 101.0, 1),
            _trade("SELL", 0.3, 102.0, 2),
            _trade("SELL", 0.3, 103.0, 3),
        ]
        summary = calculate_realized_pnl(trades)
        for entry in summary.entries:
            assert entry.remaining_qty >= 0.0
        assert all(e.status == "CLOSED" for e in summary.entries if e.side == "BUY")


class TestRecomputation:
    def test_idempotent(self, worked_example):
        first = calculate_realized_pnl(worked_example)
        second = calculate_realized_pnl(worked_example)
        assert [(e.status, e.pnl, e.remaining_qty) for e in first.entries] == \
            [(e.status, e.pnl, e.remaining_qty) for e in second.entries]
        assert first.realized_pnl == second.realized_pnl

    def test_inputs_not_mutated(self, worked_example):
        before = [(t.side, t.quantity, t.price) for t in worked_example]
        calculate_realized_pnl(worked_example)
        assert [(t.side, t.quantity, t.price) for t in worked_example] == before

    def test_prefix_consistent_with_full_history(self, worked_example):
        """SELL P&L on a prefix is unchanged once later trades are appended."""
        later = worked_example + [_trade("SELL", 0.5, 130.0, 3)]
        prefix = calculate_realized_pnl(worked_example)
        full = calculate_realized_pnl(later)

        assert full.entries[2].pnl == pytest.approx(prefix.entries[2].pnl)
        # the last SELL consumes exactly the 0.5@110 lot left by the prefix
        assert full.entries[3].pnl == pytest.approx((130.0 - 110.0) * 0.5)
        assert full.entries[1].status == "CLOSED"
        assert full.realized_pnl == pytest.approx(35.0)
