"""Tests for trading_engine/exposure_gates.py"""

from autotrader.trading_engine.exposure_gates import (
    ALLOWED,
    check_buy_exposure,
    check_confidence,
    check_sell_exposure,
)


class TestCheckConfidence:
    def test_above_threshold_allowed(self):
        assert check_confidence(0.76, 0.75) is ALLOWED

    def test_equal_to_threshold_rejected(self):
        """Edge case: the threshold must be strictly exceeded."""
        result = check_confidence(0.75, 0.75)
        assert not result
        assert "75%" in result.reason


class TestCheckBuyExposure:
    def test_flat_with_cash_allowed(self):
        assert check_buy_exposure("BTC", 0.0, "USDT", 1000.0, 0.0001, 10.0)

    def test_existing_position_blocks_buy(self):
        result = check_buy_exposure("BTC", 0.5, "USDT", 1000.0, 0.0001, 10.0)
        assert not result
        assert "no pyramiding" in result.reason

    def test_dust_does_not_block(self):
        assert check_buy_exposure("BTC", 0.00001, "USDT", 1000.0, 0.0001, 10.0)

    def test_insufficient_quote(self):
        result = check_buy_exposure("BTC", 0.0, "USDT", 10.0, 0.0001, 10.0)
        assert not result
        assert "Insufficient USDT" in result.reason


class TestCheckSellExposure:
    def test_covered_sell_allowed(self):
        assert check_sell_exposure("BTC", 0.01, 0.01)

    def test_uncovered_sell_rejected(self):
        result = check_sell_exposure("BTC", 0.001, 0.01)
        assert not result
        assert "Insufficient BTC" in result.reason

    def test_non_positive_quantity_rejected(self):
        assert not check_sell_exposure("BTC", 1.0, 0.0)
