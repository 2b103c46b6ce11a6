"""
Tests for backend/autotrader/indicators/market_snapshot.py
"""

import pytest

from autotrader.exceptions import DataError, InsufficientDataError
from autotrader.indicators import MIN_CANDLES, analyze_indicators
from autotrader.indicators.market_snapshot import TRAILING_WINDOW, classify_band, validate_candles
from autotrader.indicators.signal_aggregator import Recommendation, SignalReading


class TestValidateCandles:
    def test_too_few_candles(self, make_candles):
        """Failure: 49 candles is below the minimum."""
        candles = make_candles([100.0] * (MIN_CANDLES - 1))
        with pytest.raises(InsufficientDataError) as exc_info:
            validate_candles(candles)
        assert exc_info.value.available == MIN_CANDLES - 1
        assert exc_info.value.required == MIN_CANDLES
        assert exc_info.value.status_code == 422

    def test_out_of_order_rejected(self, make_candles):
        candles = make_candles([100.0] * 60)
        candles[10], candles[11] = candles[11], candles[10]
        with pytest.raises(DataError, match="strictly increasing"):
            validate_candles(candles)

    def test_duplicate_open_time_rejected(self, make_candles):
        candles = make_candles([100.0] * 60)
        candles[20] = candles[19]
        with pytest.raises(DataError):
            validate_candles(candles)

    def test_exactly_minimum_is_accepted(self, make_candles):
        validate_candles(make_candles([100.0] * MIN_CANDLES))


class TestClassifyBand:
    @pytest.mark.parametrize("value,expected", [
        (29.9, SignalReading.OVERSOLD),
        (30.0, SignalReading.NEUTRAL),
        (70.0, SignalReading.NEUTRAL),
        (70.1, SignalReading.OVERBOUGHT),
    ])
    def test_thresholds_are_strict(self, value, expected):
        assert classify_band(value, 30, 70) == expected


class TestAnalyzeIndicators:
    def test_uptrend_snapshot(self, uptrend_candles):
        analysis = analyze_indicators(uptrend_candles)
        snapshot = analysis.snapshot

        assert snapshot.current_price == uptrend_candles[-1].close
        assert snapshot.rsi == 100.0
        assert snapshot.signals.rsi == SignalReading.OVERBOUGHT
        assert snapshot.signals.trend == SignalReading.UPTREND
        assert snapshot.signals.momentum == SignalReading.BULLISH
        assert snapshot.signals.stoch == SignalReading.OVERBOUGHT
        assert snapshot.signals.bb == SignalReading.NEUTRAL
        assert snapshot.sma20 > snapshot.sma50
        # Conflicting overbought vs trend readings stay inside the hysteresis band
        assert analysis.strength.recommendation == Recommendation.HOLD

    def test_downtrend_is_oversold(self, make_candles):
        analysis = analyze_indicators(make_candles([200.0 - i * 0.5 for i in range(60)]))
        signals = analysis.snapshot.signals
        assert signals.rsi == SignalReading.OVERSOLD
        assert signals.trend == SignalReading.DOWNTREND
        assert signals.momentum == SignalReading.BEARISH

    def test_trailing_series_bounded(self, uptrend_candles):
        analysis = analyze_indicators(uptrend_candles)
        for name, values in analysis.series.items():
            assert 0 < len(values) <= TRAILING_WINDOW, name
        assert analysis.series["rsi"][-1] == analysis.snapshot.rsi

    def test_to_dict_shape(self, uptrend_candles):
        data = analyze_indicators(uptrend_candles).to_dict()
        indicators = data["indicators"]
        assert set(indicators) >= {
            "rsi", "macd", "bollinger_bands", "stochastic", "atr", "sma", "ema", "vwap",
        }
        assert indicators["rsi"]["signal"] == "OVERBOUGHT"
        assert data["strength"]["recommendation"] == "HOLD"

    def test_insufficient_data_raises(self, make_candles):
        with pytest.raises(InsufficientDataError):
            analyze_indicators(make_candles([100.0] * 10))

    def test_pure_and_repeatable(self, uptrend_candles):
        first = analyze_indicators(uptrend_candles).to_dict()
        second = analyze_indicators(uptrend_candles).to_dict()
        assert first == second
