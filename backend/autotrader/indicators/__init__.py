"""
Indicator Analysis Package

Builds on the pure series math in autotrader.indicator_calculator:
- market_snapshot: current indicator values + categorical signals for a candle window
- signal_aggregator: bullish/bearish tally and BUY/SELL/HOLD recommendation
"""

from .market_snapshot import (
    MIN_CANDLES,
    IndicatorSnapshot,
    MarketAnalysis,
    analyze_indicators,
)
from .signal_aggregator import (
    IndicatorSignals,
    Recommendation,
    SignalReading,
    SignalStrength,
    aggregate_signals,
    recommend,
    tally_signals,
)

__all__ = [
    "MIN_CANDLES",
    "IndicatorSignals",
    "IndicatorSnapshot",
    "MarketAnalysis",
    "Recommendation",
    "SignalReading",
    "SignalStrength",
    "aggregate_signals",
    "analyze_indicators",
    "recommend",
    "tally_signals",
]
