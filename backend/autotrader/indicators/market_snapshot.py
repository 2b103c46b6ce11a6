"""
Market Snapshot

Runs every indicator family over a candle window and classifies the
latest values into categorical signals. The snapshot is derived fresh on
each evaluation and is only ever persisted as decision context.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from autotrader.exceptions import DataError, InsufficientDataError
from autotrader.indicator_calculator import IndicatorCalculator
from autotrader.indicators.signal_aggregator import (
    IndicatorSignals,
    SignalReading,
    SignalStrength,
    aggregate_signals,
)
from autotrader.schemas.market import Candle

logger = logging.getLogger(__name__)

MIN_CANDLES = 50
TRAILING_WINDOW = 20

RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70
STOCH_OVERSOLD = 20
STOCH_OVERBOUGHT = 80


@dataclass
class IndicatorSnapshot:
    """Current value of each indicator family plus its categorical signal."""

    current_price: float
    rsi: float
    macd: float
    macd_signal: float
    macd_histogram: float
    bb_upper: float
    bb_middle: float
    bb_lower: float
    stoch_k: float
    stoch_d: Optional[float]
    atr: float
    sma20: float
    sma50: float
    ema12: float
    ema26: float
    vwap: float
    signals: IndicatorSignals

    def to_dict(self) -> Dict[str, Any]:
        """Nested per-family view used for prompts, API payloads and logs."""
        signals = self.signals.to_dict()
        return {
            "current_price": self.current_price,
            "rsi": {"value": self.rsi, "signal": signals["rsi"]},
            "macd": {
                "value": self.macd,
                "signal": self.macd_signal,
                "histogram": self.macd_histogram,
                "trend": signals["macd"],
            },
            "bollinger_bands": {
                "upper": self.bb_upper,
                "middle": self.bb_middle,
                "lower": self.bb_lower,
                "signal": signals["bb"],
            },
            "stochastic": {"k": self.stoch_k, "d": self.stoch_d, "signal": signals["stoch"]},
            "atr": self.atr,
            "sma": {"sma20": self.sma20, "sma50": self.sma50, "trend": signals["trend"]},
            "ema": {"ema12": self.ema12, "ema26": self.ema26, "momentum": signals["momentum"]},
            "vwap": {"value": self.vwap, "signal": signals["vwap"]},
        }


@dataclass
class MarketAnalysis:
    snapshot: IndicatorSnapshot
    strength: SignalStrength
    # Trailing TRAILING_WINDOW values per series, oldest first
    series: Dict[str, List[float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_price": self.snapshot.current_price,
            "indicators": self.snapshot.to_dict(),
            "signals": self.snapshot.signals.to_dict(),
            "strength": self.strength.to_dict(),
            "series": self.series,
        }


def validate_candles(candles: Sequence[Candle], min_candles: int = MIN_CANDLES):
    """Reject short or out-of-order series before any math runs."""
    if len(candles) < min_candles:
        raise InsufficientDataError(len(candles), min_candles)
    for previous, current in zip(candles, candles[1:]):
        if current.open_time <= previous.open_time:
            raise DataError(
                f"Candle series must be strictly increasing in time "
                f"(open_time {current.open_time} follows {previous.open_time})"
            )


def classify_band(value: float, lower: float, upper: float) -> SignalReading:
    if value < lower:
        return SignalReading.OVERSOLD
    if value > upper:
        return SignalReading.OVERBOUGHT
    return SignalReading.NEUTRAL


def analyze_indicators(
    candles: Sequence[Candle],
    calculator: Optional[IndicatorCalculator] = None,
) -> MarketAnalysis:
    """
    Compute the full indicator snapshot for an ascending candle window

    Raises:
        InsufficientDataError: fewer than MIN_CANDLES candles
        DataError: open times not strictly increasing
    """
    validate_candles(candles)
    calc = calculator or IndicatorCalculator()

    closes = [c.close for c in candles]
    highs = [c.high for c in candles]
    lows = [c.low for c in candles]
    volumes = [c.volume for c in candles]
    current_price = closes[-1]

    rsi = calc.calculate_rsi(closes, 14)
    macd = calc.calculate_macd(closes, 12, 26, 9)
    bb = calc.calculate_bollinger_bands(closes, 20, 2.0)
    stoch = calc.calculate_stochastic(highs, lows, closes, 14, 3)
    atr = calc.calculate_atr(highs, lows, closes, 14)
    sma20 = calc.calculate_sma(closes, 20)
    sma50 = calc.calculate_sma(closes, 50)
    ema12 = calc.calculate_ema(closes, 12)
    ema26 = calc.calculate_ema(closes, 26)
    vwap = calc.calculate_vwap(highs, lows, closes, volumes)

    signals = IndicatorSignals(
        rsi=classify_band(rsi[-1], RSI_OVERSOLD, RSI_OVERBOUGHT),
        macd=SignalReading.BULLISH if macd.current_macd > macd.current_signal else SignalReading.BEARISH,
        bb=classify_band(current_price, bb.lower[-1], bb.upper[-1]),
        stoch=classify_band(stoch.k[-1], STOCH_OVERSOLD, STOCH_OVERBOUGHT),
        trend=SignalReading.UPTREND if sma20[-1] > sma50[-1] else SignalReading.DOWNTREND,
        momentum=SignalReading.BULLISH if ema12[-1] > ema26[-1] else SignalReading.BEARISH,
        vwap=SignalReading.ABOVE_VWAP if current_price > vwap[-1] else SignalReading.BELOW_VWAP,
    )

    snapshot = IndicatorSnapshot(
        current_price=current_price,
        rsi=rsi[-1],
        macd=macd.current_macd,
        macd_signal=macd.current_signal,
        macd_histogram=macd.current_histogram,
        bb_upper=bb.upper[-1],
        bb_middle=bb.middle[-1],
        bb_lower=bb.lower[-1],
        stoch_k=stoch.k[-1],
        stoch_d=stoch.d[-1] if stoch.d else None,
        atr=atr[-1],
        sma20=sma20[-1],
        sma50=sma50[-1],
        ema12=ema12[-1],
        ema26=ema26[-1],
        vwap=vwap[-1],
        signals=signals,
    )
    strength = aggregate_signals(signals)

    series = {
        "rsi": rsi[-TRAILING_WINDOW:],
        "macd_line": macd.macd[-TRAILING_WINDOW:],
        "macd_signal": macd.signal[-TRAILING_WINDOW:],
        "histogram": macd.histogram[-TRAILING_WINDOW:],
        "bb_upper": bb.upper[-TRAILING_WINDOW:],
        "bb_lower": bb.lower[-TRAILING_WINDOW:],
        "stoch_k": stoch.k[-TRAILING_WINDOW:],
        "atr": atr[-TRAILING_WINDOW:],
        "vwap": vwap[-TRAILING_WINDOW:],
    }

    logger.debug(
        f"Analyzed {len(candles)} candles: price={current_price}, "
        f"bullish={strength.bullish}, bearish={strength.bearish}, rec={strength.recommendation.value}"
    )
    return MarketAnalysis(snapshot=snapshot, strength=strength, series=series)
