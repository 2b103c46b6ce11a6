"""
Signal Aggregator

Turns the categorical indicator readings into a bullish/bearish tally and
a BUY/SELL/HOLD recommendation. A side must lead by MORE than one signal
to win; near ties stay HOLD so the recommendation does not flip-flop.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class SignalReading(str, Enum):
    """Categorical reading of a single indicator family."""

    OVERSOLD = "OVERSOLD"
    OVERBOUGHT = "OVERBOUGHT"
    NEUTRAL = "NEUTRAL"
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    UPTREND = "UPTREND"
    DOWNTREND = "DOWNTREND"
    ABOVE_VWAP = "ABOVE_VWAP"
    BELOW_VWAP = "BELOW_VWAP"


class Recommendation(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


@dataclass(frozen=True)
class IndicatorSignals:
    """One reading per indicator family for the latest candle."""

    rsi: SignalReading
    macd: SignalReading
    bb: SignalReading
    stoch: SignalReading
    trend: SignalReading
    momentum: SignalReading
    vwap: SignalReading = SignalReading.NEUTRAL

    def to_dict(self) -> Dict[str, str]:
        return {
            "rsi": _value(self.rsi),
            "macd": _value(self.macd),
            "bb": _value(self.bb),
            "stoch": _value(self.stoch),
            "trend": _value(self.trend),
            "momentum": _value(self.momentum),
            "vwap": _value(self.vwap),
        }


@dataclass(frozen=True)
class SignalStrength:
    bullish: int
    bearish: int
    recommendation: Recommendation

    @property
    def total(self) -> int:
        return self.bullish + self.bearish

    def to_dict(self) -> Dict[str, object]:
        return {
            "bullish": self.bullish,
            "bearish": self.bearish,
            "total": self.total,
            "recommendation": _value(self.recommendation),
        }


# family -> (reading counted as bullish, reading counted as bearish)
# VWAP is informational and does not vote.
VOTING_FAMILIES: Dict[str, Tuple[SignalReading, SignalReading]] = {
    "rsi": (SignalReading.OVERSOLD, SignalReading.OVERBOUGHT),
    "macd": (SignalReading.BULLISH, SignalReading.BEARISH),
    "bb": (SignalReading.OVERSOLD, SignalReading.OVERBOUGHT),
    "stoch": (SignalReading.OVERSOLD, SignalReading.OVERBOUGHT),
    "trend": (SignalReading.UPTREND, SignalReading.DOWNTREND),
    "momentum": (SignalReading.BULLISH, SignalReading.BEARISH),
}


def _value(reading) -> str:
    return reading.value if isinstance(reading, Enum) else str(reading)


def tally_signals(signals: IndicatorSignals) -> Tuple[int, int]:
    """Count bullish and bearish votes; NEUTRAL readings count for neither."""
    bullish = 0
    bearish = 0
    for family, (bull_reading, bear_reading) in VOTING_FAMILIES.items():
        reading = getattr(signals, family)
        if reading == bull_reading:
            bullish += 1
        elif reading == bear_reading:
            bearish += 1
    return bullish, bearish


def recommend(bullish: int, bearish: int, margin: int = 1) -> Recommendation:
    """BUY/SELL only when one side leads by more than ``margin`` votes."""
    if bullish > bearish + margin:
        return Recommendation.BUY
    if bearish > bullish + margin:
        return Recommendation.SELL
    return Recommendation.HOLD


def aggregate_signals(signals: IndicatorSignals) -> SignalStrength:
    bullish, bearish = tally_signals(signals)
    return SignalStrength(
        bullish=bullish,
        bearish=bearish,
        recommendation=recommend(bullish, bearish),
    )
