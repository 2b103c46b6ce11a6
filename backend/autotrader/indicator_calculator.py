"""
Indicator Calculator

Pure series math over candle closes/highs/lows/volumes. Every method
returns the full indicator series (oldest first) so callers can take the
current value (``series[-1]``) or a trailing window. A series shorter
than the indicator's warm-up yields an empty list, never padded values.

Supports:
- SMA (Simple Moving Average)
- EMA (Exponential Moving Average, SMA-seeded)
- RSI (Wilder smoothing)
- MACD (EMA fast/slow, right-aligned)
- Bollinger Bands (population standard deviation)
- ATR (Average True Range, Wilder smoothing)
- Stochastic Oscillator (%K / %D)
- VWAP (running, from the first supplied candle)
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence


def _last(series: Sequence[float]) -> Optional[float]:
    return series[-1] if series else None


@dataclass
class MACDResult:
    macd: List[float] = field(default_factory=list)
    signal: List[float] = field(default_factory=list)
    histogram: List[float] = field(default_factory=list)

    @property
    def current_macd(self) -> Optional[float]:
        return _last(self.macd)

    @property
    def current_signal(self) -> Optional[float]:
        return _last(self.signal)

    @property
    def current_histogram(self) -> Optional[float]:
        return _last(self.histogram)


@dataclass
class BollingerResult:
    upper: List[float] = field(default_factory=list)
    middle: List[float] = field(default_factory=list)
    lower: List[float] = field(default_factory=list)


@dataclass
class StochasticResult:
    k: List[float] = field(default_factory=list)
    d: List[float] = field(default_factory=list)


class IndicatorCalculator:
    """
    Calculates technical indicator series from price data

    Stateless: one instance can be shared by the controller and any
    reporting path concurrently.
    """

    @staticmethod
    def _check_period(period: int):
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")

    def calculate_sma(self, values: Sequence[float], period: int) -> List[float]:
        """Calculate SMA; output[i] is the mean of values[i : i + period]"""
        self._check_period(period)
        if len(values) < period:
            return []

        result = []
        window_sum = sum(values[:period])
        result.append(window_sum / period)
        for i in range(period, len(values)):
            window_sum += values[i] - values[i - period]
            result.append(window_sum / period)
        return result

    def calculate_ema(self, values: Sequence[float], period: int) -> List[float]:
        """Calculate EMA seeded with the SMA of the first ``period`` values"""
        self._check_period(period)
        if len(values) < period:
            return []

        multiplier = 2 / (period + 1)

        # Start with SMA for initial value
        ema = sum(values[:period]) / period
        result = [ema]

        for price in values[period:]:
            ema = (price - ema) * multiplier + ema
            result.append(ema)

        return result

    def calculate_rsi(self, closes: Sequence[float], period: int = 14) -> List[float]:
        """
        Calculate RSI (Relative Strength Index)

        The first value comes from the simple-mean seed of the first
        ``period`` deltas; later values use Wilder's smoothing. An average
        loss of zero yields exactly 100.
        """
        self._check_period(period)
        if len(closes) < period + 1:
            return []

        changes = [closes[i] - closes[i - 1] for i in range(1, len(closes))]
        gains = [change if change > 0 else 0.0 for change in changes]
        losses = [-change if change < 0 else 0.0 for change in changes]

        avg_gain = sum(gains[:period]) / period
        avg_loss = sum(losses[:period]) / period
        result = [self._rsi_value(avg_gain, avg_loss)]

        for i in range(period, len(gains)):
            avg_gain = (avg_gain * (period - 1) + gains[i]) / period
            avg_loss = (avg_loss * (period - 1) + losses[i]) / period
            result.append(self._rsi_value(avg_gain, avg_loss))

        return result

    @staticmethod
    def _rsi_value(avg_gain: float, avg_loss: float) -> float:
        if avg_loss == 0:
            return 100.0
        rs = avg_gain / avg_loss
        return 100 - (100 / (1 + rs))

    def calculate_macd(
        self,
        closes: Sequence[float],
        fast_period: int = 12,
        slow_period: int = 26,
        signal_period: int = 9
    ) -> MACDResult:
        """
        Calculate MACD line, signal line and histogram

        The fast EMA starts earlier than the slow one, so both are aligned
        on their most recent values before subtracting. The histogram is
        aligned the same way against the (shorter) signal line.
        """
        fast_ema = self.calculate_ema(closes, fast_period)
        slow_ema = self.calculate_ema(closes, slow_period)
        if not fast_ema or not slow_ema:
            return MACDResult()

        length = min(len(fast_ema), len(slow_ema))
        aligned_fast = fast_ema[-length:]
        aligned_slow = slow_ema[-length:]
        macd_line = [f - s for f, s in zip(aligned_fast, aligned_slow)]

        signal_line = self.calculate_ema(macd_line, signal_period)
        offset = len(macd_line) - len(signal_line)
        histogram = [macd_line[i + offset] - signal_line[i] for i in range(len(signal_line))]

        return MACDResult(macd=macd_line, signal=signal_line, histogram=histogram)

    def calculate_bollinger_bands(
        self,
        closes: Sequence[float],
        period: int = 20,
        std_dev: float = 2.0
    ) -> BollingerResult:
        """Calculate Bollinger Bands around SMA(period) using population stdev"""
        middle = self.calculate_sma(closes, period)
        upper = []
        lower = []

        for idx, mean in enumerate(middle):
            window = closes[idx:idx + period]
            variance = sum((p - mean) ** 2 for p in window) / period
            std = math.sqrt(variance)
            upper.append(mean + std_dev * std)
            lower.append(mean - std_dev * std)

        return BollingerResult(upper=upper, middle=middle, lower=lower)

    def calculate_atr(
        self,
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        period: int = 14
    ) -> List[float]:
        """Calculate ATR: SMA seed of the first true ranges, then Wilder smoothing"""
        self._check_period(period)
        true_ranges = []
        for i in range(1, len(closes)):
            true_ranges.append(max(
                highs[i] - lows[i],
                abs(highs[i] - closes[i - 1]),
                abs(lows[i] - closes[i - 1]),
            ))

        if len(true_ranges) < period:
            return []

        atr = sum(true_ranges[:period]) / period
        result = [atr]
        for tr in true_ranges[period:]:
            atr = (atr * (period - 1) + tr) / period
            result.append(atr)
        return result

    def calculate_stochastic(
        self,
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        k_period: int = 14,
        d_period: int = 3
    ) -> StochasticResult:
        """
        Calculate Stochastic Oscillator

        %K over each trailing window of ``k_period`` bars; a window with
        no range (highest == lowest) reads 50. %D is SMA(d_period) of %K.
        """
        self._check_period(k_period)
        k_values = []
        for i in range(k_period - 1, len(closes)):
            highest_high = max(highs[i - k_period + 1:i + 1])
            lowest_low = min(lows[i - k_period + 1:i + 1])
            if highest_high == lowest_low:
                k_values.append(50.0)
            else:
                k_values.append((closes[i] - lowest_low) / (highest_high - lowest_low) * 100)

        d_values = self.calculate_sma(k_values, d_period)
        return StochasticResult(k=k_values, d=d_values)

    def calculate_vwap(
        self,
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        volumes: Sequence[float],
    ) -> List[float]:
        """
        Calculate running VWAP from the start of the supplied series

        Not session-anchored: a new series window restarts the accumulation.
        """
        result = []
        cumulative_tpv = 0.0
        cumulative_volume = 0.0

        for high, low, close, volume in zip(highs, lows, closes, volumes):
            typical_price = (high + low + close) / 3
            cumulative_tpv += typical_price * volume
            cumulative_volume += volume
            # Zero volume so far: the typical price is the only sensible average
            result.append(cumulative_tpv / cumulative_volume if cumulative_volume > 0 else typical_price)

        return result
