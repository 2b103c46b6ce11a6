"""
Deterministic indicator-based decisions

Used whenever the AI oracle is unconfigured, times out, errors or returns
something unparsable. Direction follows the signal aggregator's tally
(same one-vote hysteresis); confidence grows with the tally margin.
"""

from typing import Sequence

from autotrader.indicators import MarketAnalysis, Recommendation, SignalReading
from autotrader.schemas.decision import NewOrder, PortfolioDecision, PositionAction, SingleAssetDecision
from autotrader.trading_engine.position_manager import OpenPosition

FALLBACK_SOURCE = "indicator-fallback"
BASE_CONFIDENCE = 0.5
CONFIDENCE_PER_VOTE = 0.1
MAX_CONFIDENCE = 0.9


def margin_confidence(bullish: int, bearish: int) -> float:
    return min(MAX_CONFIDENCE, BASE_CONFIDENCE + abs(bullish - bearish) * CONFIDENCE_PER_VOTE)


def _outlook(analysis: MarketAnalysis) -> str:
    trend = analysis.snapshot.signals.trend
    if trend == SignalReading.UPTREND:
        return "bullish"
    if trend == SignalReading.DOWNTREND:
        return "bearish"
    return "neutral"


def fallback_single_decision(analysis: MarketAnalysis) -> SingleAssetDecision:
    strength = analysis.strength
    signals = analysis.snapshot.signals
    action = strength.recommendation.value
    confidence = BASE_CONFIDENCE
    if strength.recommendation != Recommendation.HOLD:
        confidence = margin_confidence(strength.bullish, strength.bearish)

    return SingleAssetDecision(
        action=action,
        confidence=confidence,
        reason=(
            f"Based on technical analysis: RSI {signals.rsi.value}, MACD {signals.macd.value}, "
            f"Trend {signals.trend.value}. Bullish signals: {strength.bullish}, "
            f"Bearish signals: {strength.bearish}."
        ),
        risk_reward_ratio=2.0,
        timeframe="short",
        key_factors=[
            f"RSI: {signals.rsi.value}",
            f"MACD: {signals.macd.value}",
            f"Trend: {signals.trend.value}",
        ],
        source=FALLBACK_SOURCE,
    )


def fallback_portfolio_decision(
    analysis: MarketAnalysis,
    positions: Sequence[OpenPosition],
    order_quantity: float,
    max_open_positions: int = 3,
) -> PortfolioDecision:
    """
    Hold every open position; propose a new order only when RSI and MACD
    agree strongly and fewer than ``max_open_positions`` are open.
    """
    signals = analysis.snapshot.signals
    strength = analysis.strength

    side = None
    if len(positions) < max_open_positions:
        if signals.rsi == SignalReading.OVERSOLD and signals.macd == SignalReading.BULLISH:
            side = "BUY"
        elif signals.rsi == SignalReading.OVERBOUGHT and signals.macd == SignalReading.BEARISH:
            side = "SELL"

    return PortfolioDecision(
        position_actions=[
            PositionAction(
                asset=position.asset,
                action="HOLD",
                reason="Maintaining position based on current market conditions",
            )
            for position in positions
        ],
        new_order=NewOrder(
            should_open=side is not None,
            side=side,
            quantity=order_quantity,
            reason=(
                f"Strong {side} signal: RSI {signals.rsi.value} with MACD {signals.macd.value}"
                if side else "No clear trading opportunity at this time"
            ),
        ),
        overall_strategy="Conservative approach - waiting for clear signals",
        market_outlook=_outlook(analysis),
        confidence=margin_confidence(strength.bullish, strength.bearish),
        next_check_recommendation="Monitor RSI and MACD for convergence signals",
        source=FALLBACK_SOURCE,
    )
