"""
Prompt templates for the decision oracle

Standardized prompts shared by every AI provider (Gemini, Claude, OpenAI)
so their answers are directly comparable. Both decision prompts demand a
bare JSON object in camelCase, which autotrader.schemas.decision accepts.
"""

from typing import Any, Dict, Optional, Sequence

from autotrader.indicators import MarketAnalysis
from autotrader.schemas.market import Candle, MarketStats
from autotrader.trading_engine.position_manager import OpenPosition


def _fmt(value: Optional[float], digits: int = 2) -> str:
    return "N/A" if value is None else f"{value:.{digits}f}"


def _candle_lines(candles: Sequence[Candle], count: int, label: str) -> str:
    lines = []
    for i, c in enumerate(candles[-count:], start=1):
        lines.append(
            f"- {label}{i}: O: ${c.open:.2f} H: ${c.high:.2f} L: ${c.low:.2f} C: ${c.close:.2f} V: {c.volume:.2f}"
        )
    return "\n".join(lines)


def _indicator_lines(analysis: MarketAnalysis) -> str:
    s = analysis.snapshot
    sig = s.signals.to_dict()
    return f"""- **RSI (14)**: {_fmt(s.rsi)} ({sig['rsi']})
- **MACD**: {_fmt(s.macd, 4)} | Signal: {_fmt(s.macd_signal, 4)} | Histogram: {_fmt(s.macd_histogram, 4)} ({sig['macd']})
- **Bollinger Bands**: Upper: ${_fmt(s.bb_upper)} | Middle: ${_fmt(s.bb_middle)} | Lower: ${_fmt(s.bb_lower)} ({sig['bb']})
- **Stochastic**: K: {_fmt(s.stoch_k)} | D: {_fmt(s.stoch_d)} ({sig['stoch']})
- **ATR**: {_fmt(s.atr, 4)}
- **SMA**: SMA20: ${_fmt(s.sma20)} | SMA50: ${_fmt(s.sma50)} ({sig['trend']})
- **EMA**: EMA12: ${_fmt(s.ema12)} | EMA26: ${_fmt(s.ema26)} ({sig['momentum']})
- **VWAP**: ${_fmt(s.vwap)} ({sig['vwap']})
- **Signal tally**: {analysis.strength.bullish} bullish / {analysis.strength.bearish} bearish ({analysis.strength.recommendation.value})"""


def build_single_decision_prompt(
    market: MarketStats,
    analysis: MarketAnalysis,
    candles: Sequence[Candle],
) -> str:
    """One-shot BUY/SELL/HOLD analysis for a single symbol."""
    return f"""You are an expert cryptocurrency trading analyst. Analyze the following market data and technical indicators to make a trading decision.

## Market Data
- **Symbol**: {market.symbol}
- **Current Price**: ${analysis.snapshot.current_price:.2f}
- **24h Change**: {market.price_change_percent}%
- **24h High**: ${market.high_price}
- **24h Low**: ${market.low_price}
- **24h Volume**: {market.volume}

## Technical Indicators
{_indicator_lines(analysis)}

## Recent Price Action (Last 5 Candles)
{_candle_lines(candles, 5, "Candle ")}

## Analysis Request
Based on the above data, provide a trading decision. Consider:
1. Overall trend direction
2. Momentum indicators
3. Overbought/oversold conditions
4. Support and resistance levels
5. Risk management

**IMPORTANT**: Respond ONLY with a valid JSON object in this exact format, no markdown, no explanation outside JSON:
{{
  "action": "BUY" | "SELL" | "HOLD",
  "confidence": 0.0-1.0,
  "reason": "Brief explanation of your decision",
  "entryPrice": <suggested entry price or null>,
  "stopLoss": <suggested stop loss price>,
  "takeProfit": <suggested take profit price>,
  "riskRewardRatio": <calculated risk/reward ratio>,
  "timeframe": "short" | "medium" | "long",
  "keyFactors": ["factor1", "factor2", "factor3"]
}}"""


def _position_lines(positions: Sequence[OpenPosition]) -> str:
    if not positions:
        return "No open positions"
    lines = []
    for i, p in enumerate(positions, start=1):
        pnl = p.unrealized_pnl_percent
        pnl_str = "N/A" if pnl is None else f"{pnl:+.2f}%"
        lines.append(
            f"  Position {i}:\n"
            f"    - Asset: {p.asset}\n"
            f"    - Entry Price: ${_fmt(p.entry_price)}\n"
            f"    - Quantity: {p.quantity}\n"
            f"    - Side: LONG\n"
            f"    - P&L: {pnl_str}"
        )
    return "\n".join(lines)


def _trade_lines(trades: Sequence[Any]) -> str:
    # Newest first, five at most
    recent = list(trades)[-5:][::-1]
    if not recent:
        return "No recent trades recorded"
    return "\n  ".join(
        f"Trade {i}: {t.side} at ${float(t.price):.2f} ({t.quantity} units)" for i, t in enumerate(recent, start=1)
    )


def build_portfolio_decision_prompt(
    market: MarketStats,
    analysis: MarketAnalysis,
    candles: Sequence[Candle],
    positions: Sequence[OpenPosition],
    trade_history: Sequence[Any],
    order_quantity: float,
    cycle_description: str = "every 1 hour",
) -> str:
    """Position management + new order decision for the auto-trading cycle."""
    return f"""You are an expert cryptocurrency trading bot manager. You are managing an automated spot trading system that runs {cycle_description}.

## Current Market Data
- **Symbol**: {market.symbol}
- **Current Price**: ${analysis.snapshot.current_price:.2f}
- **24h Change**: {market.price_change_percent}%
- **24h High**: ${market.high_price}
- **24h Low**: ${market.low_price}

## Technical Indicators
{_indicator_lines(analysis)}

## Recent Price Action (Last 20 Candles)
{_candle_lines(candles, 20, "C")}

## Current Portfolio Status
{_position_lines(positions)}

## Recent Trade History (Context)
  {_trade_lines(trade_history)}

## Your Task
Analyze the market and your current exposure. Decide what actions to take:

1. **For EACH existing position**: Decide if we should CLOSE (take profit or stop loss) or HOLD.
2. **For new trades**: If exposure is low, should we OPEN a new BUY or SELL position?

Rules:
- Don't overtrade. Only enter when you are confident.
- Spot only: a SELL needs an existing balance, a BUY is skipped while a position is open.
- If market is uncertain, HOLD is the best choice.
- Always provide a clear, logical reason for your decision.

**IMPORTANT**: Respond ONLY with a valid JSON object in this format:
{{
  "positionActions": [
    {{
      "asset": "BTC",
      "action": "CLOSE" | "HOLD",
      "reason": "specific reason for this asset"
    }}
  ],
  "newOrder": {{
    "shouldOpen": true | false,
    "side": "BUY" | "SELL" | null,
    "quantity": {order_quantity},
    "reason": "explanation for new trade",
    "stopLoss": <price>,
    "takeProfit": <price>
  }},
  "overallStrategy": "Brief summary",
  "marketOutlook": "bullish" | "bearish" | "neutral",
  "confidence": 0.0-1.0,
  "nextCheckRecommendation": "What to watch"
}}"""


def build_sentiment_prompt(symbol: str) -> str:
    return f"""Analyze the current market sentiment for {symbol} cryptocurrency.
Consider general crypto market conditions and provide a sentiment analysis.

Respond ONLY with valid JSON:
{{
  "sentiment": "bullish" | "bearish" | "neutral",
  "score": 0.0-1.0,
  "factors": ["factor1", "factor2"]
}}"""


def describe_prompt_context(analysis: MarketAnalysis) -> Dict[str, Any]:
    """Compact decision context persisted alongside decision log entries."""
    return {
        "current_price": analysis.snapshot.current_price,
        "signals": analysis.snapshot.signals.to_dict(),
        "strength": analysis.strength.to_dict(),
    }
