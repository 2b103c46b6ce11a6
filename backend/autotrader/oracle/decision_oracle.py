"""
Decision Oracle

Asks the configured AI provider for a trading decision and validates the
answer into the tagged Decision union. One attempt per call, bounded by
``timeout``; anything short of a valid decision (missing key, timeout,
provider error, unparsable JSON) degrades to the indicator fallback.
"""

import asyncio
import json
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Union

from autotrader.config import Settings
from autotrader.exceptions import OracleUnavailableError
from autotrader.indicators import MarketAnalysis
from autotrader.oracle.api_providers import PROVIDERS
from autotrader.oracle.fallback import fallback_portfolio_decision, fallback_single_decision
from autotrader.oracle.prompts import (
    build_portfolio_decision_prompt,
    build_sentiment_prompt,
    build_single_decision_prompt,
)
from autotrader.schemas.decision import PortfolioDecision, SingleAssetDecision, parse_decision
from autotrader.schemas.market import Candle, MarketStats
from autotrader.trading_engine.position_manager import OpenPosition

logger = logging.getLogger(__name__)

ProviderCall = Callable[[str, str], Awaitable[str]]

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)

NEUTRAL_SENTIMENT = {"sentiment": "neutral", "score": 0.5}


def parse_json_response(response_text: str) -> Dict[str, Any]:
    """Parse model output, handling markdown code fences and surrounding prose."""
    text = _FENCE_RE.sub("", response_text or "").strip()
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        # Some models wrap the object in a sentence; take the outermost braces
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise
        payload = json.loads(text[start:end + 1])
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")
    return payload


class DecisionOracle:
    """
    Provider-agnostic decision oracle with deterministic fallback.

    Args:
        provider: "gemini", "claude" or "openai"
        api_key: Key for that provider; empty means "not configured"
        timeout: Seconds allowed for one provider call
        providers: Override of the provider registry (tests)
    """

    def __init__(
        self,
        provider: str = "gemini",
        api_key: str = "",
        timeout: float = 30.0,
        providers: Optional[Dict[str, ProviderCall]] = None,
    ):
        self.provider = provider.lower()
        self.api_key = api_key
        self.timeout = timeout
        self._providers = providers if providers is not None else PROVIDERS

    @classmethod
    def from_settings(cls, settings: Settings) -> "DecisionOracle":
        keys = {
            "gemini": settings.gemini_api_key,
            "claude": settings.anthropic_api_key,
            "openai": settings.openai_api_key,
        }
        provider = settings.decision_ai_provider
        return cls(provider=provider, api_key=keys.get(provider, ""), timeout=settings.upstream_timeout_seconds)

    @property
    def available(self) -> bool:
        return bool(self.api_key) and self.provider in self._providers

    @property
    def source(self) -> str:
        return f"{self.provider}-ai"

    async def _ask(self, prompt: str) -> Dict[str, Any]:
        call = self._providers[self.provider]
        text = await asyncio.wait_for(call(prompt, self.api_key), timeout=self.timeout)
        return parse_json_response(text)

    async def decide(
        self,
        market: MarketStats,
        analysis: MarketAnalysis,
        candles: Sequence[Candle],
        positions: Optional[Sequence[OpenPosition]] = None,
        trade_history: Optional[Sequence[Any]] = None,
        mode: str = "single",
        order_quantity: float = 0.001,
        max_open_positions: int = 3,
    ) -> Union[SingleAssetDecision, PortfolioDecision]:
        """
        Return a single-asset or portfolio decision (``mode``).

        Never raises for provider trouble; raises OracleUnavailableError only
        if the indicator fallback itself cannot be produced.
        """
        positions = list(positions or [])
        trade_history = list(trade_history or [])

        if self.available:
            if mode == "portfolio":
                prompt = build_portfolio_decision_prompt(
                    market, analysis, candles, positions, trade_history, order_quantity
                )
            else:
                prompt = build_single_decision_prompt(market, analysis, candles)
            try:
                payload = await self._ask(prompt)
                payload["kind"] = mode
                payload["source"] = self.source
                decision = parse_decision(payload)
                logger.info(
                    f"🤖 {self.source} {mode} decision: confidence={decision.confidence:.2f}"
                )
                return decision
            except asyncio.TimeoutError:
                logger.warning(f"{self.source} timed out after {self.timeout}s, using indicator fallback")
            except Exception as e:
                logger.warning(f"{self.source} decision failed ({type(e).__name__}: {e}), using indicator fallback")
        else:
            logger.info(f"AI provider '{self.provider}' not configured, using indicator fallback")

        try:
            if mode == "portfolio":
                return fallback_portfolio_decision(analysis, positions, order_quantity, max_open_positions)
            return fallback_single_decision(analysis)
        except Exception as e:
            logger.error(f"Indicator fallback failed: {e}", exc_info=True)
            raise OracleUnavailableError(f"No decision available: {e}") from e

    async def analyze_market_sentiment(self, symbol: str) -> Dict[str, Any]:
        """Sentiment summary {sentiment, score, factors}; neutral when unavailable."""
        if not self.available:
            return {**NEUTRAL_SENTIMENT, "factors": ["AI analysis not available - using neutral sentiment"]}
        try:
            payload = await self._ask(build_sentiment_prompt(symbol))
        except Exception as e:
            logger.warning(f"Sentiment analysis failed: {e}")
            return {**NEUTRAL_SENTIMENT, "factors": ["Analysis failed - defaulting to neutral"]}

        sentiment = str(payload.get("sentiment", "neutral")).lower()
        if sentiment not in ("bullish", "bearish", "neutral"):
            sentiment = "neutral"
        try:
            score = max(0.0, min(1.0, float(payload.get("score", 0.5))))
        except (TypeError, ValueError):
            score = 0.5
        factors = [str(f) for f in payload.get("factors", [])]
        return {"sentiment": sentiment, "score": score, "factors": factors}
