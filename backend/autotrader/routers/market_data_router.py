"""
Market data API routes

- Candles (last 50 for charting), 24h stats and the indicator snapshot
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from autotrader.config import settings
from autotrader.dependencies import get_exchange
from autotrader.exceptions import DataError
from autotrader.exchange_clients.base import ExchangeClient
from autotrader.indicators import analyze_indicators

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/market", tags=["market_data"])

CHART_CANDLES = 50


@router.get("/data")
async def get_market_data(
    symbol: str = settings.default_symbol,
    interval: str = settings.candle_interval,
    limit: int = settings.candle_limit,
    exchange: ExchangeClient = Depends(get_exchange),
):
    """Market data plus indicators; indicators are null when history is too short"""
    symbol = symbol.upper()
    candles, stats = await asyncio.gather(
        exchange.get_candles(symbol, interval, limit),
        exchange.get_24h_stats(symbol),
    )

    analysis = None
    try:
        analysis = analyze_indicators(candles)
    except DataError as e:
        logger.info(f"No indicators for {symbol} ({interval}): {e.message}")

    return {
        "success": True,
        "data": {
            "symbol": symbol,
            "interval": interval,
            **stats.model_dump(exclude={"symbol"}),
            "candles": [c.model_dump() for c in candles[-CHART_CANDLES:]],
            "indicators": analysis.snapshot.to_dict() if analysis else None,
            "signals": analysis.snapshot.signals.to_dict() if analysis else None,
            "strength": analysis.strength.to_dict() if analysis else None,
            "series": analysis.series if analysis else None,
        },
    }
