"""
Exchange Client Factory

Creates the exchange client the app runs against: the live (testnet by
default) Binance API, or the paper simulator backed by live market data.
"""

import logging

from autotrader.config import Settings
from autotrader.exchange_clients.base import ExchangeClient
from autotrader.exchange_clients.binance_client import BinanceClient
from autotrader.exchange_clients.paper_trading_client import PaperTradingClient

logger = logging.getLogger(__name__)


def create_exchange_client(settings: Settings) -> ExchangeClient:
    """
    Factory function to create the appropriate exchange client.

    Returns:
        PaperTradingClient when ``settings.paper_trading`` is set,
        otherwise a BinanceClient
    """
    live = BinanceClient(
        api_key=settings.binance_api_key,
        secret_key=settings.binance_secret_key,
        base_url=settings.binance_base_url,
        timeout=settings.upstream_timeout_seconds,
    )
    if settings.paper_trading:
        logger.info("Paper trading enabled: orders are simulated")
        return PaperTradingClient(
            market_data=live,
            quote_asset=settings.quote_asset,
            starting_balances={settings.quote_asset: settings.paper_starting_quote_balance},
        )
    return live
