"""
FastAPI dependencies

Process-wide collaborators (store, exchange client, oracle, controller)
are built lazily on first use and shared by every request and by the
cycle scheduler, so manual and scheduled cycles contend for one lock.
"""

import logging
from typing import Optional

from autotrader.config import settings
from autotrader.database import async_session_maker
from autotrader.exchange_clients.base import ExchangeClient
from autotrader.exchange_clients.factory import create_exchange_client
from autotrader.oracle import DecisionOracle
from autotrader.services.performance_service import PerformanceService
from autotrader.services.state_store import SqlStateStore, StateStore
from autotrader.trading_engine.auto_trade_controller import AutoTradeController

logger = logging.getLogger(__name__)

_store: Optional[StateStore] = None
_exchange: Optional[ExchangeClient] = None
_oracle: Optional[DecisionOracle] = None
_controller: Optional[AutoTradeController] = None
_performance: Optional[PerformanceService] = None


def get_store() -> StateStore:
    global _store
    if _store is None:
        _store = SqlStateStore(async_session_maker)
    return _store


def get_exchange() -> ExchangeClient:
    global _exchange
    if _exchange is None:
        _exchange = create_exchange_client(settings)
    return _exchange


def get_oracle() -> DecisionOracle:
    global _oracle
    if _oracle is None:
        _oracle = DecisionOracle.from_settings(settings)
    return _oracle


def get_controller() -> AutoTradeController:
    global _controller
    if _controller is None:
        _controller = AutoTradeController(get_store(), get_exchange(), get_oracle(), settings)
    return _controller


def get_performance_service() -> PerformanceService:
    global _performance
    if _performance is None:
        _performance = PerformanceService(get_store())
    return _performance


async def close_exchange():
    """Release the shared exchange client's connections (shutdown)."""
    global _exchange, _controller
    if _exchange is not None:
        await _exchange.close()
        logger.info("Exchange client closed")
    _exchange = None
    _controller = None
