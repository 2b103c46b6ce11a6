"""
Shared test fixtures for the auto-trader backend tests.

Provides reusable fixtures for:
- Async database sessions and a SqlStateStore (in-memory SQLite)
- Candle series factories
- Mock exchange clients
- Isolated Settings
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)

from autotrader.config import Settings
from autotrader.schemas.market import Balance, Candle, MarketStats, OrderFill, OrderResult

HOUR_MS = 3_600_000
START_MS = 1_700_000_000_000


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def async_engine():
    """Create an in-memory async SQLite engine for testing."""
    from autotrader.models import Base

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Provide an async database session for tests that inspect rows directly."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(session_factory):
    """SqlStateStore over the in-memory database."""
    from autotrader.services.state_store import SqlStateStore

    return SqlStateStore(session_factory)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings():
    """Settings independent of any local .env file."""
    return Settings(
        _env_file=None,
        binance_api_key="",
        binance_secret_key="",
        gemini_api_key="",
        anthropic_api_key="",
        openai_api_key="",
        decision_mode="portfolio",
        default_symbol="BTCUSDT",
        quote_asset="USDT",
        cycle_timeout_seconds=5.0,
        upstream_timeout_seconds=1.0,
    )


# ---------------------------------------------------------------------------
# Sample data factories
# ---------------------------------------------------------------------------


def build_candles(closes, volume=100.0, start=START_MS, step=HOUR_MS):
    """Candle per close price; high/low bracket the close by +1% / -2%."""
    return [
        Candle(
            open_time=start + i * step,
            close_time=start + (i + 1) * step - 1,
            open=p * 0.99,
            high=p * 1.01,
            low=p * 0.98,
            close=p,
            volume=volume,
        )
        for i, p in enumerate(closes)
    ]


@pytest.fixture
def make_candles():
    """Factory: make_candles([closes...]) -> List[Candle] one hour apart."""
    return build_candles


@pytest.fixture
def uptrend_candles():
    return build_candles([100.0 + i * 0.5 for i in range(60)])


def build_order(order_id="1001", side="BUY", executed_qty=0.001, quote_qty=50.0, symbol="BTCUSDT", fills=None):
    return OrderResult(
        order_id=order_id,
        symbol=symbol,
        side=side,
        status="FILLED",
        executed_qty=executed_qty,
        cummulative_quote_qty=quote_qty,
        price=0.0,
        transact_time=START_MS,
        fills=fills if fills is not None else [
            OrderFill(price=quote_qty / executed_qty, qty=executed_qty, commission=0.0, commission_asset="USDT"),
        ],
    )


@pytest.fixture
def make_order():
    return build_order


# ---------------------------------------------------------------------------
# Mock exchange client
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_exchange(uptrend_candles):
    """Mock ExchangeClient: 60 uptrend candles, flat account with 1000 USDT."""
    client = MagicMock()
    client.get_candles = AsyncMock(return_value=uptrend_candles)
    client.get_24h_stats = AsyncMock(return_value=MarketStats(
        symbol="BTCUSDT",
        last_price=uptrend_candles[-1].close,
        price_change_percent=2.5,
        high_price=130.0,
        low_price=99.0,
        volume=1234.0,
    ))
    client.get_balances = AsyncMock(return_value=[Balance(asset="USDT", free=1000.0)])
    client.place_market_order = AsyncMock(return_value=build_order())
    client.get_my_trades = AsyncMock(return_value=[])
    client.get_open_orders = AsyncMock(return_value=[])
    client.cancel_order = AsyncMock()
    client.close = AsyncMock()
    return client
