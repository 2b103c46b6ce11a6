"""
State Store

Durable storage for the three kinds of state the auto-trader keeps:
- the BotState singleton (is_running gate + symbol)
- the trade ledger (one row per exchange order_id)
- the append-only analysis/audit log

Every write is an upsert or an append, so re-running the same operation
(e.g. re-observing a fill after a lost response) never duplicates rows.
Each call opens its own short session; callers never hold a session across
exchange or oracle awaits.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from autotrader.exceptions import PersistenceError
from autotrader.models import AnalysisLog, BotState, Trade
from autotrader.models.trading import GLOBAL_BOT_ID
from autotrader.trading_engine.fill_reconciler import TradeRecord
from autotrader.trading_engine.order_logger import LogEntry
from autotrader.trading_engine.trade_context import BotStatus

logger = logging.getLogger(__name__)


class StateStore(ABC):
    """Persistence contract used by the controller, routers and stats service."""

    @abstractmethod
    async def get_bot_state(self, bot_id: str = GLOBAL_BOT_ID) -> Optional[BotStatus]:
        """Return the bot state, or None if it was never written."""

    @abstractmethod
    async def save_bot_state(self, state: BotStatus) -> BotStatus:
        """Upsert the bot state by id."""

    @abstractmethod
    async def save_trade(self, trade: TradeRecord) -> bool:
        """Upsert a trade by order_id. Returns True when a new row was created."""

    @abstractmethod
    async def list_trades(self, symbol: Optional[str] = None) -> List[TradeRecord]:
        """All recorded trades, ascending by time."""

    @abstractmethod
    async def append_log(self, entry: LogEntry) -> None:
        """Append one audit entry."""

    @abstractmethod
    async def recent_logs(self, limit: int = 100, log_type: Optional[str] = None) -> List[LogEntry]:
        """Most recent audit entries, newest first."""

    @abstractmethod
    async def count_logs(self, log_type: Optional[str] = None) -> int:
        """Number of audit entries, optionally of one type."""


def _status_from_row(row: BotState) -> BotStatus:
    return BotStatus(id=row.id, symbol=row.symbol, is_running=bool(row.is_running), updated_at=row.updated_at)


def _record_from_row(row: Trade) -> TradeRecord:
    return TradeRecord(
        order_id=row.order_id,
        symbol=row.symbol,
        side=row.side,
        price=row.price,
        quantity=row.quantity,
        quote_qty=row.quote_qty or 0.0,
        commission=row.commission or 0.0,
        commission_asset=row.commission_asset,
        time=row.time,
        status=row.status,
        source=row.source,
    )


def _entry_from_row(row: AnalysisLog) -> LogEntry:
    return LogEntry(
        type=row.type,
        message=row.message,
        data=row.data,
        market_outlook=row.market_outlook,
        confidence=row.confidence,
        time=row.time,
    )


def _apply_trade(row: Trade, trade: TradeRecord):
    row.symbol = trade.symbol
    row.side = trade.side
    row.price = trade.price
    row.quantity = trade.quantity
    row.quote_qty = trade.quote_qty
    row.commission = trade.commission
    row.commission_asset = trade.commission_asset
    row.time = trade.time
    row.status = trade.status
    if trade.source:
        row.source = trade.source


class SqlStateStore(StateStore):
    """SQLAlchemy-backed store (SQLite via aiosqlite by default)."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def get_bot_state(self, bot_id: str = GLOBAL_BOT_ID) -> Optional[BotStatus]:
        try:
            async with self._session_factory() as db:
                row = await db.get(BotState, bot_id)
                return _status_from_row(row) if row else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load bot state: {e}") from e

    async def save_bot_state(self, state: BotStatus) -> BotStatus:
        now = datetime.utcnow()
        try:
            async with self._session_factory() as db:
                row = await db.get(BotState, state.id)
                if row is None:
                    row = BotState(id=state.id)
                    db.add(row)
                row.is_running = state.is_running
                row.symbol = state.symbol
                row.updated_at = now
                await db.commit()
                return _status_from_row(row)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save bot state: {e}") from e

    async def save_trade(self, trade: TradeRecord) -> bool:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(Trade).where(Trade.order_id == trade.order_id))
                row = result.scalars().first()
                created = row is None
                if created:
                    row = Trade(order_id=trade.order_id)
                    db.add(row)
                _apply_trade(row, trade)
                try:
                    await db.commit()
                except IntegrityError:
                    # A concurrent writer inserted the same order_id first
                    await db.rollback()
                    result = await db.execute(select(Trade).where(Trade.order_id == trade.order_id))
                    row = result.scalars().one()
                    _apply_trade(row, trade)
                    await db.commit()
                    created = False
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save trade {trade.order_id}: {e}") from e

        if created:
            logger.info(f"Recorded trade {trade.order_id}: {trade.side} {trade.quantity} {trade.symbol} @ {trade.price}")
        else:
            logger.debug(f"Trade {trade.order_id} already recorded, updated in place")
        return created

    async def list_trades(self, symbol: Optional[str] = None) -> List[TradeRecord]:
        query = select(Trade)
        if symbol:
            query = query.where(Trade.symbol == symbol)
        query = query.order_by(Trade.time, Trade.id)
        try:
            async with self._session_factory() as db:
                result = await db.execute(query)
                return [_record_from_row(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load trades: {e}") from e

    async def append_log(self, entry: LogEntry) -> None:
        try:
            async with self._session_factory() as db:
                db.add(AnalysisLog(
                    type=entry.type,
                    message=entry.message,
                    market_outlook=entry.market_outlook,
                    confidence=entry.confidence,
                    data=entry.data,
                    time=entry.time,
                ))
                await db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to append {entry.type} log: {e}") from e

    async def recent_logs(self, limit: int = 100, log_type: Optional[str] = None) -> List[LogEntry]:
        query = select(AnalysisLog)
        if log_type:
            query = query.where(AnalysisLog.type == log_type)
        query = query.order_by(desc(AnalysisLog.time), desc(AnalysisLog.id)).limit(limit)
        try:
            async with self._session_factory() as db:
                result = await db.execute(query)
                return [_entry_from_row(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load logs: {e}") from e

    async def count_logs(self, log_type: Optional[str] = None) -> int:
        query = select(func.count(AnalysisLog.id))
        if log_type:
            query = query.where(AnalysisLog.type == log_type)
        try:
            async with self._session_factory() as db:
                result = await db.execute(query)
                return int(result.scalar() or 0)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to count logs: {e}") from e


async def save_trades(store: StateStore, trades: Sequence[TradeRecord]) -> int:
    """Upsert a batch of trades; returns how many were new."""
    created = 0
    for trade in trades:
        if await store.save_trade(trade):
            created += 1
    return created
