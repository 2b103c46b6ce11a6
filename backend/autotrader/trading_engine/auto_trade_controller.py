"""
Auto-Trade Controller

The start/stop state machine and the evaluation cycle:

    fetch market + account -> indicators -> open positions -> oracle
        -> CLOSE actions -> gated new order -> decision log

BotState.is_running (read through the StateStore on every cycle) is the
only switch that lets a cycle touch the exchange. Cycles for the same bot
are mutually exclusive: a trigger that arrives while one is in flight is
refused with status "busy" instead of waiting.

Nothing in a cycle is allowed to escape: exchange, oracle and storage
failures become error log entries and a "failed" CycleResult.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from autotrader.config import Settings, settings as default_settings
from autotrader.exceptions import DataError, PersistenceError, UpstreamError
from autotrader.exchange_clients.base import ExchangeClient
from autotrader.indicator_calculator import IndicatorCalculator
from autotrader.indicators import MarketAnalysis, analyze_indicators
from autotrader.models.trading import GLOBAL_BOT_ID
from autotrader.oracle.decision_oracle import DecisionOracle
from autotrader.oracle.prompts import describe_prompt_context
from autotrader.schemas.decision import PortfolioDecision, SingleAssetDecision
from autotrader.services.fill_sync_service import sync_exchange_fills
from autotrader.services.state_store import StateStore
from autotrader.trading_engine.exposure_gates import (
    GateResult,
    check_buy_exposure,
    check_confidence,
    check_sell_exposure,
)
from autotrader.trading_engine.fill_reconciler import TradeRecord, trade_from_order
from autotrader.trading_engine.order_logger import (
    LogEntry,
    decision_entry,
    error_entry,
    info_entry,
    trade_entry,
)
from autotrader.trading_engine.pnl_ledger import calculate_realized_pnl
from autotrader.trading_engine.position_manager import (
    find_position,
    open_positions_from_balances,
    split_symbol,
)
from autotrader.trading_engine.trade_context import BotStatus, CycleContext

logger = logging.getLogger(__name__)

TRADE_SOURCE = "auto"

Decision = Union[SingleAssetDecision, PortfolioDecision]

# Per-bot cycle locks, shared by every controller instance for the same bot id
_cycle_locks: Dict[str, asyncio.Lock] = {}


def _get_cycle_lock(bot_id: str) -> asyncio.Lock:
    """Return (or create) the asyncio.Lock serializing cycles for a bot."""
    if bot_id not in _cycle_locks:
        _cycle_locks[bot_id] = asyncio.Lock()
    return _cycle_locks[bot_id]


@dataclass
class CycleResult:
    """Outcome of one evaluation cycle: stopped, busy, completed or failed."""
    status: str
    message: str
    symbol: Optional[str] = None
    decision: Optional[Decision] = None
    analysis: Optional[Dict[str, Any]] = None
    executed_actions: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in ("stopped", "completed")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "symbol": self.symbol,
            "decision": self.decision.model_dump(mode="json") if self.decision else None,
            "analysis": self.analysis,
            "executed_actions": self.executed_actions,
            "skipped": self.skipped,
            "errors": self.errors,
        }


class CycleAborted(Exception):
    """Internal: a step failed and the rest of the cycle must not run."""


class AutoTradeController:
    """
    Orchestrates one bot's evaluation cycles.

    All collaborators are injected so tests can build independent
    controllers over an in-memory store and mocked exchange/oracle.
    """

    def __init__(
        self,
        store: StateStore,
        exchange: ExchangeClient,
        oracle: DecisionOracle,
        settings: Optional[Settings] = None,
        bot_id: str = GLOBAL_BOT_ID,
        calculator: Optional[IndicatorCalculator] = None,
    ):
        self.store = store
        self.exchange = exchange
        self.oracle = oracle
        self.settings = settings or default_settings
        self.bot_id = bot_id
        self.calculator = calculator or IndicatorCalculator()
        self._lock = _get_cycle_lock(bot_id)

    # ========================================
    # STATE MACHINE
    # ========================================

    async def get_state(self) -> BotStatus:
        state = await self.store.get_bot_state(self.bot_id)
        return state or BotStatus(id=self.bot_id, symbol=self.settings.default_symbol, is_running=False)

    async def start(self, symbol: Optional[str] = None) -> BotStatus:
        """Stopped/Running -> Running. Re-starting only updates the symbol."""
        current = await self.get_state()
        symbol = (symbol or current.symbol or self.settings.default_symbol).upper()
        state = await self.store.save_bot_state(BotStatus(id=self.bot_id, symbol=symbol, is_running=True))
        await self.store.append_log(info_entry(f"Auto-trading started for {symbol}", {"symbol": symbol}))
        logger.info(f"▶️  Auto-trading started for {symbol} (bot {self.bot_id})")
        return state

    async def stop(self) -> BotStatus:
        """Running/Stopped -> Stopped."""
        current = await self.get_state()
        state = await self.store.save_bot_state(BotStatus(id=self.bot_id, symbol=current.symbol, is_running=False))
        await self.store.append_log(info_entry("Auto-trading stopped by user", {"symbol": current.symbol}))
        logger.info(f"⏹️  Auto-trading stopped (bot {self.bot_id})")
        return state

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    # ========================================
    # EVALUATION CYCLE
    # ========================================

    async def run_cycle(self) -> CycleResult:
        """
        Run one evaluation cycle if the bot is running and no other cycle
        for it is in flight. Never raises.
        """
        if self._lock.locked():
            logger.warning(f"Cycle refused for bot {self.bot_id}: previous cycle still running")
            return CycleResult(status="busy", message="A cycle is already in progress")

        async with self._lock:
            try:
                state = await self.get_state()
            except PersistenceError as e:
                logger.error(f"Cannot read bot state: {e}")
                return CycleResult(status="failed", message=f"Cannot read bot state: {e.message}", errors=[e.message])

            if not state.is_running:
                logger.info(f"Bot {self.bot_id} is stopped, skipping cycle")
                return CycleResult(status="stopped", message="Bot is stopped", symbol=state.symbol)

            result = CycleResult(status="completed", message="Cycle completed", symbol=state.symbol)
            # Only the read/decide phase is bounded by the cycle timeout. Once
            # orders go out, each call has its own timeout and every fill is recorded.
            try:
                context, analysis, decision = await asyncio.wait_for(
                    self._prepare(state.symbol, result), timeout=self.settings.cycle_timeout_seconds
                )
            except asyncio.TimeoutError:
                message = f"Cycle timed out after {self.settings.cycle_timeout_seconds}s"
                logger.error(f"❌ {message} ({state.symbol})")
                await self._fail(result, message)
                return result
            except CycleAborted:
                return result
            except Exception as e:
                await self._unexpected(result, state.symbol, e)
                return result

            try:
                await self._act(context, analysis, decision, result)
            except Exception as e:
                await self._unexpected(result, state.symbol, e)
            return result

    async def _unexpected(self, result: CycleResult, symbol: str, error: Exception):
        logger.error(f"❌ Unexpected error in cycle for {symbol}: {error}", exc_info=True)
        await self._fail(result, f"Unexpected error: {error}", error)

    async def _prepare(self, symbol: str, result: CycleResult) -> Tuple[CycleContext, MarketAnalysis, Decision]:
        """Fetch, analyze and decide. Nothing here has side effects on the exchange."""
        logger.info(f"🔍 Evaluation cycle started for {symbol}")
        context = await self._fetch_context(symbol, result)

        try:
            analysis = analyze_indicators(context.candles, self.calculator)
        except DataError as e:
            await self._fail(result, f"Analysis aborted: {e.message}", e)
            raise CycleAborted()
        result.analysis = analysis.to_dict()
        logger.info(
            f"  📊 {symbol}: {analysis.strength.bullish} bullish / {analysis.strength.bearish} bearish "
            f"-> {analysis.strength.recommendation.value}"
        )

        trades = await self._trade_history(context)
        ledger = calculate_realized_pnl(trades)
        context.positions = open_positions_from_balances(
            context.balances,
            symbol,
            context.base_asset,
            self.settings.position_dust_threshold,
            current_price=context.current_price,
            ledger=ledger,
        )

        decision = await self.oracle.decide(
            context.stats,
            analysis,
            context.candles,
            positions=context.positions,
            trade_history=trades,
            mode=self.settings.decision_mode,
            order_quantity=self.settings.order_quantity,
            max_open_positions=self.settings.max_open_positions,
        )
        result.decision = decision
        logger.info(f"  🤖 Decision from {decision.source}: confidence={decision.confidence:.2f}")
        return context, analysis, decision

    async def _act(self, context: CycleContext, analysis: MarketAnalysis, decision: Decision, result: CycleResult):
        """Execute the decision's actions and write the decision log entry."""
        symbol = context.symbol
        if decision.kind == "portfolio":
            await self._apply_portfolio_decision(decision, context, result)
        else:
            await self._apply_single_decision(decision, context, result)

        await self._log(decision_entry(decision, result.executed_actions, describe_prompt_context(analysis)))
        if result.errors:
            result.message = f"Cycle completed with {len(result.errors)} error(s)"
        logger.info(f"✅ Cycle finished for {symbol}: {len(result.executed_actions)} action(s) executed")

    async def _fetch_context(self, symbol: str, result: CycleResult) -> CycleContext:
        try:
            base_asset, quote_asset = split_symbol(symbol, self.settings.quote_asset)
        except ValueError as e:
            await self._fail(result, str(e), e)
            raise CycleAborted()

        try:
            # Every call runs to completion so no failure is left unretrieved;
            # the first one (in call order) aborts the cycle.
            responses = await asyncio.gather(
                self._upstream(self.exchange.get_candles(symbol, self.settings.candle_interval, self.settings.candle_limit)),
                self._upstream(self.exchange.get_24h_stats(symbol)),
                self._upstream(self.exchange.get_balances()),
                return_exceptions=True,
            )
            failures = [r for r in responses if isinstance(r, BaseException)]
            if failures:
                raise failures[0]
            candles, stats, balances = responses
        except asyncio.TimeoutError as e:
            await self._fail(result, f"Exchange call timed out after {self.settings.upstream_timeout_seconds}s", e)
            raise CycleAborted()
        except Exception as e:
            await self._fail(result, f"Exchange call failed: {e}", e)
            raise CycleAborted()

        return CycleContext(
            symbol=symbol,
            base_asset=base_asset,
            quote_asset=quote_asset,
            candles=candles,
            stats=stats,
            balances=balances,
        )

    async def _trade_history(self, context: CycleContext) -> List[Any]:
        """
        Ledger input for entry prices. Fills the ledger missed are synced from
        the exchange first; a failure in either step only loses that context.
        """
        symbol = context.symbol
        try:
            await self._upstream(sync_exchange_fills(
                self.exchange, self.store, symbol, context.quote_asset, self.settings.fill_sync_limit
            ))
        except (UpstreamError, PersistenceError, asyncio.TimeoutError) as e:
            logger.warning(f"Fill sync skipped for {symbol}: {e}")

        try:
            return await self.store.list_trades(symbol)
        except PersistenceError as e:
            logger.warning(f"Trade history unavailable, continuing without entry prices: {e}")
            return []

    async def _upstream(self, awaitable):
        return await asyncio.wait_for(awaitable, timeout=self.settings.upstream_timeout_seconds)

    # ========================================
    # DECISION DISPATCH
    # ========================================

    async def _apply_portfolio_decision(self, decision: PortfolioDecision, context: CycleContext, result: CycleResult):
        for action in decision.position_actions:
            if action.action != "CLOSE":
                continue
            position = find_position(context.positions, action.asset)
            if position is None or position.free <= 0:
                await self._skip(result, f"CLOSE {action.asset} skipped: no open position with free balance")
                continue
            executed = await self._execute_order(
                context, "SELL", position.free, f"Close position: {action.reason}", result, asset=position.asset
            )
            if executed:
                context.positions = [p for p in context.positions if p is not position]

        order = decision.new_order
        if not order.should_open or not order.side:
            return

        gate = check_confidence(decision.confidence, self.settings.portfolio_confidence_threshold)
        if not gate:
            await self._skip(result, f"New {order.side} order skipped: {gate.reason}")
            return

        quantity = order.quantity if order.quantity > 0 else self.settings.order_quantity
        await self._gated_order(context, order.side, quantity, order.reason, result)

    async def _apply_single_decision(self, decision: SingleAssetDecision, context: CycleContext, result: CycleResult):
        if decision.action == "HOLD":
            return

        gate = check_confidence(decision.confidence, self.settings.single_confidence_threshold)
        if not gate:
            await self._skip(result, f"{decision.action} skipped: {gate.reason}")
            return

        await self._gated_order(context, decision.action, self.settings.order_quantity, decision.reason, result)

    def _exposure_gate(self, context: CycleContext, side: str, quantity: float) -> GateResult:
        base = context.balance_of(context.base_asset)
        if side == "BUY":
            quote = context.balance_of(context.quote_asset)
            return check_buy_exposure(
                context.base_asset,
                base.total,
                context.quote_asset,
                quote.free,
                self.settings.position_dust_threshold,
                self.settings.min_quote_notional,
            )
        return check_sell_exposure(context.base_asset, base.free, quantity)

    async def _gated_order(self, context: CycleContext, side: str, quantity: float, reason: str, result: CycleResult):
        gate = self._exposure_gate(context, side, quantity)
        if not gate:
            await self._skip(result, f"{side} {quantity} {context.symbol} skipped: {gate.reason}")
            return
        await self._execute_order(context, side, quantity, reason, result)

    # ========================================
    # EXECUTION + LOGGING
    # ========================================

    async def _execute_order(
        self,
        context: CycleContext,
        side: str,
        quantity: float,
        reason: str,
        result: CycleResult,
        asset: Optional[str] = None,
    ) -> bool:
        """
        Submit one market order and record its fill. A failure here is
        logged and reported but does not stop the remaining actions.
        """
        try:
            order = await self._upstream(self.exchange.place_market_order(context.symbol, side, quantity))
        except asyncio.TimeoutError:
            await self._order_failed(
                result, side, quantity, context.symbol,
                "order submission timed out (a late fill is recorded by the next fill sync)",
            )
            return False
        except Exception as e:
            await self._order_failed(result, side, quantity, context.symbol, str(e), e)
            return False

        trade = trade_from_order(order, context.quote_asset, source=TRADE_SOURCE)
        self._apply_fill_to_balances(context, trade.side, trade.quantity, trade.quote_qty)
        action = {
            "action": "CLOSE" if asset else side,
            "side": side,
            "asset": asset or context.base_asset,
            "order_id": trade.order_id,
            "price": trade.price,
            "quantity": trade.quantity,
        }
        result.executed_actions.append(action)
        logger.info(f"  💰 {side} {trade.quantity} {context.symbol} @ {trade.price:.2f} (order {trade.order_id})")

        # The order is filled: recording it must survive a cancelled caller
        await asyncio.shield(self._record_fill(trade, reason, result))
        return True

    async def _record_fill(self, trade: TradeRecord, reason: str, result: CycleResult):
        try:
            await self.store.save_trade(trade)
        except PersistenceError as e:
            logger.error(f"Order {trade.order_id} filled but could not be recorded: {e}")
            result.errors.append(f"Trade {trade.order_id} not recorded: {e.message}")
        await self._log(trade_entry(trade, reason))

    @staticmethod
    def _apply_fill_to_balances(context: CycleContext, side: str, quantity: float, quote_qty: float):
        """Keep the cycle's balance view current so later gates see this fill."""
        base = context.balance_of(context.base_asset)
        quote = context.balance_of(context.quote_asset)
        sign = 1 if side == "BUY" else -1
        updated_base = base.model_copy(update={"free": max(0.0, base.free + sign * quantity)})
        updated_quote = quote.model_copy(update={"free": max(0.0, quote.free - sign * quote_qty)})
        others = [b for b in context.balances if b.asset not in (context.base_asset, context.quote_asset)]
        context.balances = others + [updated_base, updated_quote]

    async def _order_failed(
        self, result: CycleResult, side: str, quantity: float, symbol: str, reason: str, error: Optional[BaseException] = None
    ):
        message = f"Trade Execution Failed: {side} {quantity} {symbol} - {reason}"
        logger.error(f"  ❌ {message}")
        result.errors.append(message)
        await self._log(error_entry(message, error, {"side": side, "quantity": quantity, "symbol": symbol}))

    async def _skip(self, result: CycleResult, reason: str):
        logger.info(f"  ⏭️  {reason}")
        result.skipped.append(reason)
        await self._log(info_entry(reason))

    async def _fail(self, result: CycleResult, message: str, error: Optional[BaseException] = None):
        result.status = "failed"
        result.message = message
        result.errors.append(message)
        logger.error(f"Cycle failed: {message}")
        await self._log(error_entry(message, error, {"symbol": result.symbol}))

    async def _log(self, entry: LogEntry):
        """Append to the audit trail; a storage failure is logged, never raised."""
        try:
            await self.store.append_log(entry)
        except PersistenceError as e:
            logger.error(f"Could not persist {entry.type} log entry '{entry.message}': {e}")
