"""
Audit log entry builders for the trading engine

Every cycle outcome (decision, executed trade, skip, error) becomes an
AnalysisLogEntry so the audit trail reconstructs the full decision
history even when no trade results.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from autotrader.schemas.decision import PortfolioDecision, SingleAssetDecision
from autotrader.trading_engine.fill_reconciler import TradeRecord

logger = logging.getLogger(__name__)


@dataclass
class LogEntry:
    """One append-only audit entry (type: decision, trade, error, info)."""
    type: str
    message: str
    data: Optional[Dict[str, Any]] = None
    market_outlook: Optional[str] = None
    confidence: Optional[float] = None
    time: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "market_outlook": self.market_outlook,
            "confidence": self.confidence,
            "data": self.data,
            "time": self.time.isoformat() if self.time else None,
        }


def info_entry(message: str, data: Optional[Dict[str, Any]] = None) -> LogEntry:
    return LogEntry(type="info", message=message, data=data)


def error_entry(message: str, error: Optional[BaseException] = None, data: Optional[Dict[str, Any]] = None) -> LogEntry:
    payload = dict(data or {})
    if error is not None:
        payload.setdefault("error", str(error))
        payload.setdefault("error_type", type(error).__name__)
    return LogEntry(type="error", message=message, data=payload or None)


def trade_entry(trade: TradeRecord, reason: str = "") -> LogEntry:
    message = f"Auto-Executed {trade.side} {trade.quantity} {trade.symbol} at ${trade.price:.2f}"
    if reason:
        message = f"{message} - {reason}"
    return LogEntry(
        type="trade",
        message=message,
        data={
            "order_id": trade.order_id,
            "symbol": trade.symbol,
            "side": trade.side,
            "price": trade.price,
            "quantity": trade.quantity,
            "quote_qty": trade.quote_qty,
            "commission": trade.commission,
            "commission_asset": trade.commission_asset,
        },
    )


def decision_entry(
    decision: Union[SingleAssetDecision, PortfolioDecision],
    executed_actions: List[Dict[str, Any]],
    context: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    """
    Summarize the oracle's answer together with the actions actually taken
    (not merely proposed) during the cycle.
    """
    if decision.kind == "portfolio":
        outlook = decision.market_outlook
        summary = decision.overall_strategy or decision.new_order.reason
    else:
        outlook = {"BUY": "bullish", "SELL": "bearish"}.get(decision.action, "neutral")
        summary = f"{decision.action} - {decision.reason}"

    taken = ", ".join(f"{a['action']} {a.get('asset') or a.get('side', '')}".strip() for a in executed_actions)
    message = (
        f"Cycle: {summary} ({decision.confidence * 100:.0f}% confidence, {outlook}) "
        f"[{decision.source}] | actions: {taken or 'none'}"
    )
    data = {
        "decision": decision.model_dump(mode="json"),
        "executed_actions": executed_actions,
    }
    if context:
        data["context"] = context
    return LogEntry(
        type="decision",
        message=message,
        data=data,
        market_outlook=outlook,
        confidence=decision.confidence,
    )
