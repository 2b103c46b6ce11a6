"""
Auto-trading API routes

- GET  /api/trading/auto: bot state, recent audit log and performance stats
- POST /api/trading/auto: start, stop, or run one cycle now (check)
"""

import logging

from fastapi import APIRouter, Depends

from autotrader.dependencies import get_controller, get_performance_service, get_store
from autotrader.exceptions import AppError, ValidationError
from autotrader.schemas.trading import AutoTradingRequest
from autotrader.services.performance_service import PerformanceService
from autotrader.services.state_store import StateStore
from autotrader.trading_engine.auto_trade_controller import AutoTradeController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trading", tags=["auto_trading"])

RECENT_LOG_LIMIT = 100


@router.get("/auto")
async def get_auto_trading_status(
    controller: AutoTradeController = Depends(get_controller),
    store: StateStore = Depends(get_store),
    performance: PerformanceService = Depends(get_performance_service),
):
    """Current BotState, last 100 log entries, stats and the latest decision"""
    state = await controller.get_state()
    logs = await store.recent_logs(RECENT_LOG_LIMIT)
    latest_decision = await store.recent_logs(1, log_type="decision")
    report = await performance.get_report()

    return {
        "success": True,
        "data": {
            "is_running": state.is_running,
            "symbol": state.symbol,
            "last_check": state.updated_at.isoformat() if state.updated_at else None,
            "is_busy": controller.is_busy,
            "logs": [entry.to_dict() for entry in logs],
            "stats": report["stats"],
            "stale": report["stale"],
            "last_decision": latest_decision[0].data if latest_decision else None,
        },
    }


@router.post("/auto")
async def control_auto_trading(
    request: AutoTradingRequest,
    controller: AutoTradeController = Depends(get_controller),
):
    """Start/stop the bot, or run one evaluation cycle on demand"""
    action = request.action.lower()

    if action == "start":
        state = await controller.start(request.symbol)
        return {"success": True, "message": f"Auto-trading started for {state.symbol}"}

    if action == "stop":
        await controller.stop()
        return {"success": True, "message": "Auto-trading stopped"}

    if action == "check":
        result = await controller.run_cycle()
        if result.status == "busy":
            raise AppError(result.message, status_code=409)
        return {"success": result.status != "failed", "data": result.to_dict()}

    raise ValidationError("Invalid action. Use: start, stop, check")
