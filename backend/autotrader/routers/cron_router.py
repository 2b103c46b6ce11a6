"""
Cron API route

POST /api/cron/trade is the external periodic trigger (an alternative to
the in-process CycleScheduler). It runs one cycle through the shared
controller, so it is refused while another cycle is in flight.
"""

import logging

from fastapi import APIRouter, Depends

from autotrader.dependencies import get_controller
from autotrader.trading_engine.auto_trade_controller import AutoTradeController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


@router.post("/trade")
async def cron_trade(controller: AutoTradeController = Depends(get_controller)):
    logger.info("Cron job triggered. Starting analysis cycle...")
    result = await controller.run_cycle()
    return {
        "success": result.status != "failed",
        "message": result.message,
        "data": result.to_dict(),
    }
