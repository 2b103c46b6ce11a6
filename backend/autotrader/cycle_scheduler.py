"""
Cycle Scheduler

Periodic trigger for the auto-trade controller. Runs as a background
asyncio task started/stopped with the app lifespan. The controller itself
decides whether the bot is running and whether a cycle is already in
flight, so the scheduler only keeps time.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from autotrader.trading_engine.auto_trade_controller import AutoTradeController, CycleResult

logger = logging.getLogger(__name__)


class CycleScheduler:
    def __init__(self, controller: AutoTradeController, interval_seconds: float = 3600):
        self.controller = controller
        self.interval_seconds = interval_seconds
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self.last_run: Optional[datetime] = None
        self.last_result: Optional[CycleResult] = None

    async def run_once(self) -> Optional[CycleResult]:
        """One scheduler tick; an unexpected error is logged and swallowed so the loop survives."""
        try:
            result = await self.controller.run_cycle()
        except Exception as e:
            logger.error(f"Error in scheduled cycle: {e}", exc_info=True)
            return None
        self.last_run = datetime.utcnow()
        self.last_result = result
        logger.info(f"Scheduled cycle finished: {result.status} - {result.message}")
        return result

    async def _loop(self):
        while self.running:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)
        logger.info("Cycle scheduler stopped")

    def start(self):
        if self.running:
            logger.warning("Cycle scheduler already running, ignoring duplicate start() call")
            return
        self.running = True  # Set before creating the task to prevent double-start
        self.task = asyncio.create_task(self._loop())
        logger.info(f"Cycle scheduler started (every {self.interval_seconds}s)")

    async def stop(self):
        self.running = False
        if self.task and not self.task.done():
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
        self.task = None
