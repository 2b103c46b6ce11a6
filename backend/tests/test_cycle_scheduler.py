"""
Tests for backend/autotrader/cycle_scheduler.py
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from autotrader.cycle_scheduler import CycleScheduler
from autotrader.trading_engine.auto_trade_controller import CycleResult


@pytest.fixture
def controller():
    mock = MagicMock()
    mock.run_cycle = AsyncMock(return_value=CycleResult(status="stopped", message="Bot is stopped"))
    return mock


class TestCycleScheduler:
    @pytest.mark.asyncio
    async def test_run_once_records_result(self, controller):
        scheduler = CycleScheduler(controller, interval_seconds=60)

        result = await scheduler.run_once()

        assert result.status == "stopped"
        assert scheduler.last_result is result
        assert scheduler.last_run is not None

    @pytest.mark.asyncio
    async def test_run_once_survives_errors(self, controller):
        controller.run_cycle.side_effect = RuntimeError("boom")
        scheduler = CycleScheduler(controller)

        assert await scheduler.run_once() is None
        assert scheduler.last_run is None

    @pytest.mark.asyncio
    async def test_loop_ticks_until_stopped(self, controller):
        scheduler = CycleScheduler(controller, interval_seconds=0.01)

        scheduler.start()
        scheduler.start()  # duplicate start is ignored
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert controller.run_cycle.await_count >= 2
        assert scheduler.task is None
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_stop_without_start(self, controller):
        scheduler = CycleScheduler(controller)
        await scheduler.stop()
        assert scheduler.task is None
