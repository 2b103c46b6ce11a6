"""
Database Models, organized by domain.

All model classes are re-exported here:
    from autotrader.models import BotState, Trade, AnalysisLog
"""

from autotrader.database import Base  # noqa: F401  re-exported for tests/conftest.py
from autotrader.models.trading import BotState, Trade
from autotrader.models.system import AnalysisLog

__all__ = [
    "Base",
    # Trading
    "BotState", "Trade",
    # System
    "AnalysisLog",
]
