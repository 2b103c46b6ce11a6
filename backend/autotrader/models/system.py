"""System models: the append-only analysis/audit log."""

from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Integer,
    JSON,
    String,
    Text,
)

from autotrader.database import Base

LOG_TYPES = ("decision", "trade", "error", "info")


class AnalysisLog(Base):
    __tablename__ = "analysis_logs"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String, nullable=False, index=True)  # decision, trade, error, info
    message = Column(Text, nullable=False)

    # Decision context (only for decision entries)
    market_outlook = Column(String, nullable=True)  # bullish, bearish, neutral
    confidence = Column(Float, nullable=True)  # 0-1

    # Full payload: oracle decision, order response, error details
    data = Column(JSON, nullable=True)
    time = Column(DateTime, default=datetime.utcnow, index=True)
