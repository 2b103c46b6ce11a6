"""Trading models: bot state singleton and executed trades."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
)

from autotrader.database import Base

GLOBAL_BOT_ID = "global"


class BotState(Base):
    """
    Singleton record gating the auto-trader.

    is_running is the only switch that allows an evaluation cycle to
    touch the exchange. Writers upsert by id.
    """
    __tablename__ = "bot_state"

    id = Column(String, primary_key=True, default=GLOBAL_BOT_ID)
    is_running = Column(Boolean, default=False, nullable=False)
    symbol = Column(String, nullable=False, default="BTCUSDT")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Trade(Base):
    """
    One filled order. order_id is exchange-assigned and unique; re-observing
    the same fill updates the existing row instead of inserting a duplicate.
    """
    __tablename__ = "trades"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String, unique=True, nullable=False, index=True)
    symbol = Column(String, nullable=False, index=True)
    side = Column(String, nullable=False)  # BUY, SELL
    price = Column(Float, nullable=False)  # Average fill price
    quantity = Column(Float, nullable=False)  # Base asset executed
    quote_qty = Column(Float, nullable=False, default=0.0)  # Quote asset spent/received
    commission = Column(Float, nullable=False, default=0.0)
    commission_asset = Column(String, nullable=True)
    time = Column(DateTime, default=datetime.utcnow, index=True)
    status = Column(String, nullable=False, default="FILLED")

    # Where the trade came from: auto (controller), manual, reset
    source = Column(String, nullable=True)
