from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Binance spot API (testnet by default)
    binance_api_key: str = ""
    binance_secret_key: str = ""
    binance_base_url: str = "https://testnet.binance.vision"

    # Paper trading: simulated fills against live market data
    paper_trading: bool = False
    paper_starting_quote_balance: float = 10000.0

    # Decision oracle provider
    # Options: gemini, claude, openai
    decision_ai_provider: str = "gemini"

    # AI Provider API Keys
    gemini_api_key: str = ""
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # Database
    database_url: str = "sqlite+aiosqlite:///./autotrader.db"

    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Market data
    default_symbol: str = "BTCUSDT"
    quote_asset: str = "USDT"
    candle_interval: str = "1h"
    candle_limit: int = 100

    # Trading Parameters
    # "portfolio" asks the oracle for position actions + new order, "single" for BUY/SELL/HOLD
    decision_mode: str = "portfolio"
    order_quantity: float = 0.001
    min_quote_notional: float = 10.0
    position_dust_threshold: float = 0.0001
    portfolio_confidence_threshold: float = 0.6
    single_confidence_threshold: float = 0.75
    max_open_positions: int = 3
    # Recent exchange fills re-read each cycle to record orders the ledger missed
    fill_sync_limit: int = 50

    # Timing
    # In-process scheduler; disable when an external cron calls /api/cron/trade
    scheduler_enabled: bool = True
    cycle_interval_seconds: int = 3600
    upstream_timeout_seconds: float = 30.0
    cycle_timeout_seconds: float = 120.0

    @field_validator("decision_ai_provider", "decision_mode")
    @classmethod
    def lowercase(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("portfolio_confidence_threshold", "single_confidence_threshold")
    @classmethod
    def confidence_in_unit_range(cls, v: float) -> float:
        """Confidence thresholds are compared against oracle confidence in [0, 1]"""
        if not 0.0 <= v <= 1.0:
            raise ValueError("confidence thresholds must be between 0 and 1")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
