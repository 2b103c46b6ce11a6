"""
Decision oracle: AI providers behind a deterministic indicator fallback.
"""

from autotrader.oracle.decision_oracle import DecisionOracle, parse_json_response
from autotrader.oracle.fallback import (
    FALLBACK_SOURCE,
    fallback_portfolio_decision,
    fallback_single_decision,
)

__all__ = [
    "FALLBACK_SOURCE",
    "DecisionOracle",
    "fallback_portfolio_decision",
    "fallback_single_decision",
    "parse_json_response",
]
