"""
AI provider adapters for the decision oracle.

Each adapter sends one prompt and returns the raw model text; parsing and
fallback live in autotrader.oracle.decision_oracle.
"""

from autotrader.oracle.api_providers.claude import call_claude
from autotrader.oracle.api_providers.gemini import call_gemini
from autotrader.oracle.api_providers.openai_provider import call_openai

PROVIDERS = {
    "gemini": call_gemini,
    "claude": call_claude,
    "openai": call_openai,
}

__all__ = ["PROVIDERS", "call_claude", "call_gemini", "call_openai"]
