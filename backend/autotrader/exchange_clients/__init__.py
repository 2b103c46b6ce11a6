"""
Exchange client implementations.

All clients implement ExchangeClient so the controller and routers never
care whether orders hit the live (testnet) API or the paper simulator.
"""

from autotrader.exchange_clients.base import ExchangeClient

__all__ = ["ExchangeClient"]
