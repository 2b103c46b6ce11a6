"""
Binance Spot REST client (testnet by default)

Public market data endpoints need no auth; account, order and trade
history endpoints are signed with HMAC-SHA256 over the query string and
carry the API key in the X-MBX-APIKEY header.
"""

import hashlib
import hmac
import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from autotrader.exceptions import ExchangeUnavailableError
from autotrader.exchange_clients.base import ExchangeClient
from autotrader.schemas.market import (
    Balance,
    Candle,
    ExchangeTrade,
    MarketStats,
    OpenOrder,
    OrderFill,
    OrderResult,
)

logger = logging.getLogger(__name__)

TESTNET_BASE_URL = "https://testnet.binance.vision"


def _format_quantity(quantity: float) -> str:
    """Plain decimal string; Binance rejects scientific notation like 1e-05."""
    text = f"{quantity:.8f}".rstrip("0").rstrip(".")
    return text or "0"


def parse_kline(row: List[Any]) -> Candle:
    return Candle(
        open_time=int(row[0]),
        open=float(row[1]),
        high=float(row[2]),
        low=float(row[3]),
        close=float(row[4]),
        volume=float(row[5]),
        close_time=int(row[6]),
    )


def parse_order(data: Dict[str, Any]) -> OrderResult:
    return OrderResult(
        order_id=str(data["orderId"]),
        symbol=data.get("symbol", ""),
        side=data.get("side", ""),
        status=data.get("status", ""),
        executed_qty=float(data.get("executedQty", 0) or 0),
        cummulative_quote_qty=float(data.get("cummulativeQuoteQty", 0) or 0),
        price=float(data.get("price", 0) or 0),
        transact_time=data.get("transactTime"),
        fills=[
            OrderFill(
                price=float(fill.get("price", 0)),
                qty=float(fill.get("qty", 0)),
                commission=float(fill.get("commission", 0) or 0),
                commission_asset=fill.get("commissionAsset"),
            )
            for fill in data.get("fills", [])
        ],
    )


def parse_open_order(data: Dict[str, Any]) -> OpenOrder:
    return OpenOrder(
        order_id=str(data["orderId"]),
        symbol=data.get("symbol", ""),
        side=data.get("side", ""),
        type=data.get("type", ""),
        status=data.get("status", ""),
        price=float(data.get("price", 0) or 0),
        orig_qty=float(data.get("origQty", 0) or 0),
        executed_qty=float(data.get("executedQty", 0) or 0),
        time=int(data.get("time", 0)),
    )


class BinanceClient(ExchangeClient):
    """
    ExchangeClient for the Binance spot REST API.

    One httpx.AsyncClient is shared across requests; call close() on shutdown.
    """

    def __init__(
        self,
        api_key: str,
        secret_key: str,
        base_url: str = TESTNET_BASE_URL,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key or not secret_key:
            logger.warning("BinanceClient created without API key/secret; signed endpoints will fail")
        self._api_key = api_key
        self._secret_key = secret_key
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        logger.info(f"BinanceClient initialized (base_url={self._base_url})")

    async def close(self):
        """Close the underlying httpx client to release connections."""
        if self._client:
            await self._client.aclose()

    def _sign(self, query_string: str) -> str:
        return hmac.new(self._secret_key.encode(), query_string.encode(), hashlib.sha256).hexdigest()

    async def _request(
        self, method: str, path: str, params: Optional[Dict[str, Any]] = None, signed: bool = False
    ) -> Any:
        """
        Make an HTTP request to the exchange.

        Raises:
            ExchangeUnavailableError: timeout, connection failure or non-2xx
                response (message carries Binance's ``msg`` when present)
        """
        params = dict(params or {})
        headers = {}
        if signed:
            params["timestamp"] = int(time.time() * 1000)
            query_string = urlencode(params)
            query_string = f"{query_string}&signature={self._sign(query_string)}"
            headers["X-MBX-APIKEY"] = self._api_key
        else:
            query_string = urlencode(params)

        url = f"{self._base_url}{path}"
        if query_string:
            url = f"{url}?{query_string}"

        try:
            resp = await self._client.request(method, url, headers=headers)
            resp.raise_for_status()
            return resp.json()
        except httpx.TimeoutException:
            logger.error(f"Binance timeout: {method} {path}")
            raise ExchangeUnavailableError(f"Binance API timeout ({method} {path})")
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            message = ""
            try:
                message = e.response.json().get("msg", "")
            except ValueError:
                message = e.response.text[:200]
            logger.error(f"Binance HTTP {status}: {method} {path} - {message}")
            raise ExchangeUnavailableError(message or f"Binance API Error ({status})")
        except httpx.HTTPError as e:
            logger.error(f"Binance connection failed: {method} {path}: {e}")
            raise ExchangeUnavailableError(f"Binance API unavailable: {e}")

    # ==========================================================
    # MARKET DATA
    # ==========================================================

    async def get_candles(self, symbol: str, interval: str = "1h", limit: int = 100) -> List[Candle]:
        rows = await self._request("GET", "/api/v3/klines", {"symbol": symbol, "interval": interval, "limit": limit})
        return [parse_kline(row) for row in rows]

    async def get_24h_stats(self, symbol: str) -> MarketStats:
        data = await self._request("GET", "/api/v3/ticker/24hr", {"symbol": symbol})
        return MarketStats(
            symbol=data.get("symbol", symbol),
            last_price=float(data["lastPrice"]),
            price_change=float(data.get("priceChange", 0)),
            price_change_percent=float(data.get("priceChangePercent", 0)),
            high_price=float(data.get("highPrice", 0)),
            low_price=float(data.get("lowPrice", 0)),
            volume=float(data.get("volume", 0)),
            quote_volume=float(data.get("quoteVolume", 0)),
        )

    # ==========================================================
    # ACCOUNT
    # ==========================================================

    async def get_balances(self) -> List[Balance]:
        account = await self._request("GET", "/api/v3/account", signed=True)
        balances = []
        for row in account.get("balances", []):
            balance = Balance(asset=row["asset"], free=float(row["free"]), locked=float(row["locked"]))
            if balance.free > 0 or balance.locked > 0:
                balances.append(balance)
        return balances

    async def place_market_order(self, symbol: str, side: str, quantity: float) -> OrderResult:
        params = {
            "symbol": symbol,
            "side": side.upper(),
            "type": "MARKET",
            "quantity": _format_quantity(quantity),
            "newOrderRespType": "FULL",
        }
        data = await self._request("POST", "/api/v3/order", params, signed=True)
        order = parse_order(data)
        logger.info(
            f"Binance order {order.order_id}: {order.side} {order.executed_qty} {symbol} "
            f"for {order.cummulative_quote_qty} ({order.status})"
        )
        return order

    async def get_open_orders(self, symbol: Optional[str] = None) -> List[OpenOrder]:
        params = {"symbol": symbol} if symbol else {}
        rows = await self._request("GET", "/api/v3/openOrders", params, signed=True)
        return [parse_open_order(row) for row in rows]

    async def cancel_order(self, symbol: str, order_id: str) -> OrderResult:
        data = await self._request("DELETE", "/api/v3/order", {"symbol": symbol, "orderId": order_id}, signed=True)
        order = parse_order(data)
        logger.info(f"Binance order {order.order_id} on {symbol} cancelled ({order.status})")
        return order

    async def get_my_trades(self, symbol: str, limit: int = 50) -> List[ExchangeTrade]:
        rows = await self._request("GET", "/api/v3/myTrades", {"symbol": symbol, "limit": limit}, signed=True)
        return [
            ExchangeTrade(
                id=str(row["id"]),
                order_id=str(row["orderId"]),
                symbol=row.get("symbol", symbol),
                side="BUY" if row.get("isBuyer") else "SELL",
                price=float(row["price"]),
                qty=float(row["qty"]),
                quote_qty=float(row.get("quoteQty", 0)),
                commission=float(row.get("commission", 0)),
                commission_asset=row.get("commissionAsset"),
                time=int(row["time"]),
                is_maker=bool(row.get("isMaker", False)),
            )
            for row in rows
        ]
