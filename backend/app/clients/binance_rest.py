"""Binance REST API client for fetching kline history."""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from core.models.candle import Candle, MarketType, format_label

logger = logging.getLogger(__name__)

# Maximum klines per request accepted by both spot and futures endpoints
MAX_LIMIT = 1000

KLINES_ENDPOINT = {
    MarketType.SPOT: "/api/v3/klines",
    MarketType.FUTURES: "/fapi/v1/klines",
}


def to_pair(symbol: str) -> str:
    """BTC -> BTCUSDT. Symbols already quoted in USDT are kept."""
    symbol = symbol.upper()
    return symbol if symbol.endswith("USDT") else f"{symbol}USDT"


def parse_kline_row(item: list[Any]) -> Candle:
    """Convert one Binance kline array into a Candle.

    Row layout: [open_time, open, high, low, close, volume, close_time, ...]
    """
    ts = datetime.fromtimestamp(item[0] / 1000, tz=timezone.utc)
    return Candle(
        label=format_label(ts),
        timestamp=ts,
        close=float(item[4]),
        high=float(item[2]),
        low=float(item[3]),
        volume=float(item[5]),
    )


class BinanceRestClient:
    """Binance spot/futures REST API client."""

    def __init__(
        self,
        spot_url: str = "https://api.binance.com",
        futures_url: str = "https://fapi.binance.com",
        timeout: float = 10.0,
    ):
        self.base_urls = {
            MarketType.SPOT: spot_url,
            MarketType.FUTURES: futures_url,
        }
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        market_type: MarketType,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        client = await self._get_client()
        url = self.base_urls[market_type] + endpoint
        response = await client.get(url, params=params)
        response.raise_for_status()
        return response.json()

    async def get_klines(
        self,
        symbol: str,
        interval: str,
        limit: int = 200,
        market_type: MarketType = MarketType.SPOT,
    ) -> list[Candle]:
        """
        Fetch the latest klines.

        Args:
            symbol: Base asset (e.g., "BTC") or pair (e.g., "BTCUSDT")
            interval: Kline interval (e.g., "1h")
            limit: Number of klines (capped at MAX_LIMIT)
            market_type: SPOT or FUTURES endpoint

        Returns:
            List of Candle objects, oldest first

        Raises:
            httpx.HTTPError: on transport or HTTP status errors
            ValueError: on a malformed payload
        """
        params = {
            "symbol": to_pair(symbol),
            "interval": interval,
            "limit": min(limit, MAX_LIMIT),
        }
        data = await self._request(market_type, KLINES_ENDPOINT[market_type], params)

        if not isinstance(data, list):
            raise ValueError(f"Unexpected klines payload: {type(data).__name__}")

        try:
            return [parse_kline_row(item) for item in data]
        except (IndexError, TypeError) as e:
            raise ValueError(f"Malformed kline row: {e}") from e
