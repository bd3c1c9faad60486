"""Candle history acquisition with caching and synthetic fallback.

Flow for ``fetch``:
1. Look up the ResultCache by (symbol, interval, market type)
2. On a miss, fetch live klines over REST and enrich them (cached)
3. On any live failure, log and return an enriched synthetic series
   (not cached, so the next call retries the live source)

``fetch`` never raises and never returns an empty series.
"""

from __future__ import annotations

import logging
import random
from typing import Callable

from core.indicators import enrich_series
from core.models.candle import CandleSeries, Interval, MarketType

from app.clients.binance_rest import BinanceRestClient
from app.storage.cache import CacheKey, ResultCache
from app.services.synthetic import generate_for_symbol

logger = logging.getLogger(__name__)


class HistoryProvider:
    """Fetch enriched candle series for a symbol.

    Args:
        rest_client: Live kline source
        cache: Shared result cache
        rng_factory: Builds the random source for the synthetic fallback
            from a symbol (defaults to a symbol-seeded Random)
    """

    def __init__(
        self,
        rest_client: BinanceRestClient,
        cache: ResultCache[CacheKey] | None = None,
        rng_factory: Callable[[str], random.Random] | None = None,
    ):
        self.rest_client = rest_client
        self.cache = cache if cache is not None else ResultCache()
        self._rng_factory = rng_factory or (lambda symbol: random.Random(symbol.upper()))

    async def fetch(
        self,
        symbol: str,
        interval: Interval | str = Interval.H1,
        limit: int = 200,
        market_type: MarketType = MarketType.SPOT,
    ) -> CandleSeries:
        """
        Fetch an enriched candle series.

        Args:
            symbol: Base asset (e.g., "BTC")
            interval: Kline interval
            limit: Number of candles requested (> 0)
            market_type: SPOT or FUTURES

        Returns:
            Enriched series, live or synthetic
        """
        interval = Interval(interval).value
        market_type = MarketType(market_type)
        key = CacheKey(symbol.upper(), interval, market_type)

        async def fetch_live() -> CandleSeries:
            candles = await self.rest_client.get_klines(
                symbol, interval, limit=limit, market_type=market_type
            )
            if not candles:
                raise ValueError("empty kline response")
            return enrich_series(candles)

        try:
            return await self.cache.get_or_fetch(key, fetch_live)
        except Exception as e:
            logger.warning(
                f"Failed to fetch live {market_type.value} data for {symbol}, "
                f"falling back to simulation: {e}"
            )

        return self.fallback(symbol, limit)

    def fallback(self, symbol: str, limit: int) -> CandleSeries:
        """Enriched synthetic series for ``symbol``."""
        candles = generate_for_symbol(symbol, limit, rng=self._rng_factory(symbol))
        return enrich_series(candles)
