"""Tests for history acquisition and the synthetic fallback."""

import random
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from core.models.candle import Candle, EnrichedCandle, MarketType

from app.services.history_provider import HistoryProvider
from app.services.synthetic import (
    BASE_PRICES,
    DEFAULT_BASE_PRICE,
    base_price_for,
    generate_for_symbol,
    generate_history,
)
from app.storage.cache import CacheKey, ResultCache


def make_live(n=60):
    return [Candle(label=f"2025-01-01 {i:04d}", close=100.0 + i) for i in range(n)]


@pytest.fixture
def rest_client():
    client = MagicMock()
    client.get_klines = AsyncMock(return_value=make_live())
    return client


class TestHistoryProvider:
    """Tests for HistoryProvider.fetch."""

    @pytest.mark.asyncio
    async def test_live_data_enriched_and_cached(self, rest_client):
        provider = HistoryProvider(rest_client, ResultCache())

        series = await provider.fetch("BTC", "1h", 60, MarketType.SPOT)
        again = await provider.fetch("btc", "1h", 60, MarketType.SPOT)

        assert len(series) == 60
        assert isinstance(series[0], EnrichedCandle)
        assert series[-1].sma50 is not None
        assert again == series
        rest_client.get_klines.assert_awaited_once()
        assert CacheKey("BTC", "1h", MarketType.SPOT) in provider.cache

    @pytest.mark.asyncio
    async def test_market_type_is_part_of_key(self, rest_client):
        provider = HistoryProvider(rest_client, ResultCache())
        await provider.fetch("BTC", "1h", 60, MarketType.SPOT)
        await provider.fetch("BTC", "1h", 60, MarketType.FUTURES)
        assert rest_client.get_klines.await_count == 2

    @pytest.mark.asyncio
    async def test_fallback_on_network_error(self, rest_client):
        rest_client.get_klines.side_effect = httpx.ConnectError("unreachable")
        provider = HistoryProvider(rest_client, ResultCache())

        series = await provider.fetch("ETH", "1h", 200, MarketType.FUTURES)

        assert len(series) == 201
        assert all(isinstance(c, EnrichedCandle) for c in series)
        assert series[-1].sma20 is not None

    @pytest.mark.asyncio
    async def test_fallback_on_empty_response(self, rest_client):
        rest_client.get_klines.return_value = []
        provider = HistoryProvider(rest_client, ResultCache())

        series = await provider.fetch("SOL", "1h", 48)
        assert len(series) == 49

    @pytest.mark.asyncio
    async def test_fallback_not_cached(self, rest_client):
        rest_client.get_klines.side_effect = ValueError("bad payload")
        provider = HistoryProvider(rest_client, ResultCache())

        await provider.fetch("BTC", "1h", 24)
        assert len(provider.cache) == 0

        rest_client.get_klines.side_effect = None
        rest_client.get_klines.return_value = make_live()
        series = await provider.fetch("BTC", "1h", 24)

        assert rest_client.get_klines.await_count == 2
        assert series[0].close == 100.0

    @pytest.mark.asyncio
    async def test_fallback_deterministic_per_symbol(self, rest_client):
        rest_client.get_klines.side_effect = RuntimeError("down")
        provider = HistoryProvider(rest_client, ResultCache())

        a = await provider.fetch("BTC", "1h", 24)
        b = await provider.fetch("BTC", "1h", 24)
        assert [c.close for c in a] == [c.close for c in b]


class TestSynthetic:
    """Tests for the synthetic history generator."""

    def test_bar_count_and_spacing(self):
        now = datetime(2025, 3, 1, 12, 30, tzinfo=timezone.utc)
        candles = generate_history(100.0, days=2, rng=random.Random(0), now=now)

        assert len(candles) == 49
        assert candles[-1].label == "2025-03-01 12:00"
        assert candles[0].label == "2025-02-27 12:00"
        gaps = {
            (b.timestamp - a.timestamp).total_seconds() for a, b in zip(candles, candles[1:])
        }
        assert gaps == {3600.0}

    def test_bounded_steps(self):
        candles = generate_history(1000.0, days=5, rng=random.Random(1))
        prices = [1000.0] + [c.close for c in candles]
        for prev, cur in zip(prices, prices[1:]):
            assert 0.98 <= cur / prev <= 1.02

    def test_ohlc_consistency(self):
        for c in generate_history(50.0, days=3, rng=random.Random(2)):
            assert c.low <= c.close <= c.high
            assert c.close > 0
            assert 0 <= c.volume < 1_000_000

    def test_zero_days_yields_one_bar(self):
        assert len(generate_history(10.0, days=0, rng=random.Random(3))) == 1

    def test_base_prices(self):
        assert base_price_for("BTC") == BASE_PRICES["BTC"]
        assert base_price_for("ethusdt") == BASE_PRICES["ETH"]
        assert base_price_for("UNKNOWN") == DEFAULT_BASE_PRICE

    def test_seeded_by_symbol(self):
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)
        a = generate_for_symbol("XRP", 48, now=now)
        b = generate_for_symbol("xrp", 48, now=now)
        assert a == b
