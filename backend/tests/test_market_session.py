"""Tests for the live market session."""

import asyncio
import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.indicators import enrich_series
from core.models.candle import Candle, KlineTick, MarketType
from core.signal_scorer import SignalScorer
from core.stream_enricher import StreamEnricher

from app.config import Settings
from app.services.market_session import DataSource, MarketSession


def make_series(n=60, prefix="L"):
    return enrich_series([Candle(label=f"{prefix}{i:04d}", close=100.0 + i) for i in range(n)])


def make_tick(label, close=150.0):
    return KlineTick(label=label, close=close, high=close + 1, low=close - 1, volume=5.0)


class FakeStream:
    def __init__(self, events, symbol, interval, market_type, callback):
        self.events = events
        self.symbol = symbol
        self.interval = interval
        self.market_type = market_type
        self.callback = callback

    async def start(self):
        self.events.append(("start", self.symbol))

    async def stop(self):
        self.events.append(("stop", self.symbol))


class TestMarketSession:
    """Tests for MarketSession."""

    @pytest.fixture
    def events(self):
        return []

    @pytest.fixture
    def streams(self):
        return []

    @pytest.fixture
    def provider(self, events):
        provider = MagicMock()

        async def fetch(symbol, interval, limit, market_type):
            events.append(("fetch", symbol))
            return make_series(prefix=symbol)

        provider.fetch = AsyncMock(side_effect=fetch)
        return provider

    @pytest.fixture
    def session(self, provider, events, streams):
        def factory(symbol, interval, market_type, callback):
            stream = FakeStream(events, symbol, interval, market_type, callback)
            streams.append(stream)
            return stream

        return MarketSession(
            provider,
            enricher=StreamEnricher(scorer=SignalScorer(jitter=False)),
            stream_factory=factory,
            settings=Settings(history_limit=60),
            rng=random.Random(0),
        )

    @pytest.mark.asyncio
    async def test_select_publishes_state(self, session, provider, streams):
        state = await session.select("btc", "1h", MarketType.SPOT)

        assert state is session.state
        assert state.symbol == "BTC"
        assert state.interval == "1h"
        assert state.market_type == MarketType.SPOT
        assert state.source == DataSource.LIVE
        assert len(state.series) == 60
        assert state.price == state.series[-1].close
        assert len(state.depth.bids) == 5
        assert session.is_streaming
        assert streams[0].market_type == MarketType.SPOT
        provider.fetch.assert_awaited_once_with("BTC", "1h", 60, MarketType.SPOT)

    @pytest.mark.asyncio
    async def test_switch_closes_old_stream_before_fetch(self, session, events):
        await session.select("BTC", "1h")
        await session.select("ETH", "4h")

        assert events == [
            ("fetch", "BTC"),
            ("start", "BTC"),
            ("stop", "BTC"),
            ("fetch", "ETH"),
            ("start", "ETH"),
        ]

    @pytest.mark.asyncio
    async def test_tick_merges_into_window(self, session, streams):
        await session.select("BTC", "1h")
        last = session.state.series[-1].label

        await streams[0].callback(make_tick(last, 500.0))
        assert len(session.state.series) == 60
        assert session.state.price == 500.0

        await streams[0].callback(make_tick("BTC9999", 501.0))
        assert len(session.state.series) == 61
        assert session.ticks_applied == 2

    @pytest.mark.asyncio
    async def test_overlapping_selects_run_one_after_another(self, session, provider, events, streams):
        """A slow switch finishes before a faster one that started later."""
        delays = {"BTC": 0.05, "ETH": 0.01}

        async def slow_fetch(symbol, interval, limit, market_type):
            events.append(("fetch", symbol))
            await asyncio.sleep(delays[symbol])
            return make_series(prefix=symbol)

        provider.fetch.side_effect = slow_fetch

        await asyncio.gather(session.select("BTC", "1h"), session.select("ETH", "1h"))

        assert events == [
            ("fetch", "BTC"),
            ("start", "BTC"),
            ("stop", "BTC"),
            ("fetch", "ETH"),
            ("start", "ETH"),
        ]
        assert session.state.symbol == "ETH"
        assert session.state.series[-1].label == "ETH0059"

        await streams[0].callback(make_tick("BTC9999"))
        assert session.state.series[-1].label == "ETH0059"
        assert session.ticks_dropped == 1

    @pytest.mark.asyncio
    async def test_stale_ticks_dropped_after_switch(self, session, streams):
        await session.select("BTC", "1h")
        old_callback = streams[0].callback
        await session.select("ETH", "1h")
        before = session.state

        await old_callback(make_tick("BTC9999"))

        assert session.state is before
        assert session.state.symbol == "ETH"
        assert all(c.label.startswith("ETH") for c in session.state.series)
        assert session.ticks_dropped == 1

    @pytest.mark.asyncio
    async def test_invalid_tick_dropped(self, session):
        await session.select("BTC", "1h")
        before = session.state

        result = await session.on_tick({"label": "X", "close": -1, "high": 0, "low": 0, "volume": 0})

        assert result is None
        assert session.state is before
        assert session.ticks_dropped == 1

    @pytest.mark.asyncio
    async def test_tick_from_mapping(self, session):
        await session.select("BTC", "1h")
        state = await session.on_tick({"label": "NEW", "close": 10, "high": 11, "low": 9, "volume": 1})

        assert state.series[-1].label == "NEW"

    @pytest.mark.asyncio
    async def test_import_disables_streaming(self, session, events):
        await session.select("BTC", "1h")
        candles = [Candle(label=f"d{i}", close=10.0 + i) for i in range(30)]

        state = await session.import_dataset(candles, name="my.csv")

        assert events[-1] == ("stop", "BTC")
        assert not session.is_streaming
        assert state.source == DataSource.IMPORTED
        assert state.symbol == "my.csv"
        assert len(state.series) == 30
        assert state.backtest.equity_curve == []

        assert await session.on_tick(make_tick("d29", 99.0)) is None
        assert session.state.series[-1].close == 39.0

    @pytest.mark.asyncio
    async def test_import_empty_rejected(self, session):
        with pytest.raises(ValueError):
            await session.import_dataset([])

    @pytest.mark.asyncio
    async def test_select_after_import_resumes_streaming(self, session):
        await session.import_dataset([Candle(label="a", close=1.0)])
        state = await session.select("SOL", "1h")

        assert state.source == DataSource.LIVE
        assert session.is_streaming

    @pytest.mark.asyncio
    async def test_insight_context(self, session):
        assert session.insight_context() is None
        await session.select("BTC", "1h")
        assert "Asset: BTC | Timeframe: 1h" in session.insight_context()

    @pytest.mark.asyncio
    async def test_close(self, session, events):
        await session.select("BTC", "1h")
        await session.close()

        assert events[-1] == ("stop", "BTC")
        assert not session.is_streaming
