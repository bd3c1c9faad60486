"""Live market session for one (symbol, interval, market type).

Owns the candle window of the active subscription and publishes a fresh
read-only MarketState after every change.

Subscription switch order (switches run one at a time under a session lock):
1. Stop the previous stream and wait for it to finish
2. Bump the subscription generation (late ticks from the old stream are dropped)
3. Fetch history and publish state
4. Open the new stream (skipped while an imported dataset is active)

Ticks are handled one at a time on the event loop; each merge reads the
current window and replaces the published state wholesale.
"""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping, Protocol

from pydantic import BaseModel, ConfigDict, ValidationError

from core.models.analysis import BacktestResult, IndicatorSnapshot, Prediction
from core.models.candle import Candle, CandleSeries, Interval, KlineTick, MarketType
from core.models.market import MarketDepth, OnChainMetric
from core.stream_enricher import StreamEnricher, StreamUpdate

from app.clients.binance_ws_kline import BinanceKlineWebSocket, TickCallback
from app.config import Settings, get_settings
from app.services.history_provider import HistoryProvider
from app.services.market_context import (
    build_insight_context,
    fetch_market_depth,
    fetch_onchain_metrics,
)

logger = logging.getLogger(__name__)


class DataSource(str, Enum):
    LIVE = "LIVE"
    IMPORTED = "IMPORTED"


class MarketState(BaseModel):
    """Published, read-only view of the session."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    interval: str
    market_type: MarketType
    source: DataSource
    series: CandleSeries
    indicators: IndicatorSnapshot
    prediction: Prediction
    backtest: BacktestResult
    onchain: list[OnChainMetric]
    depth: MarketDepth
    updated_at: datetime

    @property
    def price(self) -> float:
        return self.series[-1].close if self.series else 0.0


class KlineStream(Protocol):
    async def start(self) -> None: ...

    async def stop(self) -> None: ...


StreamFactory = Callable[[str, str, MarketType, TickCallback], KlineStream]


def binance_stream_factory(settings: Settings) -> StreamFactory:
    """Build picows kline streams against the configured hosts."""

    def factory(
        symbol: str, interval: str, market_type: MarketType, callback: TickCallback
    ) -> KlineStream:
        ws_url = (
            settings.futures_ws_url
            if market_type == MarketType.FUTURES
            else settings.spot_ws_url
        )
        return BinanceKlineWebSocket(symbol, interval, callback, ws_url=ws_url)

    return factory


class MarketSession:
    """Holds the live window for the selected market and keeps it enriched."""

    def __init__(
        self,
        provider: HistoryProvider,
        enricher: StreamEnricher | None = None,
        stream_factory: StreamFactory | None = None,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ):
        self.settings = settings or get_settings()
        self.provider = provider
        self.enricher = enricher or StreamEnricher(
            max_window=self.settings.window_size,
            initial_balance=self.settings.initial_balance,
        )
        self._stream_factory = stream_factory or binance_stream_factory(self.settings)
        self._rng = rng or random.Random()

        # Serialises select, import and close so one switch finishes before the next
        self._switch_lock = asyncio.Lock()
        self._stream: KlineStream | None = None
        self._generation = 0
        self._state: MarketState | None = None
        self._symbol = self.settings.default_symbol
        self._interval = self.settings.default_interval
        self._market_type = MarketType(self.settings.default_market_type)
        self._source = DataSource.LIVE
        self._onchain: list[OnChainMetric] = []
        self._depth: MarketDepth | None = None

        self.ticks_applied = 0
        self.ticks_dropped = 0

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> MarketState | None:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_streaming(self) -> bool:
        return self._stream is not None

    @property
    def source(self) -> DataSource:
        return self._source

    def insight_context(self) -> str | None:
        """Text context for the narrative-insight collaborator."""
        state = self._state
        if state is None:
            return None
        return build_insight_context(
            state.symbol,
            state.price,
            state.indicators,
            state.interval,
            state.onchain,
            state.depth,
        )

    # ------------------------------------------------------------------
    # Subscription lifecycle
    # ------------------------------------------------------------------

    async def select(
        self,
        symbol: str,
        interval: Interval | str,
        market_type: MarketType | str = MarketType.FUTURES,
    ) -> MarketState:
        """
        Switch to a market, replacing any previous subscription.

        Returns:
            The freshly published state
        """
        interval = Interval(interval).value
        market_type = MarketType(market_type)

        async with self._switch_lock:
            await self._close_stream()
            self._generation += 1

            self._symbol = symbol.upper()
            self._interval = interval
            self._market_type = market_type
            self._source = DataSource.LIVE

            logger.info(f"Selecting {self._symbol} {interval} {market_type.value}")
            series = await self.provider.fetch(
                self._symbol, interval, self.settings.history_limit, market_type
            )
            state = self._publish_full(series)
            await self._open_stream()
            return state

    async def import_dataset(self, candles: list[Candle], name: str = "IMPORTED") -> MarketState:
        """
        Replace the live source with an imported dataset.

        Streaming stays off until the next ``select``.
        """
        if not candles:
            raise ValueError("Imported dataset is empty")

        async with self._switch_lock:
            await self._close_stream()
            self._generation += 1
            self._symbol = name
            self._source = DataSource.IMPORTED

            logger.info(f"Imported dataset '{name}' with {len(candles)} candles")
            return self._publish_full(candles)

    async def close(self) -> None:
        async with self._switch_lock:
            await self._close_stream()
            self._generation += 1

    async def _close_stream(self) -> None:
        if self._stream is not None:
            stream, self._stream = self._stream, None
            await stream.stop()

    async def _open_stream(self) -> None:
        generation = self._generation

        async def callback(tick: KlineTick) -> None:
            self.apply_tick(tick, generation)

        self._stream = self._stream_factory(
            self._symbol, self._interval, self._market_type, callback
        )
        await self._stream.start()

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    async def on_tick(self, tick: KlineTick | Mapping[str, Any]) -> MarketState | None:
        """Apply a tick for the current subscription."""
        return self.apply_tick(tick, self._generation)

    def apply_tick(
        self,
        tick: KlineTick | Mapping[str, Any],
        generation: int,
    ) -> MarketState | None:
        """
        Validate and merge one tick.

        Invalid ticks, ticks from a superseded subscription and ticks during
        an imported session are dropped without touching the window.

        Returns:
            The new state, or None if the tick was dropped
        """
        if generation != self._generation:
            self.ticks_dropped += 1
            logger.debug(f"Dropping stale tick (generation {generation} != {self._generation})")
            return None

        if self._source == DataSource.IMPORTED:
            self.ticks_dropped += 1
            return None

        if not isinstance(tick, KlineTick):
            try:
                tick = KlineTick.model_validate(tick)
            except ValidationError as e:
                self.ticks_dropped += 1
                logger.warning(f"Dropping invalid tick: {e.error_count()} validation error(s)")
                return None

        current = self._state.series if self._state is not None else []
        update = self.enricher.merge(current, tick)
        self.ticks_applied += 1
        return self._publish(update)

    # ------------------------------------------------------------------
    # Publication
    # ------------------------------------------------------------------

    def _publish_full(self, series: list[Candle]) -> MarketState:
        update = self.enricher.rebuild(series)
        price = update.series[-1].close if update.series else 0.0
        self._onchain = fetch_onchain_metrics(self._symbol, self._rng)
        self._depth = fetch_market_depth(price, self._rng)
        return self._publish(update)

    def _publish(self, update: StreamUpdate) -> MarketState:
        if self._depth is None:
            price = update.series[-1].close if update.series else 0.0
            self._depth = fetch_market_depth(price, self._rng)

        self._state = MarketState(
            symbol=self._symbol,
            interval=self._interval,
            market_type=self._market_type,
            source=self._source,
            series=update.series,
            indicators=update.indicators,
            prediction=update.prediction,
            backtest=update.backtest,
            onchain=self._onchain,
            depth=self._depth,
            updated_at=datetime.now(timezone.utc),
        )
        return self._state
