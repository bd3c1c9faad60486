"""Market scanner: one-shot signal summary across several symbols."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from core.indicators import compute_snapshot
from core.models.analysis import PredictionSignal, Trend
from core.models.candle import Interval, MarketType
from core.signal_scorer import SignalScorer

from app.services.history_provider import HistoryProvider

logger = logging.getLogger(__name__)

# Fewer points than this give too little history to score
MIN_POINTS = 20


@dataclass
class ScannerRow:
    symbol: str
    price: float
    signal: PredictionSignal
    confidence: float
    trend: Trend


async def scan_market(
    provider: HistoryProvider,
    symbols: list[str],
    scorer: SignalScorer | None = None,
    interval: Interval | str = Interval.H1,
    limit: int = 60,
) -> list[ScannerRow]:
    """
    Score each symbol on a short spot history.

    Symbols are fetched one after another; symbols with MIN_POINTS or fewer
    candles are skipped.
    """
    scorer = scorer or SignalScorer()
    rows: list[ScannerRow] = []

    for symbol in symbols:
        series = await provider.fetch(symbol, interval, limit, MarketType.SPOT)
        if len(series) <= MIN_POINTS:
            logger.info(f"Scanner: {symbol} has only {len(series)} points, skipping")
            continue

        indicators = compute_snapshot(series)
        price = series[-1].close
        prediction = scorer.score(indicators, price)
        rows.append(
            ScannerRow(
                symbol=symbol,
                price=price,
                signal=prediction.signal,
                confidence=prediction.confidence,
                trend=indicators.trend,
            )
        )

    return rows
