"""Merge live ticks into an enriched candle window.

Every merge re-enriches the whole window and recomputes the indicator
snapshot, prediction and backtest from scratch; none of them have an
incremental update path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from core.backtest_simulator import DEFAULT_INITIAL_BALANCE, BacktestSimulator
from core.indicators import compute_snapshot, enrich_series
from core.models.analysis import BacktestResult, IndicatorSnapshot, Prediction
from core.models.candle import Candle, CandleSeries, KlineTick
from core.signal_scorer import SignalScorer

logger = logging.getLogger(__name__)

MAX_WINDOW = 200


@dataclass(frozen=True)
class StreamUpdate:
    """Derived views after one merge."""

    series: CandleSeries
    indicators: IndicatorSnapshot
    prediction: Prediction
    backtest: BacktestResult


def merge_candle(
    series: Sequence[Candle],
    candle: Candle,
    max_window: int = MAX_WINDOW,
) -> list[Candle]:
    """
    Merge one candle into a window.

    Same label as the last candle: replace it (in-progress bucket).
    Older than the last candle (both timestamped) or matching an earlier
    label: dropped.
    New label: append and drop the oldest while over ``max_window``.
    The input sequence is not modified.
    """
    merged = list(series)
    if merged and merged[-1].label == candle.label:
        if candle.timestamp is None and merged[-1].timestamp is not None:
            candle = candle.model_copy(update={"timestamp": merged[-1].timestamp})
        merged[-1] = candle
        return merged

    stale = merged and (
        candle.timestamp is not None
        and merged[-1].timestamp is not None
        and candle.timestamp <= merged[-1].timestamp
    )
    if stale or any(c.label == candle.label for c in merged):
        logger.debug(f"Dropping out-of-order candle {candle.label} (last {merged[-1].label})")
        return merged

    merged.append(candle)
    if len(merged) > max_window:
        merged = merged[-max_window:]
    return merged


class StreamEnricher:
    """Apply ticks to a window and rebuild all derived state."""

    def __init__(
        self,
        scorer: SignalScorer | None = None,
        simulator: BacktestSimulator | None = None,
        max_window: int = MAX_WINDOW,
        initial_balance: float = DEFAULT_INITIAL_BALANCE,
    ):
        self.scorer = scorer or SignalScorer()
        self.simulator = simulator or BacktestSimulator(scorer=self.scorer)
        self.max_window = max_window
        self.initial_balance = initial_balance

    def merge(self, series: Sequence[Candle], tick: KlineTick | Candle) -> StreamUpdate:
        """
        Merge a tick and recompute everything derived from the window.

        Args:
            series: Current window (not modified)
            tick: Incoming update for the latest or a new bucket

        Returns:
            StreamUpdate with the new window and fresh snapshots
        """
        candle = tick.to_candle() if isinstance(tick, KlineTick) else tick
        merged = merge_candle(series, candle, self.max_window)
        return self.rebuild(merged)

    def rebuild(self, series: Sequence[Candle]) -> StreamUpdate:
        """Enrich a window and compute snapshot, prediction and backtest."""
        enriched = enrich_series(series)
        indicators = compute_snapshot(enriched)
        price = enriched[-1].close if enriched else 0.0
        prediction = self.scorer.score(indicators, price)
        backtest = self.simulator.run(enriched, self.initial_balance)

        return StreamUpdate(
            series=enriched,
            indicators=indicators,
            prediction=prediction,
            backtest=backtest,
        )
