"""Technical indicators for the dashboard, scorer and backtest.

Two conventions for "not enough history" coexist on purpose:

1. Per-candle enrichment (``enrich_series``) leaves fields as None until the
   rolling window is full.
2. The snapshot path (``compute_snapshot``) reports 0.0 for an SMA whose
   window is not full, and MACD is computed from those zero-padded SMAs.

Downstream consumers depend on both, so they are kept at their call sites.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from core.models.analysis import (
    BollingerBands,
    IndicatorSignal,
    IndicatorSnapshot,
    Macd,
    Trend,
)
from core.models.candle import Candle, CandleSeries, EnrichedCandle

SMA_FAST = 20
SMA_SLOW = 50
BOLLINGER_PERIOD = 20
BOLLINGER_K = 2.0
RSI_PERIOD = 14
ATR_PERIOD = 14
MACD_FAST = 12
MACD_SLOW = 26


def _as_array(values: Sequence[float]) -> np.ndarray:
    if isinstance(values, np.ndarray):
        return values
    return np.asarray(values, dtype=np.float64)


# =============================================================================
# Single-value indicators (latest bar)
# =============================================================================

def sma(values: Sequence[float], period: int) -> float | None:
    """
    Simple Moving Average of the last ``period`` values.

    Args:
        values: Sequence of prices, oldest first
        period: Window length

    Returns:
        The mean, or None when fewer than ``period`` values exist
    """
    arr = _as_array(values)
    if len(arr) < period:
        return None
    return float(np.mean(arr[-period:]))


def rolling_std(values: Sequence[float], period: int) -> float | None:
    """Population standard deviation of the last ``period`` values."""
    arr = _as_array(values)
    if len(arr) < period:
        return None
    window = arr[-period:]
    mean = np.mean(window)
    return float(np.sqrt(np.sum((window - mean) ** 2) / period))


def bollinger(
    values: Sequence[float],
    period: int = BOLLINGER_PERIOD,
    k: float = BOLLINGER_K,
) -> BollingerBands | None:
    """
    Bollinger Bands over the last ``period`` values.

    middle = SMA(period), upper/lower = middle +/- k * stddev.

    Returns:
        BollingerBands, or None when the window is not full
    """
    middle = sma(values, period)
    if middle is None:
        return None
    std = rolling_std(values, period)
    return BollingerBands(upper=middle + std * k, middle=middle, lower=middle - std * k)


def rsi(values: Sequence[float], period: int = RSI_PERIOD) -> float:
    """
    Relative Strength Index.

    Uses a plain average of gains and losses over the last ``period``
    transitions (not Wilder's smoothing).

    Returns:
        RSI in [0, 100]; 50 with fewer than period + 1 values,
        100 when there were no losses
    """
    arr = _as_array(values)
    if len(arr) < period + 1:
        return 50.0

    deltas = np.diff(arr[-(period + 1):])
    gains = float(np.sum(deltas[deltas >= 0]))
    losses = float(-np.sum(deltas[deltas < 0]))

    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def true_range(candle: Candle, prev_close: float) -> float:
    """TR = max(high - low, |high - prev_close|, |low - prev_close|)."""
    high = candle.high_or_close
    low = candle.low_or_close
    return max(high - low, abs(high - prev_close), abs(low - prev_close))


def atr(candles: Sequence[Candle], period: int = ATR_PERIOD) -> float:
    """
    Average True Range over the last ``period`` bars.

    Missing high/low fall back to the close.

    Returns:
        Mean true range, or 0.0 with fewer than period + 1 bars
    """
    n = len(candles)
    if n < period + 1:
        return 0.0

    tr_sum = 0.0
    for i in range(n - period, n):
        tr_sum += true_range(candles[i], candles[i - 1].close)
    return tr_sum / period


def macd(values: Sequence[float]) -> Macd:
    """
    Approximate MACD.

    value = SMA(12) - SMA(26) with zero-padded SMAs, signal = 0.9 * value,
    histogram = 0.1 * value.
    """
    fast = sma(values, MACD_FAST) or 0.0
    slow = sma(values, MACD_SLOW) or 0.0
    value = fast - slow
    return Macd(value=value, signal=value * 0.9, histogram=value * 0.1)


def classify_trend(sma_fast: float, sma_slow: float) -> Trend:
    if sma_fast > sma_slow:
        return Trend.UP
    if sma_fast < sma_slow:
        return Trend.DOWN
    return Trend.SIDEWAYS


# =============================================================================
# Whole-series enrichment
# =============================================================================

def enrich_series(candles: Sequence[Candle]) -> CandleSeries:
    """
    Attach SMA20, SMA50 and Bollinger(20, 2) to every candle.

    Values at index i only use candles [0..i]. Any derived fields already
    present on the input are recomputed, so enriching twice gives the same
    result as enriching once.

    Args:
        candles: Chronological candles (plain or already enriched)

    Returns:
        New list of EnrichedCandle
    """
    closes = _as_array([c.close for c in candles])
    enriched: CandleSeries = []

    for i, candle in enumerate(candles):
        window = closes[: i + 1]
        sma_fast = sma(window, SMA_FAST)
        sma_slow = sma(window, SMA_SLOW)
        bands = bollinger(window) if sma_fast is not None else None

        enriched.append(
            EnrichedCandle(
                label=candle.label,
                close=candle.close,
                high=candle.high,
                low=candle.low,
                volume=candle.volume,
                timestamp=candle.timestamp,
                sma20=sma_fast,
                sma50=sma_slow,
                bollinger_upper=bands.upper if bands else None,
                bollinger_lower=bands.lower if bands else None,
            )
        )

    return enriched


# =============================================================================
# Snapshot
# =============================================================================

def compute_snapshot(candles: Sequence[Candle]) -> IndicatorSnapshot:
    """
    Summarise the tail of a series into an IndicatorSnapshot.

    Short series never raise: SMAs read 0.0, RSI 50 and ATR 0.
    """
    closes = _as_array([c.close for c in candles])

    value_rsi = rsi(closes)
    sma_fast = sma(closes, SMA_FAST) or 0.0
    sma_slow = sma(closes, SMA_SLOW) or 0.0

    std = rolling_std(closes, BOLLINGER_PERIOD) or 0.0
    bands = BollingerBands(
        upper=sma_fast + std * BOLLINGER_K,
        middle=sma_fast,
        lower=sma_fast - std * BOLLINGER_K,
    )

    trend = classify_trend(sma_fast, sma_slow)

    signal = IndicatorSignal.NEUTRAL
    if value_rsi < 30 and trend == Trend.UP:
        signal = IndicatorSignal.BUY
    elif value_rsi > 70 and trend == Trend.DOWN:
        signal = IndicatorSignal.SELL

    return IndicatorSnapshot(
        rsi=value_rsi,
        sma20=sma_fast,
        sma50=sma_slow,
        macd=macd(closes),
        bollinger=bands,
        atr=atr(candles),
        trend=trend,
        signal=signal,
    )
