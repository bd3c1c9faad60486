"""Technical indicators (pure math, no I/O)."""

from core.indicators.indicators import (
    sma,
    rolling_std,
    bollinger,
    rsi,
    atr,
    true_range,
    macd,
    classify_trend,
    enrich_series,
    compute_snapshot,
)

__all__ = [
    "sma",
    "rolling_std",
    "bollinger",
    "rsi",
    "atr",
    "true_range",
    "macd",
    "classify_trend",
    "enrich_series",
    "compute_snapshot",
]
