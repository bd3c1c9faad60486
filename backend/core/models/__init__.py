"""Data models shared by the live app and the backtest CLI."""

from core.models.candle import (
    LABEL_FORMAT,
    Candle,
    CandleSeries,
    EnrichedCandle,
    Interval,
    KlineTick,
    MarketType,
    format_label,
)
from core.models.analysis import (
    BacktestResult,
    BollingerBands,
    EquityPoint,
    IndicatorSignal,
    IndicatorSnapshot,
    Macd,
    Prediction,
    PredictionFeatures,
    PredictionSignal,
    Trend,
)
from core.models.market import MarketDepth, MarketDepthItem, OnChainMetric

__all__ = [
    "LABEL_FORMAT",
    "Candle",
    "CandleSeries",
    "EnrichedCandle",
    "Interval",
    "KlineTick",
    "MarketType",
    "format_label",
    "BacktestResult",
    "BollingerBands",
    "EquityPoint",
    "IndicatorSignal",
    "IndicatorSnapshot",
    "Macd",
    "Prediction",
    "PredictionFeatures",
    "PredictionSignal",
    "Trend",
    "MarketDepth",
    "MarketDepthItem",
    "OnChainMetric",
]
