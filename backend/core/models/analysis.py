"""Indicator snapshot, prediction and backtest result models.

All of these are value snapshots: they are recomputed from a candle series
and replaced wholesale, never updated in place.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Trend(str, Enum):
    """Moving-average trend classification."""

    UP = "UP"
    DOWN = "DOWN"
    SIDEWAYS = "SIDEWAYS"


class IndicatorSignal(str, Enum):
    """Naive signal derived directly from RSI and trend."""

    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"


class PredictionSignal(str, Enum):
    """Signal emitted by the scorer."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class Macd(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: float
    signal: float
    histogram: float


class BollingerBands(BaseModel):
    model_config = ConfigDict(frozen=True)

    upper: float
    middle: float
    lower: float

    @property
    def width(self) -> float:
        """Relative band width, 0 when the middle band is unset."""
        if self.middle == 0:
            return 0.0
        return (self.upper - self.lower) / self.middle


class IndicatorSnapshot(BaseModel):
    """Point-in-time indicator summary over the tail of a series."""

    model_config = ConfigDict(frozen=True)

    rsi: float = Field(ge=0, le=100)
    sma20: float
    sma50: float
    macd: Macd
    bollinger: BollingerBands
    atr: float = Field(ge=0)
    trend: Trend
    signal: IndicatorSignal


class PredictionFeatures(BaseModel):
    model_config = ConfigDict(frozen=True)

    rsi_normalized: float
    trend_strength: int
    volatility: float


class Prediction(BaseModel):
    """Output of the rule-based scorer."""

    model_config = ConfigDict(frozen=True)

    signal: PredictionSignal
    confidence: float = Field(ge=0, le=98)
    score: int = 0
    features: PredictionFeatures


class EquityPoint(BaseModel):
    """Equity at one step of a backtest."""

    model_config = ConfigDict(frozen=True)

    label: str
    equity: float
    balance: float
    shares: float


class BacktestResult(BaseModel):
    """Result of a single backtest run."""

    model_config = ConfigDict(frozen=True)

    initial_balance: float
    final_balance: float
    total_return: float  # percent
    trades: int = 0
    winning_trades: int = 0
    max_drawdown: float = 0.0  # percent
    equity_curve: list[EquityPoint] = Field(default_factory=list)

    @property
    def win_rate(self) -> float:
        return (self.winning_trades / self.trades * 100) if self.trades > 0 else 0.0
