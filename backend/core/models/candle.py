"""Candle (OHLCV) data models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Bucket label format shared by REST history, synthetic data and stream ticks.
# Two candles belong to the same time bucket iff their labels are equal.
LABEL_FORMAT = "%Y-%m-%d %H:%M"


class MarketType(str, Enum):
    """Exchange market the candles come from."""

    SPOT = "SPOT"
    FUTURES = "FUTURES"


class Interval(str, Enum):
    """Supported candle intervals."""

    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"
    W1 = "1w"


def format_label(ts: datetime) -> str:
    """Format a bucket open time as a candle label (UTC)."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime(LABEL_FORMAT)


class Candle(BaseModel):
    """Candle data model.

    high/low/volume are optional because imported datasets often only carry
    a date and a price column.
    """

    model_config = ConfigDict(frozen=True)

    label: str
    close: float
    high: float | None = None
    low: float | None = None
    volume: float | None = None
    timestamp: datetime | None = None

    @property
    def high_or_close(self) -> float:
        return self.high if self.high is not None else self.close

    @property
    def low_or_close(self) -> float:
        return self.low if self.low is not None else self.close


class EnrichedCandle(Candle):
    """Candle with rolling-window indicator fields attached.

    Each field stays None until the window ending at this candle is full.
    """

    sma20: float | None = None
    sma50: float | None = None
    bollinger_upper: float | None = None
    bollinger_lower: float | None = None


# Ordered, chronological, unique labels.
CandleSeries = list[EnrichedCandle]


class KlineTick(BaseModel):
    """One streaming update for the currently subscribed bucket.

    Repeated ticks with the same label update the in-progress candle.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    label: str = Field(min_length=1)
    close: float = Field(gt=0)
    high: float = Field(ge=0)
    low: float = Field(ge=0)
    volume: float = Field(ge=0)
    is_closed: bool = False
    timestamp: datetime | None = None

    def to_candle(self) -> Candle:
        return Candle(
            label=self.label,
            close=self.close,
            high=self.high,
            low=self.low,
            volume=self.volume,
            timestamp=self.timestamp,
        )
