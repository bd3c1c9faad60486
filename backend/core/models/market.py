"""Market context models (on-chain metrics, order book depth)."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

MetricStatus = Literal["positive", "negative", "neutral"]


class OnChainMetric(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    value: str
    status: MetricStatus
    timestamp: float


class MarketDepthItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    price: float
    amount: float
    total: float = 0.0
    type: Literal["bid", "ask"]


class MarketDepth(BaseModel):
    model_config = ConfigDict(frozen=True)

    bids: list[MarketDepthItem]
    asks: list[MarketDepthItem]

    @property
    def total_bid(self) -> float:
        return sum(b.amount for b in self.bids)

    @property
    def total_ask(self) -> float:
        return sum(a.amount for a in self.asks)
