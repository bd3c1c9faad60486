"""Market context for the narrative-insight collaborator.

On-chain metrics and order book depth are simulated: they are opaque
pass-through context and nothing in the engine interprets them.
"""

from __future__ import annotations

import random
import time

from core.models.analysis import IndicatorSnapshot
from core.models.market import MarketDepth, MarketDepthItem, OnChainMetric

DEPTH_LEVELS = 5
DEPTH_STEP = 0.001
SQUEEZE_WIDTH = 0.05


def fetch_onchain_metrics(
    symbol: str,
    rng: random.Random | None = None,
) -> list[OnChainMetric]:
    """Simulated on-chain metrics for ``symbol``."""
    rng = rng or random.Random()
    now = time.time()
    return [
        OnChainMetric(
            id="1",
            label="Net Exchange Flow",
            value="-$42.5M (Outflow)" if rng.random() > 0.5 else "+$12.1M (Inflow)",
            status="positive" if rng.random() > 0.5 else "negative",
            timestamp=now,
        ),
        OnChainMetric(
            id="2",
            label="Whale Tx (>1M)",
            value=f"{rng.randrange(20)} Txs / hr",
            status="neutral",
            timestamp=now,
        ),
        OnChainMetric(id="3", label="Miner Position", value="Accumulating", status="positive", timestamp=now),
        OnChainMetric(id="4", label="Open Interest", value="$14.2B (ATH)", status="negative", timestamp=now),
        OnChainMetric(id="5", label="Funding Rate", value="0.0102%", status="neutral", timestamp=now),
    ]


def fetch_market_depth(
    current_price: float,
    rng: random.Random | None = None,
    levels: int = DEPTH_LEVELS,
) -> MarketDepth:
    """Simulated order book: ``levels`` bids and asks 0.1% apart."""
    rng = rng or random.Random()
    bids: list[MarketDepthItem] = []
    asks: list[MarketDepthItem] = []

    for i in range(levels):
        step = DEPTH_STEP * (i + 1)
        bids.append(
            MarketDepthItem(price=current_price * (1 - step), amount=rng.random() * 10, type="bid")
        )
        asks.append(
            MarketDepthItem(price=current_price * (1 + step), amount=rng.random() * 10, type="ask")
        )

    return MarketDepth(bids=bids, asks=asks)


def describe_imbalance(depth: MarketDepth | None) -> str:
    """Order book imbalance as a short phrase."""
    if depth is None:
        return "Neutral"

    total_bid = depth.total_bid
    total_ask = depth.total_ask
    if total_bid == 0 and total_ask == 0:
        return "Neutral"
    if total_bid > total_ask:
        ratio = total_bid / total_ask if total_ask else float("inf")
        return f"Bid Heavy (Support Strength: {ratio:.2f}x)"
    ratio = total_ask / total_bid if total_bid else float("inf")
    return f"Ask Heavy (Resistance Strength: {ratio:.2f}x)"


def _rsi_state(rsi: float) -> str:
    if rsi > 70:
        return "Overbought"
    if rsi < 30:
        return "Oversold"
    return "Neutral"


def build_insight_context(
    symbol: str,
    price: float,
    indicators: IndicatorSnapshot,
    timeframe: str,
    onchain: list[OnChainMetric] | None = None,
    depth: MarketDepth | None = None,
) -> str:
    """
    Build the text block handed to the narrative-insight collaborator.

    Args:
        symbol: Asset symbol
        price: Current price
        indicators: Latest snapshot
        timeframe: Interval label
        onchain: On-chain metrics (pass-through)
        depth: Order book (summarised as an imbalance phrase)

    Returns:
        Multi-line plain-text summary
    """
    width = indicators.bollinger.width
    squeeze = width < SQUEEZE_WIDTH
    momentum = "Bullish Expanding" if indicators.macd.histogram > 0 else "Bearish Expanding"
    position = "ABOVE" if price > indicators.sma50 else "BELOW"

    if onchain:
        onchain_lines = "\n".join(f"- {m.label}: {m.value} ({m.status})" for m in onchain)
    else:
        onchain_lines = "Data Unavailable"

    lines = [
        f"Asset: {symbol} | Timeframe: {timeframe} | Price: ${price}",
        "",
        "TECHNICAL VECTOR:",
        f"- RSI(14): {indicators.rsi:.2f} ({_rsi_state(indicators.rsi)})",
        f"- MACD: {momentum} | Signal: {indicators.macd.signal:.4f}",
        f"- BB Width: {width:.4f} "
        f"({'VOLATILITY SQUEEZE DETECTED' if squeeze else 'Standard Expansion'})",
        f"- SMA Structure: Price is {position} SMA50.",
        f"- ATR(14): {indicators.atr:.4f} | Trend: {indicators.trend.value}",
        "",
        "FUNDAMENTAL & FLOW VECTOR:",
        onchain_lines,
        f"- Order Book Imbalance: {describe_imbalance(depth)}",
    ]
    return "\n".join(lines)
