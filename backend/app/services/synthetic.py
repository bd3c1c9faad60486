"""Synthetic candle history used when the live source is unavailable."""

from __future__ import annotations

import math
import random
from datetime import datetime, timedelta, timezone

from core.models.candle import Candle, format_label

BASE_PRICES: dict[str, float] = {
    "BTC": 92000,
    "ETH": 3400,
    "SOL": 145,
    "BNB": 590,
    "XRP": 0.60,
    "DOGE": 0.15,
    "ADA": 0.45,
    "AVAX": 35,
    "DOT": 7.5,
    "LINK": 14,
}
DEFAULT_BASE_PRICE = 100.0

# Max multiplicative move per hourly bar (+/- 2%)
VOLATILITY = 0.02


def base_price_for(symbol: str) -> float:
    symbol = symbol.upper()
    if symbol.endswith("USDT") and symbol != "USDT":
        symbol = symbol[: -len("USDT")]
    return BASE_PRICES.get(symbol, DEFAULT_BASE_PRICE)


def generate_history(
    base_price: float,
    days: float = 60,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> list[Candle]:
    """
    Generate hourly candles with a bounded multiplicative random walk.

    Args:
        base_price: Starting price
        days: Pseudo-days to cover; round(days * 24) + 1 bars are produced
        rng: Random source (seed it for reproducible output)
        now: Time of the last bar (defaults to the current hour, UTC)

    Returns:
        Candles oldest first, never empty
    """
    rng = rng or random.Random()
    if now is None:
        now = datetime.now(timezone.utc)
    now = now.replace(minute=0, second=0, microsecond=0)

    hours = max(0, int(round(days * 24)))
    price = base_price
    candles: list[Candle] = []

    for i in range(hours, -1, -1):
        ts = now - timedelta(hours=i)

        change = 1 + (rng.random() * VOLATILITY * 2 - VOLATILITY)
        bar_range = price * VOLATILITY
        high = price * change + rng.random() * bar_range
        low = price * change - rng.random() * bar_range

        price = price * change

        candles.append(
            Candle(
                label=format_label(ts),
                timestamp=ts,
                close=price,
                high=max(high, price),
                low=min(low, price),
                volume=float(math.floor(rng.random() * 1_000_000)),
            )
        )

    return candles


def generate_for_symbol(
    symbol: str,
    limit: int,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> list[Candle]:
    """Fallback series for a symbol covering ``limit / 24`` pseudo-days.

    Without an explicit ``rng`` the walk is seeded from the symbol, so the
    same symbol always yields the same price path.
    """
    rng = rng or random.Random(symbol.upper())
    return generate_history(base_price_for(symbol), limit / 24, rng=rng, now=now)
