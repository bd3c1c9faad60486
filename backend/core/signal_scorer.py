"""Rule-based signal scorer.

Not a trained model: a fixed set of scoring nodes applied to an indicator
snapshot. The node thresholds and weights below are the behavioural
contract and must not be tuned.

Scoring nodes:
1. Trend following   +30 / -30  (trend agrees with price vs SMA50)
2. Mean reversion    +40 / -40  (RSI < 30 / RSI > 70)
3. Volatility squeeze +20 / -20 (band width < 0.05 and price outside a band)
4. Momentum          +10 / -10  (MACD histogram sign)

A small random jitter is subtracted from the confidence to model
uncertainty, so two calls with identical input may differ.
"""

from __future__ import annotations

import random

from core.models.analysis import (
    IndicatorSnapshot,
    Prediction,
    PredictionFeatures,
    PredictionSignal,
    Trend,
)

TREND_WEIGHT = 30
REVERSION_WEIGHT = 40
SQUEEZE_WEIGHT = 20
MOMENTUM_WEIGHT = 10

RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70
SQUEEZE_WIDTH = 0.05

SIGNAL_THRESHOLD = 25
MAX_CONFIDENCE = 98
MAX_JITTER = 5.0


class SignalScorer:
    """Convert an IndicatorSnapshot plus current price into a Prediction."""

    def __init__(self, rng: random.Random | None = None, jitter: bool = True):
        self._rng = rng or random.Random()
        self._jitter = jitter

    def score(self, indicators: IndicatorSnapshot, current_price: float) -> Prediction:
        """
        Score the snapshot.

        Args:
            indicators: Snapshot computed from the visible history
            current_price: Latest close

        Returns:
            Prediction with signal, confidence in [0, 98] and features
        """
        rsi_norm = (indicators.rsi - 50) / 50
        band_width = indicators.bollinger.width
        trend_score = _trend_score(indicators.trend)

        score = 0

        if trend_score == 1 and current_price > indicators.sma50:
            score += TREND_WEIGHT
        if trend_score == -1 and current_price < indicators.sma50:
            score -= TREND_WEIGHT

        if indicators.rsi < RSI_OVERSOLD:
            score += REVERSION_WEIGHT
        if indicators.rsi > RSI_OVERBOUGHT:
            score -= REVERSION_WEIGHT

        # Skipped while the 20-bar window is not full (middle band is 0)
        if indicators.bollinger.middle != 0 and band_width < SQUEEZE_WIDTH:
            if current_price > indicators.bollinger.upper:
                score += SQUEEZE_WEIGHT
            if current_price < indicators.bollinger.lower:
                score -= SQUEEZE_WEIGHT

        if indicators.macd.histogram > 0:
            score += MOMENTUM_WEIGHT
        else:
            score -= MOMENTUM_WEIGHT

        confidence = float(min(abs(score), MAX_CONFIDENCE))
        if self._jitter:
            confidence -= self._rng.random() * MAX_JITTER

        signal = PredictionSignal.HOLD
        if score > SIGNAL_THRESHOLD:
            signal = PredictionSignal.BUY
        elif score < -SIGNAL_THRESHOLD:
            signal = PredictionSignal.SELL

        return Prediction(
            signal=signal,
            confidence=max(0.0, confidence),
            score=score,
            features=PredictionFeatures(
                rsi_normalized=rsi_norm,
                trend_strength=trend_score,
                volatility=band_width,
            ),
        )


def _trend_score(trend: Trend) -> int:
    if trend == Trend.UP:
        return 1
    if trend == Trend.DOWN:
        return -1
    return 0
