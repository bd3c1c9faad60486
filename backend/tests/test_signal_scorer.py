"""Tests for the rule-based signal scorer."""

import random

import pytest

from core.models.analysis import (
    BollingerBands,
    IndicatorSignal,
    IndicatorSnapshot,
    Macd,
    PredictionSignal,
    Trend,
)
from core.signal_scorer import SignalScorer


def make_snapshot(
    rsi=50.0,
    sma50=100.0,
    trend=Trend.SIDEWAYS,
    histogram=-1.0,
    bands=(0.0, 0.0, 0.0),
):
    upper, middle, lower = bands
    return IndicatorSnapshot(
        rsi=rsi,
        sma20=middle,
        sma50=sma50,
        macd=Macd(value=histogram * 10, signal=histogram * 9, histogram=histogram),
        bollinger=BollingerBands(upper=upper, middle=middle, lower=lower),
        atr=0.0,
        trend=trend,
        signal=IndicatorSignal.NEUTRAL,
    )


class TestScoringNodes:
    """Each node contributes its fixed weight."""

    @pytest.fixture
    def scorer(self):
        return SignalScorer(jitter=False)

    def test_momentum_only_is_hold(self, scorer):
        prediction = scorer.score(make_snapshot(histogram=-1.0), 100.0)
        assert prediction.score == -10
        assert prediction.signal == PredictionSignal.HOLD
        assert prediction.confidence == 10

    def test_zero_histogram_counts_as_bearish(self, scorer):
        assert scorer.score(make_snapshot(histogram=0.0), 100.0).score == -10

    def test_trend_following_buy(self, scorer):
        prediction = scorer.score(make_snapshot(trend=Trend.UP, histogram=1.0), 110.0)
        assert prediction.score == 40
        assert prediction.signal == PredictionSignal.BUY
        assert prediction.confidence == 40

    def test_trend_needs_price_confirmation(self, scorer):
        """Uptrend with price below SMA50 adds nothing."""
        prediction = scorer.score(make_snapshot(trend=Trend.UP, histogram=1.0), 90.0)
        assert prediction.score == 10

    def test_mean_reversion_buy(self, scorer):
        prediction = scorer.score(make_snapshot(rsi=20.0, histogram=-1.0), 100.0)
        assert prediction.score == 30
        assert prediction.signal == PredictionSignal.BUY

    def test_full_bearish(self, scorer):
        prediction = scorer.score(
            make_snapshot(rsi=80.0, trend=Trend.DOWN, histogram=-1.0), 90.0
        )
        assert prediction.score == -80
        assert prediction.signal == PredictionSignal.SELL
        assert prediction.confidence == 80

    def test_squeeze_breakout(self, scorer):
        """Narrow bands with price above the upper band."""
        bands = (102.0, 100.0, 98.0)
        prediction = scorer.score(make_snapshot(histogram=1.0, bands=bands), 103.0)
        assert prediction.score == 30
        assert prediction.features.volatility == pytest.approx(0.04)

    def test_squeeze_breakdown(self, scorer):
        bands = (102.0, 100.0, 98.0)
        prediction = scorer.score(make_snapshot(histogram=-1.0, bands=bands), 97.0)
        assert prediction.score == -30
        assert prediction.signal == PredictionSignal.SELL

    def test_wide_bands_no_squeeze(self, scorer):
        bands = (110.0, 100.0, 90.0)
        prediction = scorer.score(make_snapshot(histogram=1.0, bands=bands), 111.0)
        assert prediction.score == 10

    def test_squeeze_skipped_without_bands(self, scorer):
        """Middle band of 0 means the window was not full."""
        prediction = scorer.score(make_snapshot(histogram=1.0), 5.0)
        assert prediction.score == 10
        assert prediction.features.volatility == 0.0

    def test_confidence_capped(self, scorer):
        bands = (102.0, 100.0, 98.0)
        snapshot = make_snapshot(rsi=20.0, trend=Trend.UP, histogram=1.0, bands=bands)
        prediction = scorer.score(snapshot, 103.0)
        assert prediction.score == 100
        assert prediction.confidence == 98


class TestFeatures:
    def test_features(self):
        scorer = SignalScorer(jitter=False)
        prediction = scorer.score(make_snapshot(rsi=80.0, trend=Trend.DOWN), 100.0)

        assert prediction.features.rsi_normalized == pytest.approx(0.6)
        assert prediction.features.trend_strength == -1


class TestJitter:
    """Tests for the confidence jitter."""

    def test_jitter_bounds(self):
        scorer = SignalScorer(rng=random.Random(7))
        snapshot = make_snapshot(trend=Trend.UP, histogram=1.0)
        for _ in range(50):
            prediction = scorer.score(snapshot, 110.0)
            assert 35 <= prediction.confidence <= 40
            assert prediction.signal == PredictionSignal.BUY

    def test_jitter_never_negative(self):
        scorer = SignalScorer(rng=random.Random(1))
        for _ in range(50):
            assert scorer.score(make_snapshot(), 100.0).confidence >= 0

    def test_seeded_rng_is_reproducible(self):
        snapshot = make_snapshot(rsi=20.0)
        a = SignalScorer(rng=random.Random(3)).score(snapshot, 100.0)
        b = SignalScorer(rng=random.Random(3)).score(snapshot, 100.0)
        assert a == b
