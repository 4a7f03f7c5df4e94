"""
Tests for src/engines/advanced_predictor.py - the blended prediction.

Covers: insufficient-data result, confidence bounds, regime weights,
support/resistance constraint, recommendation gates, the explicit
fallback path and per-fingerprint caching.
"""
import pytest

from providers.cache import ResponseCache
from src.data.series import PriceSeries
from src.engines.advanced_predictor import (
    AdvancedPredictionEngine,
    constrain_to_levels,
    fallback_prediction,
    generate_advanced_prediction,
    recommend,
    select_weights,
)
from src.features.technical import SupportResistance
from src.models.regime import MomentumState, RegimeClassification, TrendRegime, VolatilityRegime
from src.models.scoring import Recommendation


def _regime(vol, trend):
    return RegimeClassification(vol, trend, MomentumState.STABLE, 60.0)


class TestInsufficientData:

    def test_five_samples(self):
        result = generate_advanced_prediction(None, None, [100.0, 101.0, 102.0, 103.0, 104.0])
        assert result.confidence == 50
        assert result.recommendation == Recommendation.HOLD
        assert "Insufficient data" in result.reasoning
        assert result.prediction == 104.0


class TestPrediction:

    def test_sample_series_bounds(self, sample_ohlcv_df):
        df = sample_ohlcv_df
        result = generate_advanced_prediction(
            df['high'].tolist(), df['low'].tolist(), df['close'].tolist(), df['volume'].tolist()
        )
        assert 55 <= result.confidence <= 98
        assert set(result.component_predictions) == {'ml', 'classifier', 'signal'}
        assert sum(result.weights.values()) == pytest.approx(1.0)
        assert result.reasoning.endswith(".")
        assert result.current_price == df['close'].iloc[-1]

    def test_confidence_bounds_across_windows(self, sample_ohlcv_df):
        closes = sample_ohlcv_df['close'].tolist()
        engine = AdvancedPredictionEngine()
        for end in range(20, len(closes) + 1, 16):
            result = engine.predict(PriceSeries.from_closes(closes[:end], "crypto"))
            assert 55 <= result.confidence <= 98

    def test_increasing_series_bullish(self, increasing_closes):
        result = generate_advanced_prediction(None, None, increasing_closes, asset_type="stock")
        assert result.direction == "bullish"
        assert result.expected_return_pct > 0
        assert result.weights == {'ml': 0.30, 'classifier': 0.40, 'signal': 0.30}
        assert "strong bullish trend" in result.reasoning

    def test_flat_series_holds(self, flat_closes):
        result = generate_advanced_prediction(None, None, flat_closes)
        assert result.recommendation == Recommendation.HOLD
        assert 55 <= result.confidence <= 98


class TestFallback:

    def test_invalid_series_uses_fallback(self):
        closes = [100.0 + i for i in range(24)] + [0.0]
        result = AdvancedPredictionEngine().predict(PriceSeries.from_closes(closes))
        assert result.confidence == 50.0
        assert result.recommendation == Recommendation.HOLD
        assert result.prediction == 0.0

    def test_try_returns_none_for_invalid(self):
        closes = [float("nan")] * 25
        assert AdvancedPredictionEngine().try_advanced_prediction(PriceSeries.from_closes(closes)) is None

    def test_fallback_prediction(self, increasing_closes):
        result = fallback_prediction(PriceSeries.from_closes(increasing_closes))
        assert result.prediction == 120.0
        assert result.confidence == 50.0
        assert result.recommendation == Recommendation.HOLD


class TestWeights:

    def test_default(self):
        assert select_weights(_regime(VolatilityRegime.MEDIUM, TrendRegime.BULL)) == \
            {'ml': 0.40, 'classifier': 0.35, 'signal': 0.25}

    def test_extreme_volatility_takes_precedence(self):
        assert select_weights(_regime(VolatilityRegime.EXTREME, TrendRegime.STRONG_BULL)) == \
            {'ml': 0.50, 'classifier': 0.30, 'signal': 0.20}

    def test_strong_trend(self):
        assert select_weights(_regime(VolatilityRegime.LOW, TrendRegime.STRONG_BEAR)) == \
            {'ml': 0.30, 'classifier': 0.40, 'signal': 0.30}


class TestLevels:

    levels = SupportResistance(pivot=100.0, supports=[95.0], resistances=[105.0])

    def test_overshoot_above_resistance(self):
        assert constrain_to_levels(112.0, 100.0, self.levels) == pytest.approx(107.1)

    def test_within_band_unchanged(self):
        assert constrain_to_levels(109.0, 100.0, self.levels) == 109.0

    def test_undershoot_below_support(self):
        assert constrain_to_levels(85.0, 100.0, self.levels) == pytest.approx(93.1)

    def test_no_levels(self):
        assert constrain_to_levels(150.0, 100.0, SupportResistance(pivot=100.0)) == 150.0


class TestRecommendation:

    @pytest.mark.parametrize("ret,conf,expected", [
        (9.0, 85.0, Recommendation.STRONG_BUY),
        (9.0, 75.0, Recommendation.BUY),
        (4.0, 75.0, Recommendation.BUY),
        (4.0, 65.0, Recommendation.HOLD),
        (-9.0, 85.0, Recommendation.STRONG_SELL),
        (-4.0, 75.0, Recommendation.SELL),
        (1.0, 95.0, Recommendation.HOLD),
    ])
    def test_gates(self, ret, conf, expected):
        assert recommend(ret, conf) == expected


class TestCaching:

    def test_same_series_cached(self, sample_series, fake_clock):
        cache = ResponseCache(clock=fake_clock)
        engine = AdvancedPredictionEngine(cache=cache)
        first = engine.predict(sample_series)
        second = engine.predict(PriceSeries.from_frame(sample_series.to_frame(), "stock"))
        assert second is first
        assert cache.stats()['by_namespace'] == {'prediction': 1}

    def test_expired_entry_recomputed(self, sample_series, fake_clock):
        cache = ResponseCache(clock=fake_clock)
        engine = AdvancedPredictionEngine(cache=cache)
        first = engine.predict(sample_series)
        fake_clock.advance(301)
        assert engine.predict(sample_series) is not first

    def test_timeframe_in_key(self, sample_series, fake_clock):
        engine = AdvancedPredictionEngine(cache=ResponseCache(clock=fake_clock))
        assert engine.predict(sample_series, "1W") is not engine.predict(sample_series, "1M")
