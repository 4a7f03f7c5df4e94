"""
Tests for the two scorers: WeightedClassifier (src/models/scoring.py)
and the signal-strength aggregator (src/signals/generator.py).

Baseline features come from a flat series, where every category scores
a neutral 50; individual readings are then overridden with
dataclasses.replace.
"""
from dataclasses import replace

import pytest

from src.data.series import PriceSeries
from src.features.feature_builder import FeatureBuilder
from src.models.patterns import PatternSet, PatternSignal, PatternType
from src.models.regime import TrendRegime, VolatilityRegime
from src.models.scoring import (
    Recommendation,
    WeightedClassifier,
    classify,
    expected_move,
    score_to_price,
)
from src.signals.generator import SignalGenerator, aggregate_signals


@pytest.fixture
def flat_features(flat_closes):
    return FeatureBuilder().build(PriceSeries.from_closes(flat_closes, "stock"))


def with_technical(features, **changes):
    return replace(features, technical=replace(features.technical, **changes))


def with_momentum(features, **changes):
    return replace(features, momentum=replace(features.momentum, **changes))


def with_patterns(features, *entries):
    patterns = PatternSet()
    for pattern, conf, signal in entries:
        patterns.add(pattern, conf, signal)
    return replace(features, pattern=replace(features.pattern, patterns=patterns,
                                             net_bias=patterns.net_bias()))


class TestPriceTranslation:

    def test_expected_move_clamped(self):
        assert expected_move(0.001) == 0.01
        assert expected_move(0.02) == pytest.approx(0.04)
        assert expected_move(0.2) == 0.10

    def test_score_to_price(self):
        assert score_to_price(100.0, 50.0, 0.02) == 100.0
        assert score_to_price(100.0, 100.0, 0.02) == pytest.approx(104.0)
        assert score_to_price(100.0, 0.0, 0.02) == pytest.approx(96.0)


class TestWeightedClassifier:

    def test_flat_is_hold(self, flat_features):
        result = classify(flat_features)
        assert result.recommendation == Recommendation.HOLD
        assert result.confidence == 55.0
        assert result.category_scores['technical'] == 50.0
        assert result.category_scores['momentum'] == 50.0
        assert result.category_scores['pattern'] == 50.0

    def test_weights_sum_to_one(self):
        assert sum(WeightedClassifier.WEIGHTS.values()) == pytest.approx(1.0)

    def test_rsi_nudges(self, flat_features):
        oversold = classify(with_technical(flat_features, rsi=20.0))
        overbought = classify(with_technical(flat_features, rsi=80.0))
        assert oversold.category_scores['technical'] == 65.0
        assert overbought.category_scores['technical'] == 35.0
        assert any(r.startswith("[TECHNICAL] RSI oversold") for r in oversold.reasons)

    def test_trend_regime_nudge(self, flat_features):
        result = classify(with_momentum(flat_features, trend_regime=TrendRegime.STRONG_BEAR))
        assert result.category_scores['momentum'] == 25.0

    def test_pattern_score(self, flat_features):
        features = with_patterns(flat_features, (PatternType.STRONG_UPTREND, 80.0, PatternSignal.BULLISH))
        result = classify(features)
        assert result.category_scores['pattern'] == pytest.approx(66.0)
        assert "[PATTERN] Strong Uptrend" in result.reasons

    def test_confidence_bounds(self, sample_series):
        result = classify(FeatureBuilder().build(sample_series))
        assert 55 <= result.confidence <= 95
        assert 0 <= result.probability <= 100


class TestSignalAggregator:

    def test_flat_is_neutral(self, flat_features):
        result = aggregate_signals(flat_features)
        assert result.score == 50.0
        assert result.direction == PatternSignal.NEUTRAL
        assert result.confirmations == 0
        assert result.predicted_price == pytest.approx(50.0)

    def test_rsi_contrarian_when_sideways(self, flat_features):
        result = aggregate_signals(with_technical(flat_features, rsi=20.0))
        assert result.contributions['rsi'] == 12.0
        assert result.score == 62.0
        assert result.direction == PatternSignal.BULLISH
        assert "RSI_OVERSOLD" in result.signals
        # 50 + 6 - 10 (single confirmation) + 5 (low volatility)
        assert result.confidence == pytest.approx(51.0)

    def test_rsi_confirms_trend(self, flat_features):
        features = with_momentum(with_technical(flat_features, rsi=80.0), trend_regime=TrendRegime.BULL)
        result = aggregate_signals(features)
        assert result.contributions['rsi'] == 12.0
        assert "RSI_TREND_CONFIRMATION" in result.signals

    def test_stochastic_in_bear_trend(self, flat_features):
        stoch = replace(flat_features.technical.stochastic, k=10.0)
        features = with_momentum(with_technical(flat_features, stochastic=stoch),
                                 trend_regime=TrendRegime.BEAR)
        result = aggregate_signals(features)
        assert result.contributions['stochastic'] == -8.0
        assert result.direction == PatternSignal.BEARISH

    def test_pattern_delta_scaled(self, flat_features):
        features = with_patterns(flat_features, (PatternType.DOUBLE_TOP, 70.0, PatternSignal.BEARISH))
        result = aggregate_signals(features)
        assert result.contributions['pattern'] == pytest.approx(-7.0)
        assert result.agrees('pattern')

    def test_convergence_raises_confidence(self, increasing_closes):
        result = aggregate_signals(FeatureBuilder().build(PriceSeries.from_closes(increasing_closes, "stock")))
        assert result.direction == PatternSignal.BULLISH
        assert result.confirmations >= 3
        assert result.score > 65
        assert result.confidence == 95.0

    def test_extreme_volatility_penalty(self, flat_features):
        vol = replace(flat_features.volatility, volatility_regime=VolatilityRegime.EXTREME)
        features = replace(with_technical(flat_features, rsi=20.0), volatility=vol)
        result = SignalGenerator().generate(features)
        # 50 + 6 - 10 - 15
        assert result.confidence == pytest.approx(31.0)

    def test_score_clamped(self, flat_features):
        stoch = replace(flat_features.technical.stochastic, k=5.0)
        features = with_patterns(
            with_technical(flat_features, rsi=10.0, stochastic=stoch),
            *[(PatternType.STRONG_UPTREND, 100.0, PatternSignal.BULLISH)] * 5
        )
        result = aggregate_signals(features)
        assert result.score == 100.0
        assert 30 <= result.confidence <= 95
