"""
Tests for src/features/feature_builder.py - FeatureRecord assembly and
the regression feature row.
"""
import numpy as np
import pytest

from src.data.series import PriceSeries
from src.features.feature_builder import (
    REGRESSION_FEATURES,
    FeatureBuilder,
    FeatureRecord,
    build_features,
    regression_features,
)
from src.models.patterns import PatternType
from src.models.regime import TrendRegime, VolatilityRegime


class TestFeatureBuilder:

    def test_record_structure(self, sample_series):
        features = FeatureBuilder().build(sample_series)

        assert isinstance(features, FeatureRecord)
        assert features.price == sample_series.last_close
        assert features.sample_count == 100
        assert features.technical.rsi == features.indicators.rsi
        assert features.volatility.volatility_regime == features.regime.volatility_regime
        assert features.momentum.trend_regime == features.regime.trend_regime
        assert features.support_resistance is features.indicators.support_resistance
        assert len(features.momentum.mtf.signals) == 3

    def test_increasing_series(self, increasing_closes):
        features = build_features(PriceSeries.from_closes(increasing_closes, "stock"))

        assert features.momentum.trend_regime == TrendRegime.STRONG_BULL
        assert features.momentum.return_5 == pytest.approx(120 / 115 - 1)
        assert features.momentum.price_to_sma20 > 1
        assert features.technical.price_vs_vwap > 0
        assert PatternType.STRONG_UPTREND in features.pattern.patterns
        assert features.pattern.net_bias > 0

    def test_flat_series(self, flat_closes):
        features = build_features(PriceSeries.from_closes(flat_closes, "stock"))

        assert features.technical.rsi == 50.0
        assert features.momentum.return_5 == 0.0
        assert features.volatility.coefficient_of_variation == 0.0
        assert features.volatility.volatility_regime == VolatilityRegime.LOW
        assert features.pattern.net_bias == 0.0

    def test_short_series_neutral_defaults(self):
        features = build_features(PriceSeries.from_closes([10.0, 11.0, 12.0]))
        assert features.technical.rsi == 50.0
        assert not features.technical.bollinger.available
        assert features.regime.trend_regime == TrendRegime.SIDEWAYS
        assert len(features.pattern.patterns) == 0


class TestRegressionFeatures:

    def test_row_shape(self, sample_series):
        row = regression_features(sample_series.tail(20))
        assert row.shape == (len(REGRESSION_FEATURES),)
        assert np.isfinite(row).all()

    def test_flat_row(self, flat_closes):
        row = dict(zip(REGRESSION_FEATURES, regression_features(PriceSeries.from_closes(flat_closes, "stock"))))
        assert row['rsi'] == 50.0
        assert row['macd'] == pytest.approx(0.0)
        assert row['percent_b'] == 0.5
        assert row['return_5_pct'] == 0.0
        assert row['price_to_sma20'] == pytest.approx(1.0)
        # Synthesized ±0.1% band -> ATR of 0.2% of price
        assert row['atr_pct_x100'] == pytest.approx(0.2)

    def test_short_window_uses_neutral_percent_b(self):
        row = regression_features(PriceSeries.from_closes([10.0, 11.0, 12.0]))
        assert row[REGRESSION_FEATURES.index('percent_b')] == 0.5
