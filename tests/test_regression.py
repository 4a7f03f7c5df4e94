"""
Tests for src/ml/regression.py - sliding-window OLS predictor.

Covers: insufficient-history result, training set shape, exact recovery
of a linear target, constant and collinear columns, return clipping and
confidence scaling by volatility regime.
"""
import numpy as np
import pytest

from src.data.series import PriceSeries
from src.features.feature_builder import REGRESSION_FEATURES
from src.ml.regression import LinearRegressionPredictor, feature_importance
from src.models.regime import VolatilityRegime


@pytest.fixture
def predictor():
    return LinearRegressionPredictor()


class TestInsufficientHistory:

    def test_below_minimum(self, predictor, increasing_closes):
        result = predictor.predict(PriceSeries.from_closes(increasing_closes))
        assert not result.sufficient
        assert result.features is None
        assert result.confidence == 50.0
        assert result.predicted_price == 120.0
        assert feature_importance(result) == []


class TestTrainingSet:

    def test_rows_slide_over_last_fifty(self, predictor, sample_series):
        X, y = predictor.build_training_set(sample_series)
        # Windows of 20 ending at samples 20..49 of the 50-sample tail
        assert X.shape == (30, len(REGRESSION_FEATURES))
        assert y.shape == (30,)

    def test_target_is_next_return(self, predictor, sample_series):
        _, y = predictor.build_training_set(sample_series)
        tail = sample_series.tail(50).closes
        assert y[0] == pytest.approx((tail[20] - tail[19]) / tail[19])
        assert y[-1] == pytest.approx((tail[49] - tail[48]) / tail[48])


class TestFit:

    def test_recovers_linear_target(self, predictor):
        rng = np.random.default_rng(3)
        X = rng.normal(size=(40, 3)) * [1.0, 10.0, 0.1] + [0.0, 50.0, 1.0]
        y = 0.5 + 2.0 * X[:, 0] - 0.1 * X[:, 1] + 3.0 * X[:, 2]

        coefficients, intercept, r_squared = predictor.fit(X, y)

        assert coefficients == pytest.approx([2.0, -0.1, 3.0], abs=1e-6)
        assert intercept == pytest.approx(0.5, abs=1e-6)
        assert r_squared == pytest.approx(1.0)

    def test_constant_column_gets_zero(self, predictor):
        rng = np.random.default_rng(4)
        X = np.column_stack([rng.normal(size=30), np.full(30, 7.0)])
        y = 1.0 + X[:, 0]
        coefficients, intercept, _ = predictor.fit(X, y)
        assert coefficients[1] == 0.0
        assert coefficients[0] == pytest.approx(1.0)
        assert intercept == pytest.approx(1.0)

    def test_collinear_column_dropped(self, predictor):
        """A column that mirrors an earlier one (like %K vs Williams %R) is not solved for."""
        rng = np.random.default_rng(5)
        k = rng.uniform(0, 100, size=30)
        X = np.column_stack([k, k - 100.0])
        y = 0.01 * k
        coefficients, _, r_squared = predictor.fit(X, y)
        assert coefficients[1] == 0.0
        assert coefficients[0] == pytest.approx(0.01)
        assert r_squared == pytest.approx(1.0)

    def test_all_constant_predicts_mean(self, predictor):
        X = np.ones((12, 4))
        y = np.array([0.01, -0.01] * 6)
        coefficients, intercept, r_squared = predictor.fit(X, y)
        assert not coefficients.any()
        assert intercept == pytest.approx(0.0)
        assert r_squared == 0.0


class TestPredict:

    def test_sample_series(self, predictor, sample_series):
        result = predictor.predict(sample_series)
        assert result.sufficient
        assert result.training_rows == 30
        assert set(result.features) == set(REGRESSION_FEATURES)
        assert 55 <= result.confidence <= 95
        assert abs(result.predicted_return) <= 0.25
        assert result.predicted_price == pytest.approx(
            sample_series.last_close * (1 + result.predicted_return)
        )

    def test_flat_series(self, predictor, flat_closes):
        """Every feature is constant, so the model predicts no move."""
        result = predictor.predict(PriceSeries.from_closes(flat_closes, "stock"))
        assert result.sufficient
        assert result.predicted_price == pytest.approx(50.0)
        assert result.r_squared == 0.0
        assert result.confidence == 55.0

    def test_volatility_scaling(self, predictor, flat_closes):
        series = PriceSeries.from_closes(flat_closes, "stock")
        extreme = predictor.predict(series, VolatilityRegime.EXTREME)
        low = predictor.predict(series, VolatilityRegime.LOW)
        assert extreme.confidence == pytest.approx(55.0 * 0.7)
        assert low.confidence == pytest.approx(55.0 * 1.1)

    def test_feature_importance_ranked(self, predictor, sample_series):
        ranked = feature_importance(predictor.predict(sample_series))
        impacts = [abs(v) for _, v in ranked]
        assert impacts == sorted(impacts, reverse=True)
        assert len(ranked) == len(REGRESSION_FEATURES)
