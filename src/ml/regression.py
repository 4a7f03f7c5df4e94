"""
Linear Regression Predictor

Ordinary least squares on a sliding feature window:
- Each training row is the 8-feature snapshot of a 20-sample window
- The target is the next-sample return
- theta = (X'X)^-1 X'y with an explicit bias column, inverted by Gauss-Jordan

Features are standardized before the solve and the coefficients are
mapped back to raw units, so prediction is intercept + sum(coef * feature)
on the raw feature vector. Constant columns get a zero coefficient.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
from loguru import logger

from config.settings import Settings, get_settings
from src.data.series import PriceSeries
from src.features.feature_builder import REGRESSION_FEATURES, regression_features
from src.math_models.linear_algebra import inverse, multiply, transpose
from src.models.regime import VolatilityRegime
from utils.error_handler import SingularMatrixError

# Standard deviations below this count as a constant column
MIN_FEATURE_STD = 1e-12
# Columns correlated beyond this with an earlier column are dropped
MAX_CORRELATION = 0.9999


@dataclass
class RegressionResult:
    """Result from the regression predictor."""
    predicted_price: float
    predicted_return: float         # Fraction, clipped
    confidence: float               # 50 when there is not enough history
    r_squared: float
    training_rows: int

    # None when there is not enough history
    features: Optional[Dict[str, float]] = None
    coefficients: Optional[Dict[str, float]] = None
    intercept: float = 0.0

    @property
    def sufficient(self) -> bool:
        return self.features is not None


class LinearRegressionPredictor:
    """
    Next-period return model fitted per call.

    Requires at least `min_regression_samples` samples; below that the
    last close is returned with confidence 50 and no feature payload.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def insufficient(self, series: PriceSeries, reason: str) -> RegressionResult:
        logger.debug(f"Regression skipped: {reason}")
        return RegressionResult(
            predicted_price=series.last_close,
            predicted_return=0.0,
            confidence=50.0,
            r_squared=0.0,
            training_rows=0,
        )

    def build_training_set(self, series: PriceSeries) -> Tuple[np.ndarray, np.ndarray]:
        """Rows of window features with the following sample's return as target."""
        s = self.settings
        history = series.tail(s.regression_lookback)
        closes = history.closes
        w = s.regression_window

        rows, targets = [], []
        for end in range(w, len(history)):
            prev_close = closes[end - 1]
            if prev_close <= 0:
                continue
            rows.append(regression_features(history.window(end - w, end), s))
            targets.append((closes[end] - prev_close) / prev_close)

        if not rows:
            return np.zeros((0, len(REGRESSION_FEATURES))), np.zeros(0)
        return np.vstack(rows), np.asarray(targets, dtype=float)

    def fit(self, X: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, float, float]:
        """
        Solve the normal equations.

        Returns:
            (raw-unit coefficients, intercept, R²)

        Raises:
            SingularMatrixError: if X'X stays singular even with the ridge term
        """
        mu = X.mean(axis=0)
        sd = X.std(axis=0)
        active = sd > MIN_FEATURE_STD

        # Stochastic %K and Williams %R share a window and differ by a constant
        kept: List[int] = []
        for j in np.flatnonzero(active):
            zj = (X[:, j] - mu[j]) / sd[j]
            duplicate = any(
                abs(float(np.mean(zj * (X[:, k] - mu[k]) / sd[k]))) > MAX_CORRELATION
                for k in kept
            )
            if duplicate:
                active[j] = False
            else:
                kept.append(j)

        Z = (X[:, active] - mu[active]) / sd[active]
        A = np.column_stack([np.ones(len(Z)), Z])
        At = transpose(A.tolist())
        AtA = multiply(At, A.tolist())
        Aty = multiply(At, [[v] for v in y])

        try:
            theta = multiply(inverse(AtA), Aty)
        except SingularMatrixError:
            logger.warning("Normal equations singular, retrying with ridge term")
            ridge = self.settings.regression_ridge
            for i in range(1, len(AtA)):
                AtA[i][i] += ridge * len(y)
            theta = multiply(inverse(AtA), Aty)

        theta = np.asarray([row[0] for row in theta])

        fitted = A @ theta
        ss_res = float(((y - fitted) ** 2).sum())
        ss_tot = float(((y - y.mean()) ** 2).sum())
        r_squared = max(0.0, 1 - ss_res / ss_tot) if ss_tot > 0 else 0.0

        coefficients = np.zeros(X.shape[1])
        coefficients[active] = theta[1:] / sd[active]
        intercept = float(theta[0] - (theta[1:] * mu[active] / sd[active]).sum())

        return coefficients, intercept, r_squared

    def predict(
        self,
        series: PriceSeries,
        volatility_regime: VolatilityRegime = VolatilityRegime.MEDIUM
    ) -> RegressionResult:
        s = self.settings
        if len(series) < s.min_regression_samples:
            return self.insufficient(series, f"{len(series)} samples < {s.min_regression_samples}")

        X, y = self.build_training_set(series)
        if len(y) <= X.shape[1]:
            return self.insufficient(series, f"only {len(y)} training rows")

        try:
            coefficients, intercept, r_squared = self.fit(X, y)
        except SingularMatrixError as e:
            return self.insufficient(series, str(e))

        current = regression_features(series.tail(s.regression_window), s)
        raw_return = intercept + float(coefficients @ current)
        if not np.isfinite(raw_return):
            return self.insufficient(series, "non-finite prediction")

        cap = s.max_predicted_return
        predicted_return = min(cap, max(-cap, raw_return))

        confidence = min(95.0, max(55.0, r_squared * 100))
        if volatility_regime == VolatilityRegime.EXTREME:
            confidence *= 0.7
        elif volatility_regime == VolatilityRegime.LOW:
            confidence = min(95.0, confidence * 1.1)

        result = RegressionResult(
            predicted_price=series.last_close * (1 + predicted_return),
            predicted_return=predicted_return,
            confidence=confidence,
            r_squared=r_squared,
            training_rows=len(y),
            features=dict(zip(REGRESSION_FEATURES, current.tolist())),
            coefficients=dict(zip(REGRESSION_FEATURES, coefficients.tolist())),
            intercept=intercept,
        )
        logger.debug(
            f"Regression: rows={len(y)} r2={r_squared:.3f} "
            f"return={predicted_return:+.4f} conf={confidence:.0f}"
        )
        return result


def feature_importance(result: RegressionResult) -> List[Tuple[str, float]]:
    """Features ranked by |coefficient × value| for the current snapshot."""
    if not result.sufficient:
        return []
    impacts = [
        (name, result.coefficients[name] * result.features[name])
        for name in REGRESSION_FEATURES
    ]
    return sorted(impacts, key=lambda item: abs(item[1]), reverse=True)
