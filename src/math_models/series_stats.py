"""
Series statistics used across the indicator and regime layers.

Volatility here is the coefficient of variation (population std / mean),
which makes it comparable across assets priced in very different units.
"""
from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class LinearFit:
    """Least-squares line through (index, value) pairs."""
    slope: float
    intercept: float
    r_squared: float

    def predict(self, x: float) -> float:
        return self.intercept + self.slope * x


def as_array(values: Sequence[float]) -> np.ndarray:
    """Coerce any numeric sequence into a float64 array."""
    return np.asarray(values, dtype=float).reshape(-1)


def volatility(prices: Sequence[float]) -> float:
    """
    Coefficient of variation of a price series.

    Returns 0.0 for fewer than 2 samples or a non-positive mean.
    """
    arr = as_array(prices)
    if len(arr) < 2:
        return 0.0
    mean = float(arr.mean())
    if mean <= 0:
        return 0.0
    return float(arr.std()) / mean


def returns(prices: Sequence[float]) -> np.ndarray:
    """Simple one-step returns; steps from a zero price yield 0."""
    arr = as_array(prices)
    if len(arr) < 2:
        return np.zeros(0)
    prev = arr[:-1]
    out = np.zeros(len(prev))
    nonzero = prev != 0
    out[nonzero] = (arr[1:][nonzero] - prev[nonzero]) / prev[nonzero]
    return out


def pct_change(values: Sequence[float], lookback: int) -> float:
    """Fractional change over `lookback` samples; 0.0 when not computable."""
    arr = as_array(values)
    if lookback <= 0 or len(arr) <= lookback:
        return 0.0
    base = arr[-lookback - 1]
    if base == 0:
        return 0.0
    return float((arr[-1] - base) / base)


def linear_regression(values: Sequence[float]) -> LinearFit:
    """
    Ordinary least squares of values against their index 0..n-1.

    R² is reported as 0.0 when the series has no variance.
    """
    y = as_array(values)
    n = len(y)
    if n == 0:
        return LinearFit(0.0, 0.0, 0.0)
    if n == 1:
        return LinearFit(0.0, float(y[0]), 0.0)

    x = np.arange(n, dtype=float)
    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = (x * y).sum()
    sum_xx = (x * x).sum()

    denominator = n * sum_xx - sum_x * sum_x
    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n

    fitted = intercept + slope * x
    ss_res = float(((y - fitted) ** 2).sum())
    ss_tot = float(((y - y.mean()) ** 2).sum())
    r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0

    return LinearFit(float(slope), float(intercept), float(r_squared))
