"""
Numerical building blocks for the forecast engine.

- Series statistics: coefficient-of-variation volatility, index regression
- Linear algebra: transpose, product and Gauss-Jordan inverse
"""

from .series_stats import (
    LinearFit,
    linear_regression,
    pct_change,
    returns,
    volatility,
)
from .linear_algebra import identity, inverse, multiply, transpose

__all__ = [
    'LinearFit',
    'linear_regression',
    'pct_change',
    'returns',
    'volatility',
    'identity',
    'inverse',
    'multiply',
    'transpose',
]
