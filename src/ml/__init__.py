"""
Statistical predictor for the forecast engine.

- Linear Regression: sliding-window OLS on indicator features
"""

from .regression import LinearRegressionPredictor, RegressionResult, feature_importance

__all__ = [
    'LinearRegressionPredictor',
    'RegressionResult',
    'feature_importance',
]
