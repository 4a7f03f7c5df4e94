from .technical import TechnicalIndicators, IndicatorSet, compute_indicators
from .feature_builder import FeatureBuilder, FeatureRecord, build_features, regression_features

__all__ = [
    "TechnicalIndicators",
    "IndicatorSet",
    "compute_indicators",
    "FeatureBuilder",
    "FeatureRecord",
    "build_features",
    "regression_features",
]
