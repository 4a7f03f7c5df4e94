"""
API Module - Public forecast interface

Provides:
- compute_indicators: indicator snapshot for a series
- detect_patterns / detect_regime: chart patterns and market regime
- generate_advanced_prediction: blended price prediction
- generate_prediction: quick direction badge
- analyze_investment: async end-to-end analysis over an asset provider
"""

from src.features.technical import compute_indicators
from src.models.patterns import detect_patterns
from src.models.regime import detect_regime
from src.engines.advanced_predictor import generate_advanced_prediction
from src.engines.quick_predictor import generate_prediction
from src.engines.investment_analyzer import analyze_investment

__all__ = [
    'compute_indicators',
    'detect_patterns',
    'detect_regime',
    'generate_advanced_prediction',
    'generate_prediction',
    'analyze_investment',
]
