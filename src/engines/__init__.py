"""
Prediction Engines

Orchestration of the prediction layers:
- Advanced prediction (classifier + aggregator + regression blend)
- Quick direction prediction
- Investment analysis over an asset provider
- Market-wide advice
"""

from .advanced_predictor import (
    AdvancedPredictionEngine,
    PredictionResult,
    fallback_prediction,
    generate_advanced_prediction,
)
from .quick_predictor import (
    QuickPrediction,
    QuickPredictor,
    generate_prediction,
    naive_prediction,
    project_price_path,
)
from .investment_analyzer import (
    InvestmentAnalysis,
    InvestmentAnalyzer,
    RiskLevel,
    TechnicalSnapshot,
    TrendLabel,
    analyze_investment,
)
from .market_advice import MarketAdvice, generate_market_advice

__all__ = [
    'AdvancedPredictionEngine',
    'PredictionResult',
    'fallback_prediction',
    'generate_advanced_prediction',
    'QuickPrediction',
    'QuickPredictor',
    'generate_prediction',
    'naive_prediction',
    'project_price_path',
    'InvestmentAnalysis',
    'InvestmentAnalyzer',
    'RiskLevel',
    'TechnicalSnapshot',
    'TrendLabel',
    'analyze_investment',
    'MarketAdvice',
    'generate_market_advice',
]
