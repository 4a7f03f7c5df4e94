"""
Centralized Thresholds Configuration

This module contains ALL signal thresholds, scoring nudges and blending
parameters used across the prediction engine. Centralizing these ensures:

1. Consistency between the classifier, the signal aggregator and the ensemble
2. Easy tuning without touching scoring code
3. Single source of truth for threshold values

Scores are on a 0-100 scale around a neutral 50 baseline unless noted.
"""

from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True)
class RegimeThresholds:
    """
    Volatility / trend / momentum regime boundaries.

    Volatility levels come from two measures and the higher level wins:
    ATR as a fraction of price, and the standard deviation of returns.
    """
    # ATR% ladder: LOW < 1.5% <= MEDIUM < 3% <= HIGH < 6% <= EXTREME
    atr_low: float = 0.015
    atr_medium: float = 0.03
    atr_high: float = 0.06

    # Historical volatility ladder
    hv_low: float = 0.02
    hv_medium: float = 0.05
    hv_high: float = 0.10
    hv_window: int = 20

    # Trend ladder on price deviation from SMA20
    strong_trend: float = 0.05
    trend: float = 0.02

    # 5-sample return vs prior 5-sample return
    momentum_window: int = 5
    momentum_shift: float = 0.005

    # Confidence bounds
    base_confidence: float = 50.0
    min_confidence: float = 30.0
    max_confidence: float = 95.0


@dataclass(frozen=True)
class PatternThresholds:
    """Chart-pattern tolerances."""
    extrema_order: int = 2              # Neighbours on each side a peak must beat
    double_tolerance: float = 0.03      # Peaks within 3% of each other
    double_min_gap: int = 5
    double_max_gap: int = 30
    shoulder_tolerance: float = 0.05    # Shoulders within 5%

    trend_window: int = 10
    strong_slope: float = 0.005         # Relative slope per sample
    flat_slope: float = 0.002
    trend_volatility_cap: float = 0.05
    triangle_contraction: float = 0.6   # Second-half range / first-half range

    breakout_lookback: int = 10
    breakout_pct: float = 0.02


@dataclass(frozen=True)
class ClassifierWeights:
    """
    Category weights and nudges for the weighted classifier.

    Each category starts at 50 and is nudged by the values below.
    """
    technical: float = 0.35
    momentum: float = 0.25
    volatility: float = 0.20
    pattern: float = 0.20

    # Technical nudges
    rsi: float = 15.0
    macd: float = 10.0
    percent_b: float = 12.0
    stochastic: float = 8.0
    williams: float = 5.0

    # Momentum nudges
    strong_trend: float = 25.0
    trend: float = 12.0
    momentum_state: float = 8.0
    short_return: float = 7.0
    short_return_pct: float = 2.0
    mtf: float = 10.0

    # Volatility nudges
    extreme_volatility: float = 15.0
    high_volatility: float = 5.0
    low_volatility: float = 5.0
    vwap: float = 10.0
    squeeze_bandwidth: float = 0.05
    squeeze: float = 5.0

    # Pattern nudges (scaled by pattern confidence / 100)
    pattern_scale: float = 20.0

    # Decision thresholds
    buy_probability: float = 65.0
    sell_probability: float = 35.0
    min_confidence: float = 55.0
    max_confidence: float = 95.0

    def as_dict(self) -> Dict[str, float]:
        return {
            'technical': self.technical,
            'momentum': self.momentum,
            'volatility': self.volatility,
            'pattern': self.pattern,
        }


@dataclass(frozen=True)
class AggregatorDeltas:
    """Fixed deltas for the signal-strength aggregator."""
    rsi: float = 12.0
    macd: float = 15.0
    bollinger: float = 10.0
    stochastic: float = 8.0
    pattern: float = 10.0
    mtf: float = 12.0

    # Confirmation-count confidence adjustments
    three_confirmations: float = 20.0
    two_confirmations: float = 10.0
    single_confirmation: float = -10.0
    extreme_volatility: float = -15.0
    low_volatility: float = 5.0

    min_confidence: float = 30.0
    max_confidence: float = 95.0


@dataclass(frozen=True)
class IndicatorThresholds:
    """
    Technical indicator thresholds.

    Standard values for RSI, Bollinger Bands, Stochastic and Williams %R.
    """
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0

    bb_oversold: float = 0.2
    bb_overbought: float = 0.8

    stoch_oversold: float = 20.0
    stoch_overbought: float = 80.0

    williams_oversold: float = -80.0
    williams_overbought: float = -20.0


@dataclass(frozen=True)
class EnsembleWeights:
    """
    Regime-conditioned weights for blending the three price estimates.
    """
    default: Dict[str, float] = field(
        default_factory=lambda: {'ml': 0.40, 'classifier': 0.35, 'signal': 0.25}
    )
    extreme_volatility: Dict[str, float] = field(
        default_factory=lambda: {'ml': 0.50, 'classifier': 0.30, 'signal': 0.20}
    )
    strong_trend: Dict[str, float] = field(
        default_factory=lambda: {'ml': 0.30, 'classifier': 0.40, 'signal': 0.30}
    )

    # Confidence blending
    variance_threshold: float = 100.0
    variance_penalty: float = 0.8
    mtf_nudge: float = 0.2
    min_confidence: float = 55.0
    max_confidence: float = 98.0


@dataclass(frozen=True)
class RecommendationGates:
    """Expected-return (%) and confidence gates for the final recommendation."""
    strong_return_pct: float = 8.0
    return_pct: float = 3.0
    strong_confidence: float = 80.0
    confidence: float = 70.0


@dataclass(frozen=True)
class QuickPredictionRules:
    """Rules for the lightweight direction badge."""
    bullish_score: float = 65.0
    bearish_score: float = 35.0

    rsi_bonus: float = 5.0
    macd_bonus: float = 8.0
    bollinger_bonus: float = 5.0
    pattern_bonus: float = 10.0
    regime_bonus: float = 12.0

    min_confirmations: int = 2
    few_confirmations_penalty: float = 0.8
    volatility_cap: float = 0.1
    max_volatility_penalty: float = 0.3

    min_confidence: float = 35.0
    max_confidence: float = 98.0

    # Naive 5-vs-5 fallback
    fallback_window: int = 5
    fallback_change_pct: float = 2.0
    fallback_max_confidence: float = 90.0


@dataclass(frozen=True)
class MoveThresholds:
    """Translation of 0-100 scores into price moves, plus risk labelling."""
    atr_multiple: float = 2.0
    min_move: float = 0.01
    max_move: float = 0.10

    # Support/resistance constraint on the blended prediction
    level_overshoot: float = 0.05
    level_clamp: float = 0.02

    # Coefficient-of-variation risk levels
    high_risk_volatility: float = 0.05
    medium_risk_volatility: float = 0.02

    # SMA5 vs SMA10 trend label (percent)
    trend_label_pct: float = 2.0


# Global singleton instances
REGIME_THRESHOLDS = RegimeThresholds()
PATTERN_THRESHOLDS = PatternThresholds()
CLASSIFIER_WEIGHTS = ClassifierWeights()
AGGREGATOR_DELTAS = AggregatorDeltas()
INDICATOR_THRESHOLDS = IndicatorThresholds()
ENSEMBLE_WEIGHTS = EnsembleWeights()
RECOMMENDATION_GATES = RecommendationGates()
QUICK_PREDICTION_RULES = QuickPredictionRules()
MOVE_THRESHOLDS = MoveThresholds()
