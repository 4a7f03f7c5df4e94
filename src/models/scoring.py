"""
Weighted classifier - the gradient-boosting-style heuristic scorer.

Scores four categories on 0-100 around a neutral 50, combines them with
fixed weights into an up-move probability and maps that onto a
BUY / SELL / HOLD decision. Everything is deterministic.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple

from loguru import logger

from config.thresholds import CLASSIFIER_WEIGHTS, INDICATOR_THRESHOLDS, MOVE_THRESHOLDS
from src.features.feature_builder import FeatureRecord
from src.models.regime import MomentumState, TrendRegime, VolatilityRegime


class Recommendation(str, Enum):
    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"


def expected_move(atr_pct: float) -> float:
    """Typical move size: twice ATR%, clamped to [1%, 10%]."""
    t = MOVE_THRESHOLDS
    return min(t.max_move, max(t.min_move, t.atr_multiple * atr_pct))


def score_to_price(price: float, score: float, atr_pct: float) -> float:
    """Translate a 0-100 score into a price: 50 keeps the price unchanged."""
    return price * (1 + (score - 50) / 50 * expected_move(atr_pct))


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(high, max(low, value))


@dataclass
class ClassifierResult:
    """Classifier output for one snapshot."""
    probability: float                  # 0-100 chance of an up move
    recommendation: Recommendation      # BUY / HOLD / SELL
    confidence: float                   # 55-95
    predicted_price: float
    category_scores: Dict[str, float] = field(default_factory=dict)
    reasons: List[str] = field(default_factory=list)


class WeightedClassifier:
    """
    Fixed-weight category scorer.

    Weights: technical 35%, momentum 25%, volatility 20%, pattern 20%.
    Oscillators are read contrarian (oversold is bullish); trend and
    momentum are read as continuation.
    """

    WEIGHTS = CLASSIFIER_WEIGHTS.as_dict()

    def __init__(self, weights=CLASSIFIER_WEIGHTS, indicator_thresholds=INDICATOR_THRESHOLDS):
        self.w = weights
        self.t = indicator_thresholds

    def classify(self, features: FeatureRecord) -> ClassifierResult:
        reasons: List[str] = []

        technical, tech_reasons = self._technical_score(features)
        momentum, mom_reasons = self._momentum_score(features)
        volatility, vol_reasons = self._volatility_score(features)
        pattern, pat_reasons = self._pattern_score(features)
        reasons.extend(tech_reasons + mom_reasons + vol_reasons + pat_reasons)

        scores = {
            'technical': technical,
            'momentum': momentum,
            'volatility': volatility,
            'pattern': pattern,
        }
        total_weight = sum(self.WEIGHTS.values())
        probability = sum(self.WEIGHTS[k] * scores[k] for k in scores) / total_weight

        if probability > self.w.buy_probability:
            recommendation = Recommendation.BUY
        elif probability < self.w.sell_probability:
            recommendation = Recommendation.SELL
        else:
            recommendation = Recommendation.HOLD

        confidence = min(self.w.max_confidence, max(self.w.min_confidence, abs(probability - 50) * 2))
        predicted_price = score_to_price(features.price, probability, features.volatility.atr_pct)

        logger.debug(
            f"Classifier: p={probability:.1f} {recommendation.value} conf={confidence:.0f} "
            f"(T={technical:.0f} M={momentum:.0f} V={volatility:.0f} P={pattern:.0f})"
        )
        return ClassifierResult(
            probability=probability,
            recommendation=recommendation,
            confidence=confidence,
            predicted_price=predicted_price,
            category_scores=scores,
            reasons=reasons,
        )

    def _technical_score(self, f: FeatureRecord) -> Tuple[float, List[str]]:
        """Oscillator readings, contrarian."""
        tech = f.technical
        score = 50.0
        reasons = []

        if tech.rsi < self.t.rsi_oversold:
            score += self.w.rsi
            reasons.append(f"[TECHNICAL] RSI oversold ({tech.rsi:.1f})")
        elif tech.rsi > self.t.rsi_overbought:
            score -= self.w.rsi
            reasons.append(f"[TECHNICAL] RSI overbought ({tech.rsi:.1f})")

        if tech.macd.histogram > 0:
            score += self.w.macd
            reasons.append("[TECHNICAL] MACD histogram positive")
        elif tech.macd.histogram < 0:
            score -= self.w.macd
            reasons.append("[TECHNICAL] MACD histogram negative")

        bb = tech.bollinger
        if bb.available:
            if bb.percent_b < self.t.bb_oversold:
                score += self.w.percent_b
                reasons.append("[TECHNICAL] Price near lower Bollinger Band")
            elif bb.percent_b > self.t.bb_overbought:
                score -= self.w.percent_b
                reasons.append("[TECHNICAL] Price near upper Bollinger Band")

        if tech.stochastic.k < self.t.stoch_oversold:
            score += self.w.stochastic
        elif tech.stochastic.k > self.t.stoch_overbought:
            score -= self.w.stochastic

        if tech.williams_r < self.t.williams_oversold:
            score += self.w.williams
        elif tech.williams_r > self.t.williams_overbought:
            score -= self.w.williams

        return _clamp(score), reasons

    def _momentum_score(self, f: FeatureRecord) -> Tuple[float, List[str]]:
        """Trend regime, short return, timeframe consensus and momentum state."""
        mom = f.momentum
        score = 50.0
        reasons = []

        trend_nudge = {
            TrendRegime.STRONG_BULL: self.w.strong_trend,
            TrendRegime.BULL: self.w.trend,
            TrendRegime.SIDEWAYS: 0.0,
            TrendRegime.BEAR: -self.w.trend,
            TrendRegime.STRONG_BEAR: -self.w.strong_trend,
        }[mom.trend_regime]
        score += trend_nudge
        if trend_nudge:
            reasons.append(f"[MOMENTUM] Trend regime {mom.trend_regime.value}")

        return_pct = mom.return_5 * 100
        if return_pct > self.w.short_return_pct:
            score += self.w.short_return
            reasons.append(f"[MOMENTUM] 5-period return +{return_pct:.1f}%")
        elif return_pct < -self.w.short_return_pct:
            score -= self.w.short_return
            reasons.append(f"[MOMENTUM] 5-period return {return_pct:.1f}%")

        score += mom.mtf.direction * self.w.mtf

        if mom.momentum_state == MomentumState.ACCELERATING:
            score += self.w.momentum_state
        elif mom.momentum_state == MomentumState.DECELERATING:
            score -= self.w.momentum_state

        return _clamp(score), reasons

    def _volatility_score(self, f: FeatureRecord) -> Tuple[float, List[str]]:
        """Volatility regime, VWAP position and Bollinger squeeze."""
        vol = f.volatility
        score = 50.0
        reasons = []

        if vol.volatility_regime == VolatilityRegime.EXTREME:
            score -= self.w.extreme_volatility
            reasons.append("[VOLATILITY] Extreme volatility")
        elif vol.volatility_regime == VolatilityRegime.HIGH:
            score -= self.w.high_volatility
        elif vol.volatility_regime == VolatilityRegime.LOW:
            score += self.w.low_volatility

        if f.technical.vwap > 0:
            if f.technical.price_vs_vwap > 0:
                score += self.w.vwap
            elif f.technical.price_vs_vwap < 0:
                score -= self.w.vwap

        if f.technical.bollinger.available and vol.bandwidth < self.w.squeeze_bandwidth:
            direction = f.momentum.trend_regime.direction
            score += direction * self.w.squeeze
            if direction:
                reasons.append("[VOLATILITY] Bollinger squeeze in trend direction")

        return _clamp(score), reasons

    def _pattern_score(self, f: FeatureRecord) -> Tuple[float, List[str]]:
        """Each pattern moves the score by ±20 scaled by its confidence."""
        patterns = f.pattern.patterns
        score = 50.0 + f.pattern.net_bias * self.w.pattern_scale
        reasons = [f"[PATTERN] {name.replace('_', ' ').title()}" for name in patterns.names()]
        return _clamp(score), reasons


def classify(features: FeatureRecord) -> ClassifierResult:
    return WeightedClassifier().classify(features)
