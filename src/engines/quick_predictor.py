"""
Quick direction prediction.

Lightweight bullish/bearish/neutral badge with a confidence, driven by the
signal aggregator score plus confirmation bonuses. Falls back to a naive
5-vs-5 average comparison when the series is too short or unusable.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from loguru import logger

from config.settings import Settings, get_settings
from config.thresholds import QUICK_PREDICTION_RULES
from src.data.series import PriceSeries
from src.features.feature_builder import FeatureBuilder, FeatureRecord
from src.signals.generator import SignalGenerator
from utils.error_handler import ComputationFailure

BULLISH = "bullish"
BEARISH = "bearish"
NEUTRAL = "neutral"


@dataclass(frozen=True)
class QuickPrediction:
    direction: str          # 'bullish', 'bearish', 'neutral'
    confidence: float
    confirmations: int = 0
    fallback: bool = False

    @property
    def sign(self) -> int:
        return {BULLISH: 1, BEARISH: -1}.get(self.direction, 0)


def naive_prediction(closes: Sequence[float], rules=QUICK_PREDICTION_RULES) -> QuickPrediction:
    """
    Compare the mean of the last 5 closes with the mean of the 5 before.

    A change beyond ±2% sets the direction; confidence grows with the
    size of the change up to 90.
    """
    w = rules.fallback_window
    recent = list(closes[-w:])
    older = list(closes[-2 * w:-w])
    if not recent or not older:
        return QuickPrediction(NEUTRAL, 50.0, fallback=True)

    older_avg = float(np.mean(older))
    if older_avg == 0:
        return QuickPrediction(NEUTRAL, 50.0, fallback=True)

    change_pct = (float(np.mean(recent)) - older_avg) / older_avg * 100
    confidence = min(rules.fallback_max_confidence, abs(change_pct * 10) + 60)

    if change_pct > rules.fallback_change_pct:
        direction = BULLISH
    elif change_pct < -rules.fallback_change_pct:
        direction = BEARISH
    else:
        direction = NEUTRAL
    return QuickPrediction(direction, confidence, fallback=True)


def _confirmations(features: FeatureRecord, sign: int, rules) -> List[float]:
    """Bonuses for each indicator agreeing with the aggregator direction."""
    bonuses = []
    tech = features.technical
    price = features.price

    if (sign > 0 and tech.rsi < 70) or (sign < 0 and tech.rsi > 30):
        bonuses.append(rules.rsi_bonus)

    if tech.macd.histogram * sign > 0:
        bonuses.append(rules.macd_bonus)

    bb = tech.bollinger
    if bb.available:
        if (sign > 0 and price < bb.upper) or (sign < 0 and price > bb.lower):
            bonuses.append(rules.bollinger_bonus)

    if features.pattern.net_bias * sign > 0:
        bonuses.append(rules.pattern_bonus)

    trend = features.regime.trend_regime
    if trend.is_strong and trend.direction == sign:
        bonuses.append(rules.regime_bonus)

    return bonuses


class QuickPredictor:
    """Aggregator-driven direction badge."""

    def __init__(self, settings: Optional[Settings] = None, rules=QUICK_PREDICTION_RULES):
        self.settings = settings or get_settings()
        self.rules = rules
        self.feature_builder = FeatureBuilder(self.settings)
        self.aggregator = SignalGenerator()

    def predict(self, series: PriceSeries) -> QuickPrediction:
        if len(series) < self.rules.fallback_window:
            return QuickPrediction(NEUTRAL, 50.0, fallback=True)

        result = self.try_quick_prediction(series)
        if result is None:
            logger.debug("Quick prediction: using naive 5-vs-5 fallback")
            return naive_prediction(series.closes, self.rules)
        return result

    def try_quick_prediction(self, series: PriceSeries) -> Optional[QuickPrediction]:
        """Primary path; None below the minimum history or on numeric failure."""
        if len(series) < self.settings.min_quick_samples or not series.is_valid():
            return None

        r = self.rules
        try:
            features = self.feature_builder.build(series)
            score = self.aggregator.generate(features).score
        except (ComputationFailure, ArithmeticError, ValueError) as e:
            logger.warning(f"Quick prediction failed: {e}")
            return None

        if score > r.bullish_score:
            direction, sign = BULLISH, 1
            confidence = min(95.0, 60 + (score - r.bullish_score) * 2)
        elif score < r.bearish_score:
            direction, sign = BEARISH, -1
            confidence = min(95.0, 60 + (r.bearish_score - score) * 2)
        else:
            direction, sign = NEUTRAL, 0
            confidence = 50 + abs(score - 50) * 0.5

        bonuses = _confirmations(features, sign, r) if sign else []
        confidence += sum(bonuses)
        if len(bonuses) < r.min_confirmations:
            confidence *= r.few_confirmations_penalty

        vol = features.volatility.coefficient_of_variation
        if vol > r.volatility_cap:
            confidence *= 1 - min(r.max_volatility_penalty, vol)

        confidence = min(r.max_confidence, max(r.min_confidence, confidence))
        if not np.isfinite(confidence):
            return None

        logger.debug(f"Quick prediction: score={score:.1f} {direction} conf={confidence:.0f} "
                     f"confirmations={len(bonuses)}")
        return QuickPrediction(direction, confidence, confirmations=len(bonuses))


def generate_prediction(closes: Sequence[float], asset_type: Optional[str] = None) -> QuickPrediction:
    """Direction and confidence from closes alone."""
    closes = [float(c) for c in closes]
    if len(closes) < QUICK_PREDICTION_RULES.fallback_window:
        return QuickPrediction(NEUTRAL, 50.0, fallback=True)
    return QuickPredictor().predict(PriceSeries.from_closes(closes, asset_type))


def project_price_path(closes: Sequence[float], asset_type: Optional[str] = None,
                       horizon: int = 7) -> List[float]:
    """
    Chart projection of the next `horizon` points.

    Each step compounds 0.5% (0.2% for forex) in the predicted direction;
    a neutral prediction projects a flat line.
    """
    if not closes:
        return []
    step = 0.002 if (asset_type or "").lower() == "forex" else 0.005
    sign = generate_prediction(closes, asset_type).sign
    last = float(closes[-1])
    return [last * (1 + sign * step) ** k for k in range(1, horizon + 1)]
