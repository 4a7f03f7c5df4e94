"""
Advanced Prediction Engine

Master engine combining the three prediction layers:
- Weighted classifier (category scores -> probability)
- Signal-strength aggregator (confirmation counting)
- Linear regression predictor (sliding-window OLS)

Uses regime-conditioned weighting to blend their price estimates, then
constrains the blend to nearby support/resistance and gates the
recommendation on expected return and confidence.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
from loguru import logger

from config.settings import Settings, get_settings
from config.thresholds import ENSEMBLE_WEIGHTS, MOVE_THRESHOLDS, RECOMMENDATION_GATES
from providers.cache import ResponseCache
from src.data.series import PriceSeries
from src.features.feature_builder import FeatureBuilder, FeatureRecord
from src.features.technical import SupportResistance
from src.ml.regression import LinearRegressionPredictor, RegressionResult
from src.models.patterns import PatternSignal
from src.models.regime import RegimeClassification, VolatilityRegime
from src.models.scoring import ClassifierResult, Recommendation, WeightedClassifier
from src.signals.generator import AggregatedSignal, SignalGenerator
from utils.error_handler import ComputationFailure

PREDICTION_NAMESPACE = "prediction"


@dataclass
class PredictionResult:
    """Complete prediction output."""
    prediction: float
    confidence: float
    reasoning: str
    recommendation: Recommendation
    signals: List[str] = field(default_factory=list)

    # Context
    current_price: float = 0.0
    expected_return_pct: float = 0.0
    direction: str = "neutral"           # 'bullish', 'bearish', 'neutral'
    component_predictions: Dict[str, float] = field(default_factory=dict)
    weights: Dict[str, float] = field(default_factory=dict)
    regime: Optional[RegimeClassification] = None
    support_resistance: Optional[SupportResistance] = None


def insufficient_prediction(series: PriceSeries, required: int) -> PredictionResult:
    """Result for series too short to analyze."""
    return PredictionResult(
        prediction=series.last_close,
        confidence=50.0,
        reasoning=f"Insufficient data for advanced prediction ({len(series)} samples, need {required})",
        recommendation=Recommendation.HOLD,
        current_price=series.last_close,
    )


def fallback_prediction(series: PriceSeries) -> PredictionResult:
    """Safe result when the primary path could not complete."""
    return PredictionResult(
        prediction=series.last_close,
        confidence=50.0,
        reasoning="Advanced analysis unavailable, holding at the last observed price",
        recommendation=Recommendation.HOLD,
        current_price=series.last_close,
    )


def select_weights(regime: RegimeClassification) -> Dict[str, float]:
    """Regime-conditioned blend weights; extreme volatility takes precedence."""
    if regime.volatility_regime == VolatilityRegime.EXTREME:
        return dict(ENSEMBLE_WEIGHTS.extreme_volatility)
    if regime.trend_regime.is_strong:
        return dict(ENSEMBLE_WEIGHTS.strong_trend)
    return dict(ENSEMBLE_WEIGHTS.default)


def constrain_to_levels(prediction: float, price: float, levels: SupportResistance) -> float:
    """
    Pull a prediction that overshoots the nearest level back toward it.

    Beyond resistance * 1.05 becomes resistance * 1.02; below
    support * 0.95 becomes support * 0.98.
    """
    t = MOVE_THRESHOLDS
    if prediction > price and levels.nearest_resistance:
        r = levels.nearest_resistance
        if prediction > r * (1 + t.level_overshoot):
            return r * (1 + t.level_clamp)
    elif prediction < price and levels.nearest_support:
        s = levels.nearest_support
        if prediction < s * (1 - t.level_overshoot):
            return s * (1 - t.level_clamp)
    return prediction


def recommend(expected_return_pct: float, confidence: float) -> Recommendation:
    g = RECOMMENDATION_GATES
    if expected_return_pct > g.strong_return_pct and confidence > g.strong_confidence:
        return Recommendation.STRONG_BUY
    if expected_return_pct > g.return_pct and confidence > g.confidence:
        return Recommendation.BUY
    if expected_return_pct < -g.strong_return_pct and confidence > g.strong_confidence:
        return Recommendation.STRONG_SELL
    if expected_return_pct < -g.return_pct and confidence > g.confidence:
        return Recommendation.SELL
    return Recommendation.HOLD


class AdvancedPredictionEngine:
    """
    Blends classifier, aggregator and regression into one prediction.

    Weights:
        default            ml 0.40 / classifier 0.35 / signal 0.25
        EXTREME volatility ml 0.50 / classifier 0.30 / signal 0.20
        STRONG trend       ml 0.30 / classifier 0.40 / signal 0.30
    """

    def __init__(self, cache: Optional[ResponseCache] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.cache = cache
        self.feature_builder = FeatureBuilder(self.settings)
        self.classifier = WeightedClassifier()
        self.aggregator = SignalGenerator()
        self.regression = LinearRegressionPredictor(self.settings)

    def predict(self, series: PriceSeries, timeframe: str = "1W") -> PredictionResult:
        """
        Full prediction for a series.

        Short series get the insufficient-data result; a primary path that
        cannot complete gets the fallback result. Never raises for numeric
        edge cases.
        """
        required = self.settings.min_prediction_samples
        if len(series) < required:
            logger.warning(f"Advanced prediction: {len(series)} samples < {required}")
            return insufficient_prediction(series, required)

        cache_key = f"{series.fingerprint()}:{PREDICTION_NAMESPACE}:{timeframe}"
        if self.cache is not None:
            cached = self.cache.get(PREDICTION_NAMESPACE, cache_key)
            if cached is not None:
                return cached

        result = self.try_advanced_prediction(series)
        if result is None:
            result = fallback_prediction(series)

        if self.cache is not None:
            self.cache.set(PREDICTION_NAMESPACE, cache_key, result,
                           ttl_seconds=self.settings.prediction_cache_ttl)
        return result

    def try_advanced_prediction(self, series: PriceSeries) -> Optional[PredictionResult]:
        """Primary path; None when the series is unusable or the math fails."""
        if not series.is_valid():
            logger.warning("Advanced prediction: series has non-finite or non-positive closes")
            return None

        try:
            features = self.feature_builder.build(series)
            classifier = self.classifier.classify(features)
            aggregated = self.aggregator.generate(features)
            regression = self.regression.predict(series, features.volatility.volatility_regime)
            result = self._blend(features, classifier, aggregated, regression)
        except (ComputationFailure, ArithmeticError, ValueError) as e:
            logger.warning(f"Advanced prediction failed, using fallback: {e}")
            return None

        if not np.isfinite(result.prediction) or not np.isfinite(result.confidence):
            logger.warning("Advanced prediction produced a non-finite value, using fallback")
            return None
        return result

    def _blend(
        self,
        features: FeatureRecord,
        classifier: ClassifierResult,
        aggregated: AggregatedSignal,
        regression: RegressionResult
    ) -> PredictionResult:
        price = features.price
        regime = features.regime
        weights = select_weights(regime)

        components = {
            'ml': regression.predicted_price,
            'classifier': classifier.predicted_price,
            'signal': aggregated.predicted_price,
        }
        blended = sum(weights[k] * components[k] for k in components)
        prediction = constrain_to_levels(blended, price, features.support_resistance)
        if prediction != blended:
            logger.debug(f"Prediction {blended:.4f} constrained to {prediction:.4f} by S/R levels")

        expected_return_pct = (prediction - price) / price * 100
        direction = 1 if expected_return_pct > 0 else -1 if expected_return_pct < 0 else 0

        confidence = self._confidence(
            [regression.confidence, classifier.confidence, aggregated.confidence],
            regime,
            features,
            direction,
        )
        recommendation = recommend(expected_return_pct, confidence)

        return PredictionResult(
            prediction=prediction,
            confidence=confidence,
            reasoning=self._reasoning(features, aggregated, expected_return_pct),
            recommendation=recommendation,
            signals=list(aggregated.signals),
            current_price=price,
            expected_return_pct=expected_return_pct,
            direction={1: "bullish", -1: "bearish"}.get(direction, "neutral"),
            component_predictions=components,
            weights=weights,
            regime=regime,
            support_resistance=features.support_resistance,
        )

    def _confidence(self, confidences: Sequence[float], regime: RegimeClassification,
                    features: FeatureRecord, direction: int) -> float:
        e = ENSEMBLE_WEIGHTS
        confidence = float(np.mean(confidences))
        if float(np.var(confidences)) > e.variance_threshold:
            confidence *= e.variance_penalty

        confidence *= regime.confidence / 100

        mtf = features.momentum.mtf
        if mtf.direction:
            nudge = (mtf.confidence - 50) * e.mtf_nudge
            confidence += nudge if mtf.direction == direction else -nudge

        return min(e.max_confidence, max(e.min_confidence, confidence))

    def _reasoning(self, features: FeatureRecord, aggregated: AggregatedSignal,
                   expected_return_pct: float) -> str:
        clauses = []

        if expected_return_pct > 0:
            clauses.append(f"Bullish outlook with {expected_return_pct:.2f}% expected upside")
        elif expected_return_pct < 0:
            clauses.append(f"Bearish outlook with {abs(expected_return_pct):.2f}% expected downside")
        else:
            clauses.append("Neutral outlook with no expected price change")

        n = aggregated.confirmations
        clauses.append(f"{n} confirming signal{'s' if n != 1 else ''}")

        clauses.append(f"Market regime: {features.regime.describe()}")

        mtf = features.momentum.mtf
        if mtf.consensus != PatternSignal.NEUTRAL:
            clauses.append(
                f"Multi-timeframe consensus {mtf.consensus.value.lower()} "
                f"({mtf.majority_count}/{len(mtf.signals)} timeframes)"
            )

        names = features.pattern.patterns.names()
        if names:
            readable = ", ".join(n.replace("_", " ").lower() for n in names)
            clauses.append(f"Patterns detected: {readable}")

        return ". ".join(clauses) + "."


def generate_advanced_prediction(
    highs: Optional[Sequence[float]],
    lows: Optional[Sequence[float]],
    closes: Sequence[float],
    volumes: Optional[Sequence[float]] = None,
    asset_type: Optional[str] = None,
    engine: Optional[AdvancedPredictionEngine] = None
) -> PredictionResult:
    """Advanced prediction from raw arrays; missing highs/lows are synthesized."""
    series = PriceSeries.from_arrays(highs, lows, closes, volumes, asset_type)
    return (engine or AdvancedPredictionEngine()).predict(series)
