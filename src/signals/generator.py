"""
Signal-strength aggregator.

Independent of the weighted classifier: starts from a neutral 50 and
adds fixed deltas for each confirming signal, then rewards convergence
in its confidence. Oscillator extremes are read contrarian in a
sideways market and as continuation when a trend regime is active.
"""
from dataclasses import dataclass, field
from typing import Dict, List

from loguru import logger

from config.thresholds import AGGREGATOR_DELTAS, INDICATOR_THRESHOLDS
from src.features.feature_builder import FeatureRecord
from src.models.patterns import PatternSignal
from src.models.regime import VolatilityRegime
from src.models.scoring import score_to_price


@dataclass
class AggregatedSignal:
    """Aggregator output for one snapshot."""
    score: float                        # 0-100
    direction: PatternSignal
    confidence: float                   # 30-95
    confirmations: int                  # Fired signals agreeing with the direction
    predicted_price: float
    signals: List[str] = field(default_factory=list)
    contributions: Dict[str, float] = field(default_factory=dict)

    def agrees(self, name: str) -> bool:
        """True if the named signal fired in the final direction."""
        delta = self.contributions.get(name, 0.0)
        if self.direction == PatternSignal.BULLISH:
            return delta > 0
        if self.direction == PatternSignal.BEARISH:
            return delta < 0
        return False


class SignalGenerator:
    """
    Signal-strength aggregator.

    Deltas: RSI extremes ±12, MACD cross ±15, Bollinger extremes ±10,
    stochastic oversold 8, each pattern ±10 × confidence / 100,
    timeframe consensus ±12.
    """

    def __init__(self, deltas=AGGREGATOR_DELTAS, thresholds=INDICATOR_THRESHOLDS):
        self.d = deltas
        self.t = thresholds

    def generate(self, features: FeatureRecord) -> AggregatedSignal:
        tech = features.technical
        trend = features.momentum.trend_regime.direction
        contributions: Dict[str, float] = {}
        labels: List[str] = []

        # RSI extremes
        if tech.rsi < self.t.rsi_oversold or tech.rsi > self.t.rsi_overbought:
            oversold = tech.rsi < self.t.rsi_oversold
            if trend:
                contributions['rsi'] = trend * self.d.rsi
                labels.append("RSI_TREND_CONFIRMATION")
            else:
                contributions['rsi'] = self.d.rsi if oversold else -self.d.rsi
                labels.append("RSI_OVERSOLD" if oversold else "RSI_OVERBOUGHT")

        # MACD cross
        if tech.macd.bullish_cross:
            contributions['macd'] = self.d.macd
            labels.append("MACD_BULLISH_CROSS")
        elif tech.macd.bearish_cross:
            contributions['macd'] = -self.d.macd
            labels.append("MACD_BEARISH_CROSS")

        # Bollinger extremes
        bb = tech.bollinger
        if bb.available and (bb.percent_b < self.t.bb_oversold or bb.percent_b > self.t.bb_overbought):
            lower = bb.percent_b < self.t.bb_oversold
            if trend:
                contributions['bollinger'] = trend * self.d.bollinger
                labels.append("BOLLINGER_BAND_WALK")
            else:
                contributions['bollinger'] = self.d.bollinger if lower else -self.d.bollinger
                labels.append("BOLLINGER_LOWER" if lower else "BOLLINGER_UPPER")

        # Stochastic oversold
        if tech.stochastic.k < self.t.stoch_oversold:
            contributions['stochastic'] = -self.d.stochastic if trend < 0 else self.d.stochastic
            labels.append("STOCHASTIC_OVERSOLD")

        # Patterns
        pattern_delta = 0.0
        for pattern, conf, signal in features.pattern.patterns.items():
            if signal == PatternSignal.BULLISH:
                pattern_delta += self.d.pattern * conf / 100
            elif signal == PatternSignal.BEARISH:
                pattern_delta -= self.d.pattern * conf / 100
            else:
                continue
            labels.append(pattern.value)
        if pattern_delta:
            contributions['pattern'] = pattern_delta

        # Timeframe consensus
        mtf = features.momentum.mtf
        if mtf.direction:
            contributions['mtf'] = mtf.direction * self.d.mtf
            labels.append(f"MTF_{mtf.consensus.value}")

        score = min(100.0, max(0.0, 50.0 + sum(contributions.values())))

        if score > 50:
            direction = PatternSignal.BULLISH
        elif score < 50:
            direction = PatternSignal.BEARISH
        else:
            direction = PatternSignal.NEUTRAL

        sign = 1 if direction == PatternSignal.BULLISH else -1 if direction == PatternSignal.BEARISH else 0
        confirmations = sum(1 for v in contributions.values() if sign and v * sign > 0)

        confidence = self._confidence(score, confirmations, features.volatility.volatility_regime)
        predicted_price = score_to_price(features.price, score, features.volatility.atr_pct)

        logger.debug(
            f"Aggregator: score={score:.1f} {direction.value} conf={confidence:.0f} "
            f"confirmations={confirmations} signals={labels}"
        )
        return AggregatedSignal(
            score=score,
            direction=direction,
            confidence=confidence,
            confirmations=confirmations,
            predicted_price=predicted_price,
            signals=labels,
            contributions=contributions,
        )

    def _confidence(self, score: float, confirmations: int, vol_regime: VolatilityRegime) -> float:
        confidence = 50 + abs(score - 50) * 0.5

        if confirmations >= 3:
            confidence += self.d.three_confirmations
        elif confirmations == 2:
            confidence += self.d.two_confirmations
        elif confirmations == 1:
            confidence += self.d.single_confirmation

        if vol_regime == VolatilityRegime.EXTREME:
            confidence += self.d.extreme_volatility
        elif vol_regime == VolatilityRegime.LOW:
            confidence += self.d.low_volatility

        return min(self.d.max_confidence, max(self.d.min_confidence, confidence))


def aggregate_signals(features: FeatureRecord) -> AggregatedSignal:
    return SignalGenerator().generate(features)
