"""
Multi-Timeframe Consensus

Emulates hourly / 4-hour / daily views of one series by resampling the
closes at strides 1, 4 and 24. Each view votes bullish, bearish or
neutral; two matching votes out of three make the consensus.

Confidence = 50 + 2 * avg_strength + 30 * (majority_count / 3), clamped.
"""
from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np
from loguru import logger

from config.settings import get_settings
from src.data.series import PriceSeries
from src.models.patterns import PatternSignal

TIMEFRAME_STRIDES: Dict[str, int] = {
    'hourly': 1,
    '4h': 4,
    'daily': 24,
}

MIN_VIEW_SAMPLES = 3
MOMENTUM_STEPS = 3
MAX_STRENGTH = 10.0


@dataclass
class TimeframeSignal:
    """Signal from one resampled view."""
    timeframe: str
    trend: PatternSignal
    strength: float      # 0-10, distance from the view's SMA in percent
    momentum: float      # Percent change over the last few samples
    samples: int = 0


@dataclass
class MultiTimeframeConsensus:
    """Majority vote over the timeframe signals."""
    consensus: PatternSignal
    confidence: float
    majority_count: int
    signals: List[TimeframeSignal] = field(default_factory=list)

    @property
    def direction(self) -> int:
        if self.consensus == PatternSignal.BULLISH:
            return 1
        if self.consensus == PatternSignal.BEARISH:
            return -1
        return 0


class MultiTimeframeAnalyzer:
    """
    Builds per-timeframe trend signals and their consensus.

    Views with fewer than 3 resampled samples vote neutral with zero strength.
    """

    def __init__(self, strides: Dict[str, int] = None, min_confidence: float = 30.0,
                 max_confidence: float = 95.0):
        self.strides = strides or TIMEFRAME_STRIDES
        self.min_confidence = min_confidence
        self.max_confidence = max_confidence
        self.sma_period = get_settings().ma_short

    def analyze_timeframe(self, series: PriceSeries, timeframe: str, stride: int) -> TimeframeSignal:
        view = series.resample(stride)
        closes = view.close_array()
        if len(closes) < MIN_VIEW_SAMPLES:
            return TimeframeSignal(timeframe, PatternSignal.NEUTRAL, 0.0, 0.0, len(closes))

        price = closes[-1]
        sma = float(closes[-self.sma_period:].mean())
        if sma <= 0:
            return TimeframeSignal(timeframe, PatternSignal.NEUTRAL, 0.0, 0.0, len(closes))

        strength = min(MAX_STRENGTH, abs(price / sma - 1) * 100)

        base = closes[-min(MOMENTUM_STEPS + 1, len(closes))]
        momentum = (price - base) / base * 100 if base > 0 else 0.0

        if price > sma and momentum > 0:
            trend = PatternSignal.BULLISH
        elif price < sma and momentum < 0:
            trend = PatternSignal.BEARISH
        else:
            trend = PatternSignal.NEUTRAL

        return TimeframeSignal(timeframe, trend, float(strength), float(momentum), len(closes))

    def analyze(self, series: PriceSeries) -> MultiTimeframeConsensus:
        signals = [
            self.analyze_timeframe(series, name, stride)
            for name, stride in self.strides.items()
        ]

        bullish = sum(1 for s in signals if s.trend == PatternSignal.BULLISH)
        bearish = sum(1 for s in signals if s.trend == PatternSignal.BEARISH)
        neutral = len(signals) - bullish - bearish
        needed = len(signals) // 2 + 1

        if bullish >= needed:
            consensus, majority = PatternSignal.BULLISH, bullish
        elif bearish >= needed:
            consensus, majority = PatternSignal.BEARISH, bearish
        else:
            consensus, majority = PatternSignal.NEUTRAL, max(bullish, bearish, neutral)

        avg_strength = float(np.mean([s.strength for s in signals])) if signals else 0.0
        confidence = 50 + 2 * avg_strength + 30 * (majority / max(1, len(signals)))
        confidence = min(self.max_confidence, max(self.min_confidence, confidence))

        logger.debug(
            f"MTF consensus {consensus.value} ({majority}/{len(signals)}) conf={confidence:.1f}"
        )
        return MultiTimeframeConsensus(consensus, confidence, majority, signals)


def analyze_timeframes(series: PriceSeries) -> MultiTimeframeConsensus:
    return MultiTimeframeAnalyzer().analyze(series)
