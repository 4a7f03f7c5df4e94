"""
Chart pattern detection.

Scans the most recent samples for local extrema and classic chart
formations. Every detected pattern carries a 0-100 confidence and a
directional signal; the three lists in PatternSet stay index-aligned.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence, Tuple

import numpy as np
from loguru import logger

from config.thresholds import PATTERN_THRESHOLDS
from src.math_models.series_stats import linear_regression, volatility


class PatternSignal(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class PatternType(str, Enum):
    DOUBLE_TOP = "DOUBLE_TOP"
    DOUBLE_BOTTOM = "DOUBLE_BOTTOM"
    HEAD_AND_SHOULDERS = "HEAD_AND_SHOULDERS"
    INVERSE_HEAD_AND_SHOULDERS = "INVERSE_HEAD_AND_SHOULDERS"
    STRONG_UPTREND = "STRONG_UPTREND"
    STRONG_DOWNTREND = "STRONG_DOWNTREND"
    SYMMETRICAL_TRIANGLE = "SYMMETRICAL_TRIANGLE"
    SIDEWAYS = "SIDEWAYS"
    BULLISH_BREAKOUT = "BULLISH_BREAKOUT"
    BEARISH_BREAKDOWN = "BEARISH_BREAKDOWN"


@dataclass
class PatternSet:
    """Detected patterns with parallel confidence and signal lists."""
    patterns: List[PatternType] = field(default_factory=list)
    confidence: List[float] = field(default_factory=list)
    signals: List[PatternSignal] = field(default_factory=list)

    def __post_init__(self):
        if not (len(self.patterns) == len(self.confidence) == len(self.signals)):
            raise ValueError(
                f"PatternSet lists must be aligned: {len(self.patterns)} patterns, "
                f"{len(self.confidence)} confidences, {len(self.signals)} signals"
            )

    def add(self, pattern: PatternType, confidence: float, signal: PatternSignal) -> None:
        self.patterns.append(pattern)
        self.confidence.append(float(min(100.0, max(0.0, confidence))))
        self.signals.append(signal)

    def __len__(self) -> int:
        return len(self.patterns)

    def __contains__(self, pattern: PatternType) -> bool:
        return pattern in self.patterns

    def items(self) -> List[Tuple[PatternType, float, PatternSignal]]:
        return list(zip(self.patterns, self.confidence, self.signals))

    def net_bias(self) -> float:
        """Sum of +conf/100 for bullish and -conf/100 for bearish patterns."""
        bias = 0.0
        for _, conf, signal in self.items():
            if signal == PatternSignal.BULLISH:
                bias += conf / 100
            elif signal == PatternSignal.BEARISH:
                bias -= conf / 100
        return bias

    def names(self) -> List[str]:
        return [p.value for p in self.patterns]


def find_extrema(values: Sequence[float], order: int = 2, peaks: bool = True) -> List[int]:
    """
    Indices of strict local maxima (peaks=True) or minima.

    A point qualifies only if it strictly beats `order` neighbours on
    each side, so the first and last `order` samples never qualify.
    """
    arr = np.asarray(values, dtype=float)
    found = []
    for i in range(order, len(arr) - order):
        neighbours = np.concatenate([arr[i - order:i], arr[i + 1:i + order + 1]])
        if peaks and np.all(arr[i] > neighbours):
            found.append(i)
        elif not peaks and np.all(arr[i] < neighbours):
            found.append(i)
    return found


class ChartPatternDetector:
    """
    Detects double tops/bottoms, head-and-shoulders, trend/triangle
    shapes and breakouts over a recent window.
    """

    def __init__(self, lookback: int = 50, thresholds=PATTERN_THRESHOLDS):
        self.lookback = lookback
        self.t = thresholds

    def detect(
        self,
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float]
    ) -> PatternSet:
        result = PatternSet()
        if len(closes) < self.t.trend_window:
            return result

        highs = np.asarray(highs, dtype=float)[-self.lookback:]
        lows = np.asarray(lows, dtype=float)[-self.lookback:]
        closes = np.asarray(closes, dtype=float)[-self.lookback:]

        peaks = find_extrema(highs, self.t.extrema_order, peaks=True)
        troughs = find_extrema(lows, self.t.extrema_order, peaks=False)

        self._double_formation(result, highs, peaks, top=True)
        self._double_formation(result, lows, troughs, top=False)
        self._head_and_shoulders(result, highs, peaks, inverse=False)
        self._head_and_shoulders(result, lows, troughs, inverse=True)
        self._trend_shape(result, highs, lows, closes)
        self._breakout(result, highs, lows, closes)

        if len(result):
            logger.debug(f"Patterns detected: {', '.join(result.names())}")
        return result

    def _double_formation(self, result: PatternSet, values: np.ndarray,
                          extrema: List[int], top: bool) -> None:
        if len(extrema) < 2:
            return
        i1, i2 = extrema[-2], extrema[-1]
        gap = i2 - i1
        if not (self.t.double_min_gap <= gap <= self.t.double_max_gap):
            return

        v1, v2 = values[i1], values[i2]
        diff = abs(v1 - v2) / max(abs(v1), abs(v2))
        if diff > self.t.double_tolerance:
            return

        confidence = 60 + (1 - diff / self.t.double_tolerance) * 20
        if top:
            result.add(PatternType.DOUBLE_TOP, confidence, PatternSignal.BEARISH)
        else:
            result.add(PatternType.DOUBLE_BOTTOM, confidence, PatternSignal.BULLISH)

    def _head_and_shoulders(self, result: PatternSet, values: np.ndarray,
                            extrema: List[int], inverse: bool) -> None:
        if len(extrema) < 3:
            return
        left, head, right = (values[i] for i in extrema[-3:])

        if inverse:
            head_stands_out = head < left and head < right
        else:
            head_stands_out = head > left and head > right
        if not head_stands_out:
            return

        diff = abs(left - right) / max(abs(left), abs(right))
        if diff > self.t.shoulder_tolerance:
            return

        confidence = 65 + (1 - diff / self.t.shoulder_tolerance) * 15
        if inverse:
            result.add(PatternType.INVERSE_HEAD_AND_SHOULDERS, confidence, PatternSignal.BULLISH)
        else:
            result.add(PatternType.HEAD_AND_SHOULDERS, confidence, PatternSignal.BEARISH)

    def _trend_shape(self, result: PatternSet, highs: np.ndarray,
                     lows: np.ndarray, closes: np.ndarray) -> None:
        window = closes[-self.t.trend_window:]
        mean = window.mean()
        if mean <= 0:
            return

        rel_slope = linear_regression(window).slope / mean
        window_vol = volatility(window)

        if window_vol < self.t.trend_volatility_cap and abs(rel_slope) > self.t.strong_slope:
            confidence = min(90.0, 60 + abs(rel_slope) / self.t.strong_slope * 10)
            if rel_slope > 0:
                result.add(PatternType.STRONG_UPTREND, confidence, PatternSignal.BULLISH)
            else:
                result.add(PatternType.STRONG_DOWNTREND, confidence, PatternSignal.BEARISH)
            return

        if abs(rel_slope) < self.t.flat_slope:
            half = self.t.trend_window // 2
            recent_h, recent_l = highs[-self.t.trend_window:], lows[-self.t.trend_window:]
            first_range = recent_h[:half].max() - recent_l[:half].min()
            second_range = recent_h[half:].max() - recent_l[half:].min()
            if first_range > 0 and second_range / first_range < self.t.triangle_contraction:
                result.add(PatternType.SYMMETRICAL_TRIANGLE, 60.0, PatternSignal.NEUTRAL)
            else:
                result.add(PatternType.SIDEWAYS, 55.0, PatternSignal.NEUTRAL)

    def _breakout(self, result: PatternSet, highs: np.ndarray,
                  lows: np.ndarray, closes: np.ndarray) -> None:
        lookback = self.t.breakout_lookback
        if len(closes) < lookback + 1:
            return

        price = closes[-1]
        prior_high = highs[-lookback - 1:-1].max()
        prior_low = lows[-lookback - 1:-1].min()

        if prior_high > 0 and price > prior_high * (1 + self.t.breakout_pct):
            excess = price / prior_high - 1 - self.t.breakout_pct
            result.add(PatternType.BULLISH_BREAKOUT, min(90.0, 65 + excess * 500), PatternSignal.BULLISH)
        elif prior_low > 0 and price < prior_low * (1 - self.t.breakout_pct):
            excess = 1 - price / prior_low - self.t.breakout_pct
            result.add(PatternType.BEARISH_BREAKDOWN, min(90.0, 65 + excess * 500), PatternSignal.BEARISH)


def detect_patterns(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    lookback: int = 50
) -> PatternSet:
    """Detect chart patterns on the last `lookback` samples (empty below 10)."""
    return ChartPatternDetector(lookback=lookback).detect(highs, lows, closes)
