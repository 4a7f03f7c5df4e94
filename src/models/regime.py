"""
Market regime detection.

Classifies the current state of a series along three axes:
- Volatility: LOW / MEDIUM / HIGH / EXTREME from ATR% and historical volatility
- Trend: STRONG_BULL ... STRONG_BEAR from price vs SMA20/SMA50 and EMA alignment
- Momentum: ACCELERATING / STABLE / DECELERATING from consecutive 5-sample returns

Pure function of the series; nothing is persisted between calls.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np
from loguru import logger

from config.settings import get_settings
from config.thresholds import REGIME_THRESHOLDS
from src.features.technical import TechnicalIndicators
from src.math_models.series_stats import returns


class VolatilityRegime(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    EXTREME = "EXTREME"


class TrendRegime(str, Enum):
    STRONG_BULL = "STRONG_BULL"
    BULL = "BULL"
    SIDEWAYS = "SIDEWAYS"
    BEAR = "BEAR"
    STRONG_BEAR = "STRONG_BEAR"

    @property
    def is_bullish(self) -> bool:
        return self in (TrendRegime.STRONG_BULL, TrendRegime.BULL)

    @property
    def is_bearish(self) -> bool:
        return self in (TrendRegime.STRONG_BEAR, TrendRegime.BEAR)

    @property
    def is_strong(self) -> bool:
        return self in (TrendRegime.STRONG_BULL, TrendRegime.STRONG_BEAR)

    @property
    def direction(self) -> int:
        """+1 bull family, -1 bear family, 0 sideways."""
        if self.is_bullish:
            return 1
        if self.is_bearish:
            return -1
        return 0


class MomentumState(str, Enum):
    ACCELERATING = "ACCELERATING"
    STABLE = "STABLE"
    DECELERATING = "DECELERATING"


_VOLATILITY_ORDER = [
    VolatilityRegime.LOW,
    VolatilityRegime.MEDIUM,
    VolatilityRegime.HIGH,
    VolatilityRegime.EXTREME,
]

REGIME_DESCRIPTIONS = {
    TrendRegime.STRONG_BULL: "strong bullish trend",
    TrendRegime.BULL: "bullish trend",
    TrendRegime.SIDEWAYS: "sideways range",
    TrendRegime.BEAR: "bearish trend",
    TrendRegime.STRONG_BEAR: "strong bearish trend",
}


@dataclass(frozen=True)
class RegimeClassification:
    volatility_regime: VolatilityRegime
    trend_regime: TrendRegime
    momentum: MomentumState
    confidence: float

    # Diagnostics
    atr_pct: float = 0.0
    historical_volatility: float = 0.0
    price_vs_sma20: float = 0.0
    price_vs_sma50: float = 0.0

    def describe(self) -> str:
        return (
            f"{REGIME_DESCRIPTIONS[self.trend_regime]} with "
            f"{self.volatility_regime.value.lower()} volatility"
        )


def _ladder(value: float, low: float, medium: float, high: float) -> VolatilityRegime:
    if value < low:
        return VolatilityRegime.LOW
    if value < medium:
        return VolatilityRegime.MEDIUM
    if value < high:
        return VolatilityRegime.HIGH
    return VolatilityRegime.EXTREME


def historical_volatility(closes: Sequence[float], window: int = 20) -> float:
    """Population std of the last `window` simple returns."""
    arr = np.asarray(closes, dtype=float)[-(window + 1):]
    if len(arr) < 3 or np.any(arr[:-1] == 0):
        return 0.0
    return float(returns(arr).std())


def classify_volatility(atr_pct: float, hist_vol: float, t=REGIME_THRESHOLDS) -> VolatilityRegime:
    """The higher of the ATR% level and the historical-volatility level."""
    by_atr = _ladder(atr_pct, t.atr_low, t.atr_medium, t.atr_high)
    by_hv = _ladder(hist_vol, t.hv_low, t.hv_medium, t.hv_high)
    return max(by_atr, by_hv, key=_VOLATILITY_ORDER.index)


class RegimeDetector:
    """
    Rule-based regime classifier.

    Confidence starts at the base value and moves with regime extremity
    and how many signals agree, then is clamped to [min, max].
    """

    def __init__(self, thresholds=REGIME_THRESHOLDS, settings=None):
        self.t = thresholds
        self.settings = settings or get_settings()

    def neutral(self) -> RegimeClassification:
        return RegimeClassification(
            volatility_regime=VolatilityRegime.MEDIUM,
            trend_regime=TrendRegime.SIDEWAYS,
            momentum=MomentumState.STABLE,
            confidence=self.t.base_confidence,
        )

    def detect(
        self,
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float]
    ) -> RegimeClassification:
        s = self.settings
        closes_arr = np.asarray(closes, dtype=float)
        n = len(closes_arr)
        if n < s.min_indicator_samples:
            logger.debug(f"Regime: {n} samples < {s.min_indicator_samples}, neutral regime")
            return self.neutral()

        price = float(closes_arr[-1])
        if price <= 0:
            return self.neutral()

        # Volatility
        atr = TechnicalIndicators.atr(highs, lows, closes, s.atr_period)
        atr_pct = atr / price
        hist_vol = historical_volatility(closes_arr, self.t.hv_window)
        vol_regime = classify_volatility(atr_pct, hist_vol, self.t)

        # Trend
        sma20 = float(closes_arr[-s.ma_short:].mean())
        sma50 = float(closes_arr[-s.ma_medium:].mean())
        ratio20 = price / sma20 - 1 if sma20 > 0 else 0.0
        ratio50 = price / sma50 - 1 if sma50 > 0 else 0.0

        ema_fast = float(TechnicalIndicators.ema(closes_arr, s.macd_fast)[-1])
        if n >= s.macd_slow:
            ema_slow = float(TechnicalIndicators.ema(closes_arr, s.macd_slow)[-1])
        else:
            ema_slow = float(closes_arr.mean())

        bull_aligned = price > ema_fast > ema_slow and sma20 >= sma50
        bear_aligned = price < ema_fast < ema_slow and sma20 <= sma50

        if ratio20 > self.t.strong_trend and bull_aligned:
            trend = TrendRegime.STRONG_BULL
        elif ratio20 < -self.t.strong_trend and bear_aligned:
            trend = TrendRegime.STRONG_BEAR
        elif ratio20 > self.t.trend or (bull_aligned and ratio50 > 0):
            trend = TrendRegime.BULL
        elif ratio20 < -self.t.trend or (bear_aligned and ratio50 < 0):
            trend = TrendRegime.BEAR
        else:
            trend = TrendRegime.SIDEWAYS

        momentum = self._momentum(closes_arr)

        # Confidence
        confidence = self.t.base_confidence
        if trend.is_strong:
            confidence += 15
        elif trend == TrendRegime.SIDEWAYS:
            confidence -= 10
        else:
            confidence += 10

        if vol_regime == VolatilityRegime.LOW:
            confidence += 10
        elif vol_regime == VolatilityRegime.EXTREME:
            confidence -= 10

        if (trend.is_bullish and bull_aligned and ratio50 > 0) or \
                (trend.is_bearish and bear_aligned and ratio50 < 0):
            confidence += 20
        if (trend.is_bullish and momentum == MomentumState.DECELERATING) or \
                (trend.is_bearish and momentum == MomentumState.ACCELERATING):
            confidence -= 15

        confidence = min(self.t.max_confidence, max(self.t.min_confidence, confidence))

        result = RegimeClassification(
            volatility_regime=vol_regime,
            trend_regime=trend,
            momentum=momentum,
            confidence=confidence,
            atr_pct=atr_pct,
            historical_volatility=hist_vol,
            price_vs_sma20=ratio20,
            price_vs_sma50=ratio50,
        )
        logger.debug(
            f"Regime: {trend.value}/{vol_regime.value}/{momentum.value} "
            f"conf={confidence:.0f} atr%={atr_pct:.4f} hv={hist_vol:.4f}"
        )
        return result

    def _momentum(self, closes: np.ndarray) -> MomentumState:
        w = self.t.momentum_window
        if len(closes) < 2 * w + 1:
            return MomentumState.STABLE

        mid, start = closes[-w - 1], closes[-2 * w - 1]
        if mid <= 0 or start <= 0:
            return MomentumState.STABLE

        recent = closes[-1] / mid - 1
        prior = mid / start - 1
        if recent - prior > self.t.momentum_shift:
            return MomentumState.ACCELERATING
        if recent - prior < -self.t.momentum_shift:
            return MomentumState.DECELERATING
        return MomentumState.STABLE


def detect_regime(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float]
) -> RegimeClassification:
    """Classify volatility, trend and momentum regime of a series."""
    return RegimeDetector().detect(highs, lows, closes)
