"""
Technical indicators calculation.
All indicators are computed with explicit formulas for transparency.

Every indicator has a minimum length. Below it, a neutral sentinel is
returned instead of raising:

    RSI -> 50, Stochastic -> (50, 50), Williams %R -> -50,
    Bollinger -> all zero, MACD -> zeros, ATR -> 0, VWAP -> 0 (empty input),
    support/resistance -> pivot at last close, no levels
"""
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from loguru import logger

from config.settings import Settings, get_settings
from config.thresholds import INDICATOR_THRESHOLDS
from src.data.series import PriceSeries


@dataclass(frozen=True)
class MACDResult:
    line: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0
    previous_histogram: float = 0.0

    @property
    def bullish_cross(self) -> bool:
        """Histogram turned positive on the latest sample."""
        return self.histogram > 0 and self.previous_histogram <= 0

    @property
    def bearish_cross(self) -> bool:
        return self.histogram < 0 and self.previous_histogram >= 0


@dataclass(frozen=True)
class BollingerResult:
    upper: float = 0.0
    middle: float = 0.0
    lower: float = 0.0
    bandwidth: float = 0.0
    percent_b: float = 0.0

    @property
    def available(self) -> bool:
        """False for the all-zero insufficient-data sentinel."""
        return self.middle != 0.0


@dataclass(frozen=True)
class StochasticResult:
    k: float = 50.0
    d: float = 50.0


@dataclass(frozen=True)
class SupportResistance:
    pivot: float
    supports: List[float] = field(default_factory=list)      # Nearest first
    resistances: List[float] = field(default_factory=list)   # Nearest first

    @property
    def nearest_support(self) -> Optional[float]:
        return self.supports[0] if self.supports else None

    @property
    def nearest_resistance(self) -> Optional[float]:
        return self.resistances[0] if self.resistances else None


@dataclass(frozen=True)
class IndicatorSet:
    """Indicator snapshot for the latest sample of a series."""
    price: float
    rsi: float
    macd: MACDResult
    bollinger: BollingerResult
    stochastic: StochasticResult
    williams_r: float
    vwap: float
    atr: float
    support_resistance: SupportResistance
    sample_count: int

    @property
    def atr_pct(self) -> float:
        return self.atr / self.price if self.price > 0 else 0.0


def _round_sig(x: float, digits: int = 3) -> float:
    """Round to `digits` significant figures."""
    if x == 0 or not math.isfinite(x):
        return 0.0
    return round(x, digits - 1 - int(math.floor(math.log10(abs(x)))))


class TechnicalIndicators:
    """
    Calculate technical indicators over a price series.

    All calculations are deterministic and use standard formulas.
    Inputs are plain sequences or numpy arrays, oldest sample first.
    """

    @staticmethod
    def ema(values: Sequence[float], period: int) -> np.ndarray:
        """
        Exponential moving average, aligned with the input.

        Seeded with the SMA of the first `period` samples; entries before
        index period-1 are NaN.
        """
        arr = np.asarray(values, dtype=float)
        out = np.full(len(arr), np.nan)
        if period <= 0 or len(arr) < period:
            return out

        alpha = 2.0 / (period + 1)
        out[period - 1] = arr[:period].mean()
        for i in range(period, len(arr)):
            out[i] = out[i - 1] + alpha * (arr[i] - out[i - 1])
        return out

    @staticmethod
    def sma(values: Sequence[float], period: int) -> float:
        """Mean of the last `period` samples (all samples if fewer)."""
        arr = np.asarray(values, dtype=float)
        if len(arr) == 0:
            return 0.0
        return float(arr[-period:].mean())

    @staticmethod
    def rsi(closes: Sequence[float], period: int = 14) -> float:
        """
        Relative Strength Index with Wilder smoothing.

        RSI = 100 - (100 / (1 + RS))
        RS = Average Gain / Average Loss

        Zero loss with positive gain gives 100; a flat window (zero gain
        and zero loss) gives 50.
        """
        arr = np.asarray(closes, dtype=float)
        if len(arr) < period + 1:
            return 50.0

        delta = np.diff(arr)
        gains = np.where(delta > 0, delta, 0.0)
        losses = np.where(delta < 0, -delta, 0.0)

        avg_gain = gains[:period].mean()
        avg_loss = losses[:period].mean()
        for gain, loss in zip(gains[period:], losses[period:]):
            avg_gain = (avg_gain * (period - 1) + gain) / period
            avg_loss = (avg_loss * (period - 1) + loss) / period

        if avg_loss == 0:
            return 50.0 if avg_gain == 0 else 100.0

        rs = avg_gain / avg_loss
        return float(100 - (100 / (1 + rs)))

    @staticmethod
    def macd(
        closes: Sequence[float],
        fast: int = 12,
        slow: int = 26,
        signal: int = 9
    ) -> MACDResult:
        """
        MACD (Moving Average Convergence Divergence).

        MACD Line = 12 EMA - 26 EMA (defined from index slow-1)
        Signal Line = 9 EMA of MACD Line, 0 until 9 line values exist
        Histogram = MACD Line - Signal Line
        """
        arr = np.asarray(closes, dtype=float)
        if len(arr) < slow:
            return MACDResult()

        ema_fast = TechnicalIndicators.ema(arr, fast)
        ema_slow = TechnicalIndicators.ema(arr, slow)
        line = (ema_fast - ema_slow)[slow - 1:]

        signal_line = np.nan_to_num(TechnicalIndicators.ema(line, signal), nan=0.0)
        histogram = line - signal_line

        return MACDResult(
            line=float(line[-1]),
            signal=float(signal_line[-1]),
            histogram=float(histogram[-1]),
            previous_histogram=float(histogram[-2]) if len(histogram) > 1 else 0.0,
        )

    @staticmethod
    def bollinger_bands(
        closes: Sequence[float],
        period: int = 20,
        std: float = 2.0
    ) -> BollingerResult:
        """
        Bollinger Bands over the last `period` samples.

        Middle = SMA(period)
        Upper = Middle + (std * StdDev), population standard deviation
        Lower = Middle - (std * StdDev)
        """
        arr = np.asarray(closes, dtype=float)
        if len(arr) < period:
            return BollingerResult()

        window = arr[-period:]
        middle = float(window.mean())
        std_dev = float(window.std())
        upper = middle + std * std_dev
        lower = middle - std * std_dev
        band = upper - lower

        price = float(arr[-1])
        percent_b = (price - lower) / band if band > 0 else 0.5
        bandwidth = band / middle if middle != 0 else 0.0

        return BollingerResult(
            upper=upper,
            middle=middle,
            lower=lower,
            bandwidth=bandwidth,
            percent_b=percent_b,
        )

    @staticmethod
    def stochastic(
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        k_period: int = 14,
        d_period: int = 3
    ) -> StochasticResult:
        """
        Stochastic oscillator.

        %K = (close - lowest low) / (highest high - lowest low) * 100
        %D = SMA(d_period) of the %K sequence
        A window with no range reads 50.
        """
        if len(closes) < k_period:
            return StochasticResult()

        high = pd.Series(highs, dtype=float)
        low = pd.Series(lows, dtype=float)
        close = pd.Series(closes, dtype=float)

        highest = high.rolling(window=k_period).max()
        lowest = low.rolling(window=k_period).min()
        span = highest - lowest

        k_values = ((close - lowest) / span.replace(0, np.nan) * 100).clip(0, 100)
        k_values = k_values.where(span != 0, 50.0).iloc[k_period - 1:]

        k = float(k_values.iloc[-1])
        d = float(k_values.iloc[-d_period:].mean())
        return StochasticResult(k=k, d=d)

    @staticmethod
    def williams_r(
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        period: int = 14
    ) -> float:
        """
        Williams %R in [-100, 0].

        %R = (highest high - close) / (highest high - lowest low) * -100
        """
        if len(closes) < period:
            return -50.0

        highest = float(max(highs[-period:]))
        lowest = float(min(lows[-period:]))
        if highest == lowest:
            return -50.0

        value = (highest - closes[-1]) / (highest - lowest) * -100
        return float(min(0.0, max(-100.0, value)))

    @staticmethod
    def vwap(series: PriceSeries) -> float:
        """
        Volume-weighted average of the typical price (H+L+C)/3.

        Missing volumes are synthesized from local volatility.
        """
        if len(series) == 0:
            return 0.0

        filled = series.with_volumes()
        typical = (filled.high_array() + filled.low_array() + filled.close_array()) / 3
        volume = np.asarray(filled.volumes, dtype=float)
        total_volume = volume.sum()
        if total_volume <= 0:
            return float(typical.mean())
        return float((typical * volume).sum() / total_volume)

    @staticmethod
    def atr(
        highs: Sequence[float],
        lows: Sequence[float],
        closes: Sequence[float],
        period: int = 14
    ) -> float:
        """
        Average True Range with Wilder smoothing.

        TR = max(H-L, |H-Pc|, |L-Pc|)
        ATR = SMA of the first `period` TRs, then (prev*(period-1) + TR) / period
        """
        if len(closes) < period + 1:
            return 0.0

        high = np.asarray(highs, dtype=float)[1:]
        low = np.asarray(lows, dtype=float)[1:]
        prev_close = np.asarray(closes, dtype=float)[:-1]

        true_range = np.maximum.reduce([
            high - low,
            np.abs(high - prev_close),
            np.abs(low - prev_close),
        ])

        atr = true_range[:period].mean()
        for tr in true_range[period:]:
            atr = (atr * (period - 1) + tr) / period
        return float(atr)

    @staticmethod
    def support_resistance(
        series: PriceSeries,
        lookback: int = 50,
        min_samples: int = 20,
        max_levels: int = 3
    ) -> SupportResistance:
        """
        Pivot-point and price-cluster support/resistance.

        Pivot P = (H + L + C) / 3 over the last `lookback` samples, with
        R1 = 2P - L, S1 = 2P - H, R2 = P + (H - L), S2 = P - (H - L).
        Closes bucketed to 3 significant figures that appear at least 3
        times add cluster levels. Levels below the current price are
        supports, above are resistances, nearest first.
        """
        if len(series) < min_samples:
            return SupportResistance(pivot=series.last_close)

        window = series.tail(lookback)
        high = max(window.highs)
        low = min(window.lows)
        price = window.last_close

        pivot = (high + low + price) / 3
        levels = {
            pivot,
            2 * pivot - low,
            2 * pivot - high,
            pivot + (high - low),
            pivot - (high - low),
        }

        buckets = pd.Series([_round_sig(c) for c in window.closes]).value_counts()
        levels.update(float(level) for level, count in buckets.items() if count >= 3)

        ordered = sorted(levels)
        supports = sorted((lv for lv in ordered if lv < price), reverse=True)[:max_levels]
        resistances = [lv for lv in ordered if lv > price][:max_levels]

        return SupportResistance(pivot=pivot, supports=supports, resistances=resistances)

    @staticmethod
    def calculate_all(series: PriceSeries, settings: Optional[Settings] = None) -> IndicatorSet:
        """
        Calculate every indicator for the latest sample.

        Args:
            series: PriceSeries (highs/lows may be synthesized)
            settings: Indicator periods (default: global settings)

        Returns:
            IndicatorSet snapshot
        """
        s = settings or get_settings()
        closes, highs, lows = series.closes, series.highs, series.lows

        if len(series) < s.min_indicator_samples:
            logger.debug(
                f"Short series for indicators: {len(series)} samples "
                f"(need {s.min_indicator_samples}+), neutral defaults apply"
            )

        return IndicatorSet(
            price=series.last_close,
            rsi=TechnicalIndicators.rsi(closes, s.rsi_period),
            macd=TechnicalIndicators.macd(closes, s.macd_fast, s.macd_slow, s.macd_signal),
            bollinger=TechnicalIndicators.bollinger_bands(closes, s.bb_period, s.bb_std),
            stochastic=TechnicalIndicators.stochastic(
                highs, lows, closes, s.stoch_k_period, s.stoch_d_period
            ),
            williams_r=TechnicalIndicators.williams_r(highs, lows, closes, s.williams_period),
            vwap=TechnicalIndicators.vwap(series),
            atr=TechnicalIndicators.atr(highs, lows, closes, s.atr_period),
            support_resistance=TechnicalIndicators.support_resistance(
                series, s.level_lookback, s.min_indicator_samples
            ),
            sample_count=len(series),
        )

    @staticmethod
    def get_signal_summary(indicators: IndicatorSet) -> Dict[str, str]:
        """
        Interpret the indicator snapshot as discrete labels.

        Returns dict like {'rsi_signal': 'OVERSOLD', 'macd_signal': ...}.
        """
        t = INDICATOR_THRESHOLDS
        summary = {}

        if indicators.rsi < t.rsi_oversold:
            summary['rsi_signal'] = 'OVERSOLD'
        elif indicators.rsi > t.rsi_overbought:
            summary['rsi_signal'] = 'OVERBOUGHT'
        else:
            summary['rsi_signal'] = 'NEUTRAL'

        macd = indicators.macd
        if macd.bullish_cross:
            summary['macd_signal'] = 'BULLISH_CROSS'
        elif macd.bearish_cross:
            summary['macd_signal'] = 'BEARISH_CROSS'
        elif macd.histogram > 0:
            summary['macd_signal'] = 'BULLISH_MOMENTUM'
        elif macd.histogram < 0:
            summary['macd_signal'] = 'BEARISH_MOMENTUM'
        else:
            summary['macd_signal'] = 'NEUTRAL'

        bb = indicators.bollinger
        if not bb.available:
            summary['bb_signal'] = 'UNAVAILABLE'
        elif bb.percent_b < t.bb_oversold:
            summary['bb_signal'] = 'NEAR_LOWER_BAND'
        elif bb.percent_b > t.bb_overbought:
            summary['bb_signal'] = 'NEAR_UPPER_BAND'
        else:
            summary['bb_signal'] = 'MIDDLE'

        stoch = indicators.stochastic
        if stoch.k < t.stoch_oversold:
            summary['stoch_signal'] = 'OVERSOLD'
        elif stoch.k > t.stoch_overbought:
            summary['stoch_signal'] = 'OVERBOUGHT'
        else:
            summary['stoch_signal'] = 'NEUTRAL'

        return summary


def compute_indicators(
    series: Union[PriceSeries, Sequence[float]],
    asset_type: Optional[str] = None,
    settings: Optional[Settings] = None
) -> IndicatorSet:
    """Indicator snapshot for a PriceSeries or a bare list of closes."""
    if not isinstance(series, PriceSeries):
        series = PriceSeries.from_closes(series, asset_type)
    return TechnicalIndicators.calculate_all(series, settings)
