"""
Feature builder.

Assembles indicator, regime, pattern and multi-timeframe outputs into
one FeatureRecord per snapshot. Scorers read typed sub-records:

    technical   oscillators and bands
    momentum    returns, trend regime, timeframe consensus
    volatility  ATR, historical volatility, volatility regime
    pattern     detected chart patterns
"""
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from loguru import logger

from config.settings import Settings, get_settings
from src.data.series import PriceSeries
from src.features.technical import (
    BollingerResult,
    IndicatorSet,
    MACDResult,
    StochasticResult,
    SupportResistance,
    TechnicalIndicators,
)
from src.math_models.series_stats import pct_change, volatility
from src.models.multi_timeframe import MultiTimeframeAnalyzer, MultiTimeframeConsensus
from src.models.patterns import ChartPatternDetector, PatternSet
from src.models.regime import (
    MomentumState,
    RegimeClassification,
    RegimeDetector,
    TrendRegime,
    VolatilityRegime,
)

REGRESSION_FEATURES: List[str] = [
    'rsi',
    'macd',
    'percent_b',
    'stoch_k',
    'williams_r',
    'return_5_pct',
    'atr_pct_x100',
    'price_to_sma20',
]


@dataclass(frozen=True)
class TechnicalFeatures:
    rsi: float
    macd: MACDResult
    bollinger: BollingerResult
    stochastic: StochasticResult
    williams_r: float
    vwap: float
    price_vs_vwap: float        # price / vwap - 1


@dataclass(frozen=True)
class MomentumFeatures:
    return_5: float             # Fractional change over 5 samples
    return_10: float
    sma20: float
    sma50: float
    price_to_sma20: float       # price / sma20
    trend_regime: TrendRegime
    momentum_state: MomentumState
    mtf: MultiTimeframeConsensus


@dataclass(frozen=True)
class VolatilityFeatures:
    atr: float
    atr_pct: float
    historical_volatility: float
    coefficient_of_variation: float
    bandwidth: float
    volatility_regime: VolatilityRegime


@dataclass(frozen=True)
class PatternFeatures:
    patterns: PatternSet
    net_bias: float


@dataclass(frozen=True)
class FeatureRecord:
    """Everything the scorers need for one snapshot."""
    price: float
    sample_count: int
    technical: TechnicalFeatures
    momentum: MomentumFeatures
    volatility: VolatilityFeatures
    pattern: PatternFeatures
    regime: RegimeClassification
    indicators: IndicatorSet

    @property
    def support_resistance(self) -> SupportResistance:
        return self.indicators.support_resistance


class FeatureBuilder:
    """Computes a FeatureRecord from a PriceSeries."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.regime_detector = RegimeDetector(settings=self.settings)
        self.pattern_detector = ChartPatternDetector(lookback=self.settings.level_lookback)
        self.mtf_analyzer = MultiTimeframeAnalyzer()

    def build(self, series: PriceSeries) -> FeatureRecord:
        s = self.settings
        indicators = TechnicalIndicators.calculate_all(series, s)
        regime = self.regime_detector.detect(series.highs, series.lows, series.closes)
        patterns = self.pattern_detector.detect(series.highs, series.lows, series.closes)
        mtf = self.mtf_analyzer.analyze(series)

        closes = series.close_array()
        price = series.last_close
        sma20 = float(closes[-s.ma_short:].mean()) if len(closes) else 0.0
        sma50 = float(closes[-s.ma_medium:].mean()) if len(closes) else 0.0

        technical = TechnicalFeatures(
            rsi=indicators.rsi,
            macd=indicators.macd,
            bollinger=indicators.bollinger,
            stochastic=indicators.stochastic,
            williams_r=indicators.williams_r,
            vwap=indicators.vwap,
            price_vs_vwap=price / indicators.vwap - 1 if indicators.vwap > 0 else 0.0,
        )
        momentum = MomentumFeatures(
            return_5=pct_change(closes, 5),
            return_10=pct_change(closes, 10),
            sma20=sma20,
            sma50=sma50,
            price_to_sma20=price / sma20 if sma20 > 0 else 1.0,
            trend_regime=regime.trend_regime,
            momentum_state=regime.momentum,
            mtf=mtf,
        )
        vol = VolatilityFeatures(
            atr=indicators.atr,
            atr_pct=indicators.atr_pct,
            historical_volatility=regime.historical_volatility,
            coefficient_of_variation=volatility(closes),
            bandwidth=indicators.bollinger.bandwidth,
            volatility_regime=regime.volatility_regime,
        )

        record = FeatureRecord(
            price=price,
            sample_count=len(series),
            technical=technical,
            momentum=momentum,
            volatility=vol,
            pattern=PatternFeatures(patterns=patterns, net_bias=patterns.net_bias()),
            regime=regime,
            indicators=indicators,
        )
        logger.debug(
            f"Features built: n={len(series)} rsi={indicators.rsi:.1f} "
            f"regime={regime.trend_regime.value} patterns={patterns.names()}"
        )
        return record


def regression_features(series: PriceSeries, settings: Optional[Settings] = None) -> np.ndarray:
    """
    Feature row for the regression predictor, ordered as REGRESSION_FEATURES.

    Only the indicators the row needs are computed, so this is cheap to
    call once per sliding window.
    """
    s = settings or get_settings()
    closes, highs, lows = series.closes, series.highs, series.lows
    price = series.last_close

    bollinger = TechnicalIndicators.bollinger_bands(closes, s.bb_period, s.bb_std)
    percent_b = bollinger.percent_b if bollinger.available else 0.5
    atr = TechnicalIndicators.atr(highs, lows, closes, s.atr_period)
    sma20 = TechnicalIndicators.sma(closes, s.ma_short)

    return np.array([
        TechnicalIndicators.rsi(closes, s.rsi_period),
        TechnicalIndicators.macd(closes, s.macd_fast, s.macd_slow, s.macd_signal).line,
        percent_b,
        TechnicalIndicators.stochastic(highs, lows, closes, s.stoch_k_period, s.stoch_d_period).k,
        TechnicalIndicators.williams_r(highs, lows, closes, s.williams_period),
        pct_change(closes, 5) * 100,
        (atr / price * 100) if price > 0 else 0.0,
        price / sma20 if sma20 > 0 else 1.0,
    ], dtype=float)


def build_features(series: PriceSeries) -> FeatureRecord:
    return FeatureBuilder().build(series)
