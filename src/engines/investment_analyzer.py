"""
Investment Analyzer

Top-level use case: symbol in, InvestmentAnalysis out.

    RESOLVE_ASSET  provider quote (symbol -> id -> name substring)
    BUILD_SERIES   provider series, high/low/volume synthesized if missing
    PREDICT        advanced prediction on the series
    ASSEMBLE       risk level, trend label, levels, reasoning

Results are cached per (symbol, asset type, timeframe). AssetNotFoundError
is the only exception surfaced to callers.
"""
import asyncio
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from config.settings import Settings, get_settings
from config.thresholds import INDICATOR_THRESHOLDS, MOVE_THRESHOLDS
from providers.base import AssetQuote, AssetType, BaseAssetProvider, SeriesPayload
from providers.cache import ResponseCache
from src.data.series import PriceSeries
from src.engines.advanced_predictor import AdvancedPredictionEngine, PredictionResult
from src.features.technical import TechnicalIndicators
from src.math_models.series_stats import volatility
from src.models.scoring import Recommendation
from utils.error_handler import AssetNotFoundError

ANALYSIS_NAMESPACE = "analysis"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class TrendLabel(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True)
class TechnicalSnapshot:
    rsi: float
    trend: TrendLabel
    volatility: float       # Coefficient of variation, percent
    support: float
    resistance: float


@dataclass(frozen=True)
class InvestmentAnalysis:
    """Complete analysis for one asset and timeframe."""
    asset: str
    symbol: str
    asset_type: AssetType
    current_price: float
    predicted_price: float
    expected_return: float
    expected_return_percent: float
    risk_level: RiskLevel
    confidence: float
    timeframe: str
    recommendation: Recommendation
    reasoning: str
    technical_indicators: TechnicalSnapshot

    def to_dict(self) -> Dict:
        ti = self.technical_indicators
        return {
            'asset': self.asset,
            'symbol': self.symbol,
            'asset_type': self.asset_type.value,
            'current_price': self.current_price,
            'predicted_price': self.predicted_price,
            'expected_return': self.expected_return,
            'expected_return_percent': self.expected_return_percent,
            'risk_level': self.risk_level.value,
            'confidence': self.confidence,
            'timeframe': self.timeframe,
            'recommendation': self.recommendation.value,
            'reasoning': self.reasoning,
            'technical_indicators': {
                'rsi': ti.rsi,
                'trend': ti.trend.value,
                'volatility': ti.volatility,
                'support': ti.support,
                'resistance': ti.resistance,
            },
        }


def classify_risk(cv: float, t=MOVE_THRESHOLDS) -> RiskLevel:
    if cv > t.high_risk_volatility:
        return RiskLevel.HIGH
    if cv > t.medium_risk_volatility:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def trend_label(closes: Sequence[float], t=MOVE_THRESHOLDS) -> TrendLabel:
    """SMA5 vs SMA10 with a ±2% band; NEUTRAL below 5 samples."""
    if len(closes) < 5:
        return TrendLabel.NEUTRAL
    sma5 = TechnicalIndicators.sma(closes, 5)
    sma10 = TechnicalIndicators.sma(closes, 10)
    band = t.trend_label_pct / 100
    if sma5 > sma10 * (1 + band):
        return TrendLabel.BULLISH
    if sma5 < sma10 * (1 - band):
        return TrendLabel.BEARISH
    return TrendLabel.NEUTRAL


def key_levels(prediction: PredictionResult, closes: Sequence[float]) -> Tuple[float, float]:
    """Nearest indicator support/resistance, else the series range padded by 2%."""
    levels = prediction.support_resistance
    support = levels.nearest_support if levels else None
    resistance = levels.nearest_resistance if levels else None
    if support is None:
        support = min(closes) * 0.98
    if resistance is None:
        resistance = max(closes) * 1.02
    return support, resistance


def build_reasoning(expected_return_pct: float, rsi: float, trend: TrendLabel,
                    cv: float, risk: RiskLevel) -> str:
    t = INDICATOR_THRESHOLDS
    clauses = []

    if expected_return_pct > 5:
        clauses.append(f"Strong positive momentum with {expected_return_pct:.1f}% expected return")
    elif expected_return_pct < -5:
        clauses.append(f"Strong negative momentum with {expected_return_pct:.1f}% expected return")

    if rsi < t.rsi_oversold:
        clauses.append("RSI indicates oversold conditions, potential buying opportunity")
    elif rsi > t.rsi_overbought:
        clauses.append("RSI indicates overbought conditions, potential selling pressure")

    clauses.append(f"{trend.value.capitalize()} trend confirmed by moving averages")

    if cv > MOVE_THRESHOLDS.high_risk_volatility:
        clauses.append("High volatility suggests increased risk and potential for large price swings")

    clauses.append(f"{risk.value.capitalize()} risk investment based on price stability")
    return ". ".join(clauses) + "."


class InvestmentAnalyzer:
    """
    Runs the analysis state machine over an injected provider.

    Usage:
        analyzer = InvestmentAnalyzer(StaticAssetProvider(entries))
        result = asyncio.run(analyzer.analyze("BTC", "crypto", "1W"))
    """

    def __init__(
        self,
        provider: BaseAssetProvider,
        cache: Optional[ResponseCache] = None,
        settings: Optional[Settings] = None,
        engine: Optional[AdvancedPredictionEngine] = None
    ):
        self.settings = settings or get_settings()
        self.provider = provider
        self.cache = cache if cache is not None else ResponseCache(
            default_ttl_seconds=self.settings.analysis_cache_ttl,
            max_entries=self.settings.cache_max_entries,
        )
        self.engine = engine or AdvancedPredictionEngine(cache=self.cache, settings=self.settings)

    async def analyze(self, symbol: str, asset_type: "str | AssetType",
                      timeframe: str = "1W") -> InvestmentAnalysis:
        """
        Analyze one asset.

        Raises:
            AssetNotFoundError: unknown asset type, or the provider has no
                match and no usable series
        """
        try:
            kind = AssetType.parse(asset_type)
        except ValueError as e:
            raise AssetNotFoundError(symbol, str(asset_type)) from e
        cache_key = f"{symbol.strip().lower()}:{kind.value}:{timeframe}"
        cached = self.cache.get(ANALYSIS_NAMESPACE, cache_key)
        if cached is not None:
            logger.debug(f"Analysis cache hit: {cache_key}")
            return cached

        quote, payload = await self._resolve_and_fetch(symbol, kind)
        series = self._build_series(quote, payload, kind)
        prediction = self.engine.predict(series, timeframe)
        analysis = self._assemble(quote, kind, timeframe, series, prediction)

        self.cache.set(ANALYSIS_NAMESPACE, cache_key, analysis,
                       ttl_seconds=self.settings.analysis_cache_ttl)
        logger.info(
            f"{quote.symbol} ({kind.value}, {timeframe}): {analysis.recommendation.value} "
            f"conf={analysis.confidence:.0f} return={analysis.expected_return_percent:+.2f}%"
        )
        return analysis

    async def analyze_many(
        self,
        requests: Iterable[Tuple[str, "str | AssetType"]],
        timeframe: str = "1W"
    ) -> List["InvestmentAnalysis | AssetNotFoundError"]:
        """Fan out independent analyses; failures are returned in place, not raised."""
        results = await asyncio.gather(
            *(self.analyze(symbol, kind, timeframe) for symbol, kind in requests),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception) and not isinstance(result, AssetNotFoundError):
                raise result
        return results

    async def _resolve_and_fetch(
        self, symbol: str, kind: AssetType
    ) -> Tuple[AssetQuote, Optional[SeriesPayload]]:
        quote, payload = await asyncio.gather(
            self.provider.resolve_asset(symbol, kind),
            self.provider.fetch_series(symbol, kind),
            return_exceptions=True,
        )

        if isinstance(payload, Exception):
            logger.error(f"Series fetch failed for {symbol}: {payload}")
            payload = None
        if isinstance(quote, Exception):
            logger.error(f"Asset resolution failed for {symbol}: {quote}")
            quote = None

        if quote is None and payload is not None and len(payload) and payload.closes[-1] > 0:
            # Direct-fetch fallback: the series exists even though the catalog lookup missed
            logger.warning(f"No quote for {symbol}, using last close from {payload.source or 'series'}")
            quote = AssetQuote(
                symbol=symbol.upper(),
                display_name=symbol.upper(),
                current_price=float(payload.closes[-1]),
                asset_type=kind,
            )

        if quote is None or not quote.current_price or quote.current_price <= 0:
            raise AssetNotFoundError(symbol, kind.value)
        return quote, payload

    def _build_series(self, quote: AssetQuote, payload: Optional[SeriesPayload],
                      kind: AssetType) -> PriceSeries:
        closes = [c for c in (payload.closes if payload else []) if c and c > 0]
        if not closes or len(closes) != len(payload.closes):
            if payload is not None and len(payload):
                logger.warning(f"{quote.symbol}: series has non-positive closes, using current price")
            else:
                logger.warning(f"{quote.symbol}: no series available, using current price")
            return PriceSeries.from_closes([quote.current_price], kind.value)

        series = PriceSeries.from_arrays(
            payload.highs, payload.lows, payload.closes, payload.volumes, kind.value
        )
        return series.with_volumes()

    def _assemble(self, quote: AssetQuote, kind: AssetType, timeframe: str,
                  series: PriceSeries, prediction: PredictionResult) -> InvestmentAnalysis:
        closes = series.closes
        current = quote.current_price
        last_close = series.last_close

        predicted = current * prediction.prediction / last_close if last_close > 0 else current
        expected_return = predicted - current
        expected_return_pct = expected_return / current * 100

        cv = volatility(closes)
        risk = classify_risk(cv)
        trend = trend_label(closes)
        rsi = TechnicalIndicators.rsi(closes, self.settings.rsi_period)
        support, resistance = key_levels(prediction, closes)
        scale = current / last_close if last_close > 0 else 1.0

        return InvestmentAnalysis(
            asset=quote.display_name,
            symbol=quote.symbol,
            asset_type=kind,
            current_price=round(current, 2),
            predicted_price=round(predicted, 2),
            expected_return=round(expected_return, 2),
            expected_return_percent=round(expected_return_pct, 2),
            risk_level=risk,
            confidence=round(prediction.confidence, 2),
            timeframe=timeframe,
            recommendation=prediction.recommendation,
            reasoning=build_reasoning(expected_return_pct, rsi, trend, cv, risk),
            technical_indicators=TechnicalSnapshot(
                rsi=round(rsi, 2),
                trend=trend,
                volatility=round(cv * 100, 2),
                support=round(support * scale, 2),
                resistance=round(resistance * scale, 2),
            ),
        )


# One analyzer per provider object (None stands for the configured default),
# so repeated calls without an explicit analyzer share a cache
_default_analyzers: Dict[Optional[int], InvestmentAnalyzer] = {}
_default_analyzers_lock = Lock()


def get_default_analyzer(provider: Optional[BaseAssetProvider] = None) -> InvestmentAnalyzer:
    """Long-lived analyzer over `provider`, or over the configured provider."""
    key = None if provider is None else id(provider)
    with _default_analyzers_lock:
        analyzer = _default_analyzers.get(key)
        if analyzer is None:
            if provider is None:
                from providers.price import get_asset_provider
                provider = get_asset_provider()
            analyzer = InvestmentAnalyzer(provider)
            _default_analyzers[key] = analyzer
            logger.debug(f"Created default analyzer over {provider.name}")
        return analyzer


async def analyze_investment(
    symbol: str,
    asset_type: "str | AssetType",
    timeframe: str = "1W",
    provider: Optional[BaseAssetProvider] = None,
    analyzer: Optional[InvestmentAnalyzer] = None
) -> InvestmentAnalysis:
    """
    Analyze one asset with the given analyzer, or the default one for `provider`.

    Calls without an analyzer reuse one analyzer (and its cache) per provider.
    """
    if analyzer is None:
        analyzer = get_default_analyzer(provider)
    return await analyzer.analyze(symbol, asset_type, timeframe)
