"""
Market-wide advice from 24h change snapshots.

Rules per asset class:
- Crypto: average change across quotes beyond ±5%
- Stocks: each quote beyond ±3% (a drop is read as an entry point)
- Forex: each pair beyond ±1%
- Commodities: each quote beyond ±2% (a rise is read as an inflation hedge)
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List

import numpy as np
from loguru import logger

from providers.base import AssetQuote, AssetType
from src.engines.investment_analyzer import RiskLevel
from src.models.scoring import Recommendation


@dataclass(frozen=True)
class MarketAdvice:
    asset: str
    action: Recommendation
    confidence: float
    reasoning: str
    risk_level: RiskLevel


def _by_type(snapshots: Iterable[AssetQuote]) -> Dict[AssetType, List[AssetQuote]]:
    grouped: Dict[AssetType, List[AssetQuote]] = {t: [] for t in AssetType}
    for quote in snapshots:
        if quote.change_24h is None:
            continue
        grouped[AssetType.parse(quote.asset_type)].append(quote)
    return grouped


def _crypto_advice(quotes: List[AssetQuote]) -> List[MarketAdvice]:
    if not quotes:
        return []
    avg = float(np.mean([q.change_24h for q in quotes]))
    if avg > 5:
        return [MarketAdvice(
            asset="Cryptocurrency Market",
            action=Recommendation.BUY,
            confidence=75.0,
            reasoning=(f"Strong bullish momentum across major cryptocurrencies with "
                       f"{avg:.2f}% average gain"),
            risk_level=RiskLevel.HIGH,
        )]
    if avg < -5:
        return [MarketAdvice(
            asset="Cryptocurrency Market",
            action=Recommendation.HOLD,
            confidence=60.0,
            reasoning=(f"Market correction in progress with {abs(avg):.2f}% average decline. "
                       f"Wait for stabilization"),
            risk_level=RiskLevel.MEDIUM,
        )]
    return []


def _stock_advice(quotes: List[AssetQuote]) -> List[MarketAdvice]:
    advice = []
    for q in quotes:
        if q.change_24h > 3:
            advice.append(MarketAdvice(
                asset=q.display_name,
                action=Recommendation.BUY,
                confidence=70.0,
                reasoning=f"Strong upward momentum with {q.change_24h:.2f}% daily gain",
                risk_level=RiskLevel.MEDIUM,
            ))
        elif q.change_24h < -3:
            advice.append(MarketAdvice(
                asset=q.display_name,
                action=Recommendation.BUY,
                confidence=65.0,
                reasoning=f"Potential buying opportunity after {abs(q.change_24h):.2f}% decline",
                risk_level=RiskLevel.MEDIUM,
            ))
    return advice


def _forex_advice(quotes: List[AssetQuote]) -> List[MarketAdvice]:
    advice = []
    for q in quotes:
        if abs(q.change_24h) > 1:
            action = Recommendation.BUY if q.change_24h > 0 else Recommendation.SELL
            advice.append(MarketAdvice(
                asset=q.display_name,
                action=action,
                confidence=60.0,
                reasoning=f"Significant currency movement of {q.change_24h:+.2f}% in 24h",
                risk_level=RiskLevel.LOW,
            ))
    return advice


def _commodity_advice(quotes: List[AssetQuote]) -> List[MarketAdvice]:
    advice = []
    for q in quotes:
        if q.change_24h > 2:
            advice.append(MarketAdvice(
                asset=q.display_name,
                action=Recommendation.BUY,
                confidence=70.0,
                reasoning=f"Inflation hedge with {q.change_24h:.2f}% gain",
                risk_level=RiskLevel.LOW,
            ))
        elif q.change_24h < -2:
            advice.append(MarketAdvice(
                asset=q.display_name,
                action=Recommendation.BUY,
                confidence=65.0,
                reasoning=f"Attractive entry point after {abs(q.change_24h):.2f}% decline",
                risk_level=RiskLevel.LOW,
            ))
    return advice


def generate_market_advice(snapshots: Iterable[AssetQuote]) -> List[MarketAdvice]:
    """Advice list ordered crypto, stocks, forex, commodities. Quotes without a 24h change are skipped."""
    grouped = _by_type(snapshots)
    advice = (
        _crypto_advice(grouped[AssetType.CRYPTO])
        + _stock_advice(grouped[AssetType.STOCK])
        + _forex_advice(grouped[AssetType.FOREX])
        + _commodity_advice(grouped[AssetType.COMMODITY])
    )
    logger.debug(f"Market advice: {len(advice)} item(s)")
    return advice
