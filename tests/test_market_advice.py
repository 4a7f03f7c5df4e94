"""
Tests for src/engines/market_advice.py - advice from 24h change snapshots.
"""
from providers.base import AssetQuote, AssetType
from src.engines.investment_analyzer import RiskLevel
from src.engines.market_advice import generate_market_advice
from src.models.scoring import Recommendation


def quote(name, asset_type, change):
    return AssetQuote(symbol=name.upper(), display_name=name, current_price=1.0,
                      asset_type=asset_type, change_24h=change)


class TestMarketAdvice:
    """Per-class rules and output ordering."""

    def test_catalog_snapshots(self, static_provider):
        advice = generate_market_advice(static_provider.snapshots())

        assert [a.asset for a in advice] == ["Cryptocurrency Market", "Apple Inc.", "Gold"]

        crypto, apple, gold = advice
        assert (crypto.action, crypto.confidence, crypto.risk_level) == (Recommendation.BUY, 75.0, RiskLevel.HIGH)
        assert "5.50% average gain" in crypto.reasoning
        assert (apple.action, apple.confidence, apple.risk_level) == (Recommendation.BUY, 65.0, RiskLevel.MEDIUM)
        assert (gold.action, gold.confidence, gold.risk_level) == (Recommendation.BUY, 70.0, RiskLevel.LOW)

    def test_crypto_correction_holds(self):
        advice = generate_market_advice([
            quote("Bitcoin", AssetType.CRYPTO, -7.0),
            quote("Ethereum", AssetType.CRYPTO, -4.0),
        ])
        assert len(advice) == 1
        assert advice[0].action == Recommendation.HOLD
        assert advice[0].confidence == 60.0
        assert advice[0].risk_level == RiskLevel.MEDIUM

    def test_crypto_quiet_market(self):
        assert generate_market_advice([quote("Bitcoin", AssetType.CRYPTO, 4.9)]) == []

    def test_stock_rally(self):
        advice = generate_market_advice([quote("Apple Inc.", AssetType.STOCK, 3.5)])
        assert advice[0].action == Recommendation.BUY
        assert advice[0].confidence == 70.0

    def test_forex_direction(self):
        advice = generate_market_advice([
            quote("EUR/USD", AssetType.FOREX, 1.2),
            quote("USD/JPY", AssetType.FOREX, -1.5),
            quote("GBP/USD", AssetType.FOREX, 0.5),
        ])
        assert [(a.asset, a.action) for a in advice] == [
            ("EUR/USD", Recommendation.BUY),
            ("USD/JPY", Recommendation.SELL),
        ]
        assert all(a.risk_level == RiskLevel.LOW for a in advice)

    def test_commodity_dip(self):
        advice = generate_market_advice([quote("Silver", AssetType.COMMODITY, -2.5)])
        assert advice[0].action == Recommendation.BUY
        assert advice[0].confidence == 65.0

    def test_ordering_independent_of_input(self):
        advice = generate_market_advice([
            quote("Gold", AssetType.COMMODITY, 3.0),
            quote("EUR/USD", AssetType.FOREX, 2.0),
            quote("Tesla", AssetType.STOCK, 4.0),
            quote("Bitcoin", AssetType.CRYPTO, 8.0),
        ])
        assert [a.asset for a in advice] == ["Cryptocurrency Market", "Tesla", "EUR/USD", "Gold"]

    def test_missing_change_skipped(self):
        assert generate_market_advice([quote("Tesla", AssetType.STOCK, None)]) == []
        assert generate_market_advice([]) == []
