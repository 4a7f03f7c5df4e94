"""
Shared test fixtures for market-forecast tests.

Provides sample OHLCV data, flat and increasing series, a controllable
clock for cache expiry, and a StaticAssetProvider catalog (no network).
"""
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Ensure project root is on path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from providers.base import AssetType, CatalogEntry
from providers.memory import StaticAssetProvider
from src.data.series import PriceSeries


# ============================================
# CLOCK
# ============================================

class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


# ============================================
# FIXTURES
# ============================================

@pytest.fixture
def sample_ohlcv_df():
    """100-row DataFrame with realistic OHLCV data."""
    np.random.seed(42)
    n = 100
    dates = pd.date_range('2025-01-01', periods=n, freq='B')
    close = 1000 + np.cumsum(np.random.randn(n) * 10)
    high = close + np.abs(np.random.randn(n) * 5)
    low = close - np.abs(np.random.randn(n) * 5)
    open_ = close + np.random.randn(n) * 3
    volume = np.random.randint(100000, 1000000, n)

    return pd.DataFrame({
        'open': open_,
        'high': high,
        'low': low,
        'close': close,
        'volume': volume.astype(float),
    }, index=dates)


@pytest.fixture
def sample_series(sample_ohlcv_df):
    """sample_ohlcv_df as a PriceSeries."""
    return PriceSeries.from_frame(sample_ohlcv_df, "stock")


@pytest.fixture
def flat_closes():
    """30 identical closes of 50.0."""
    return [50.0] * 30


@pytest.fixture
def increasing_closes():
    """21 strictly increasing closes, 100 through 120."""
    return [float(p) for p in range(100, 121)]


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def static_provider(sample_ohlcv_df):
    """Catalog with one asset per class; no network."""
    closes = sample_ohlcv_df['close'].tolist()
    return StaticAssetProvider([
        CatalogEntry(
            symbol="BTC", name="Bitcoin", asset_type=AssetType.CRYPTO,
            current_price=closes[-1], asset_id="bitcoin",
            closes=closes, change_24h=6.5,
        ),
        CatalogEntry(
            symbol="ETH", name="Ethereum", asset_type=AssetType.CRYPTO,
            current_price=2000.0, asset_id="ethereum",
            closes=[], change_24h=4.5,
        ),
        CatalogEntry(
            symbol="AAPL", name="Apple Inc.", asset_type=AssetType.STOCK,
            current_price=closes[-1],
            closes=closes,
            highs=sample_ohlcv_df['high'].tolist(),
            lows=sample_ohlcv_df['low'].tolist(),
            volumes=sample_ohlcv_df['volume'].tolist(),
            change_24h=-3.5,
        ),
        CatalogEntry(
            symbol="EURUSD", name="Euro / US Dollar", asset_type=AssetType.FOREX,
            current_price=1.085, closes=[1.08 + i * 0.0001 for i in range(40)],
            change_24h=0.4,
        ),
        CatalogEntry(
            symbol="XAU", name="Gold", asset_type=AssetType.COMMODITY,
            current_price=2400.0, asset_id="gold", closes=[],
            change_24h=2.5,
        ),
    ])
