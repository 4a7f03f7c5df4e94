"""
Asset provider plugins.
"""
import os

from loguru import logger

from providers.base import BaseAssetProvider


def get_asset_provider(name: str | None = None) -> BaseAssetProvider:
    """Return the configured asset provider (ASSET_PROVIDER env, default yfinance)."""
    from providers.memory import StaticAssetProvider
    from providers.price.yfinance_provider import YFinanceAssetProvider

    registry = {
        "yfinance": YFinanceAssetProvider,
        "static": StaticAssetProvider,
    }

    chosen = (name or os.getenv("ASSET_PROVIDER", "yfinance")).strip().lower()
    cls = registry.get(chosen)
    if cls is None:
        logger.warning(f"Unknown asset provider '{chosen}', using yfinance")
        cls = YFinanceAssetProvider

    provider = cls()
    logger.info(f"Asset provider '{provider.name}' registered")
    return provider
