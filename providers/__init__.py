"""
Provider package - asset quote and series sources plus the result cache.

    from providers import ResponseCache, StaticAssetProvider
    from providers.price import get_asset_provider
"""
from providers.base import AssetQuote, AssetType, BaseAssetProvider, CatalogEntry, SeriesPayload
from providers.cache import ResponseCache
from providers.memory import StaticAssetProvider

__all__ = [
    "AssetQuote",
    "AssetType",
    "BaseAssetProvider",
    "CatalogEntry",
    "SeriesPayload",
    "ResponseCache",
    "StaticAssetProvider",
]
