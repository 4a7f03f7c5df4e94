"""
In-memory asset provider.

Serves quotes and series from a fixed catalog. Used by the CLI's offline
mode and by tests; also the reference implementation of the lookup
rules every provider follows:

    1. exact symbol match (case-insensitive)
    2. exact id match (case-insensitive)
    3. substring match on the display name
"""
from typing import Dict, Iterable, List, Optional

from loguru import logger

from providers.base import (
    AssetQuote,
    AssetType,
    BaseAssetProvider,
    CatalogEntry,
    SeriesPayload,
)


def match_asset(entries: Iterable[CatalogEntry], query: str) -> Optional[CatalogEntry]:
    """Apply the symbol -> id -> name-substring lookup rules."""
    needle = query.strip().lower()
    if not needle:
        return None
    candidates = list(entries)

    for entry in candidates:
        if entry.symbol.lower() == needle:
            return entry
    for entry in candidates:
        if entry.asset_id and entry.asset_id.lower() == needle:
            return entry
    for entry in candidates:
        if needle in entry.name.lower():
            return entry
    return None


class StaticAssetProvider(BaseAssetProvider):
    """Catalog-backed provider. Never touches the network."""

    def __init__(self, entries: Optional[Iterable[CatalogEntry]] = None):
        self._entries: Dict[AssetType, List[CatalogEntry]] = {t: [] for t in AssetType}
        self.resolve_calls = 0
        self.fetch_calls = 0
        for entry in entries or []:
            self.add(entry)

    @property
    def name(self) -> str:
        return "static"

    def add(self, entry: CatalogEntry) -> None:
        self._entries[entry.asset_type].append(entry)

    def _find(self, symbol: str, asset_type: AssetType) -> Optional[CatalogEntry]:
        return match_asset(self._entries[AssetType.parse(asset_type)], symbol)

    async def resolve_asset(self, symbol: str, asset_type: AssetType) -> Optional[AssetQuote]:
        self.resolve_calls += 1
        entry = self._find(symbol, asset_type)
        if entry is None:
            logger.debug(f"Static catalog has no {asset_type} asset matching '{symbol}'")
            return None
        return AssetQuote(
            symbol=entry.symbol,
            display_name=entry.name,
            current_price=entry.current_price,
            asset_type=entry.asset_type,
            asset_id=entry.asset_id,
            change_24h=entry.change_24h,
        )

    async def fetch_series(self, symbol: str, asset_type: AssetType) -> Optional[SeriesPayload]:
        self.fetch_calls += 1
        entry = self._find(symbol, asset_type)
        if entry is None or not entry.closes:
            return None
        return SeriesPayload(
            closes=list(entry.closes),
            highs=list(entry.highs) if entry.highs else None,
            lows=list(entry.lows) if entry.lows else None,
            volumes=list(entry.volumes) if entry.volumes else None,
            source=self.name,
        )

    def snapshots(self) -> List[AssetQuote]:
        """Every catalog entry as a quote, for market-wide advice."""
        return [
            AssetQuote(
                symbol=e.symbol,
                display_name=e.name,
                current_price=e.current_price,
                asset_type=e.asset_type,
                asset_id=e.asset_id,
                change_24h=e.change_24h,
            )
            for entries in self._entries.values()
            for e in entries
        ]
