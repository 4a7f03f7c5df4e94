"""
Abstract base class for asset data providers.

The forecast engine never talks to a market API directly. It asks a
provider for two things: a quote for the asset (display name and
current price) and a price series. Implement BaseAssetProvider, inject
it into the InvestmentAnalyzer, and the engine handles synthesis of
missing high/low/volume data, caching and prediction.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class AssetType(str, Enum):
    """Asset classes the engine understands."""
    CRYPTO = "crypto"
    STOCK = "stock"
    FOREX = "forex"
    COMMODITY = "commodity"

    @classmethod
    def parse(cls, value: "str | AssetType") -> "AssetType":
        """Case-insensitive lookup; accepts plural forms like 'stocks'."""
        if isinstance(value, AssetType):
            return value
        normalized = str(value).strip().lower()
        if normalized.endswith("s") and normalized[:-1] in cls._value2member_map_:
            normalized = normalized[:-1]
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown asset type '{value}'") from None


@dataclass(frozen=True)
class AssetQuote:
    """Resolved asset identity and latest price."""
    symbol: str
    display_name: str
    current_price: float
    asset_type: AssetType
    asset_id: str = ""
    change_24h: Optional[float] = None   # Percent, when the source reports it


@dataclass
class SeriesPayload:
    """Raw series returned by a provider. Only closes are mandatory."""
    closes: List[float]
    highs: Optional[List[float]] = None
    lows: Optional[List[float]] = None
    volumes: Optional[List[float]] = None
    source: str = ""

    def __len__(self) -> int:
        return len(self.closes)


class BaseAssetProvider(ABC):
    """Plugin interface for asset quote + series sources.

    Both data methods are coroutines so network-backed providers can
    be fanned out with asyncio.gather.
    Return None when nothing matches; raise only on transport errors.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique provider identifier (e.g., 'yfinance', 'static')."""
        ...

    @abstractmethod
    async def resolve_asset(self, symbol: str, asset_type: AssetType) -> Optional[AssetQuote]:
        """Look up an asset by symbol, id or name (case-insensitive)."""
        ...

    @abstractmethod
    async def fetch_series(self, symbol: str, asset_type: AssetType) -> Optional[SeriesPayload]:
        """Fetch the recent price series, oldest first."""
        ...

    def is_available(self) -> bool:
        """True if provider is configured. Default: always."""
        return True


@dataclass
class CatalogEntry:
    """One asset in an in-memory catalog (see providers.memory)."""
    symbol: str
    name: str
    asset_type: AssetType
    current_price: float
    asset_id: str = ""
    closes: List[float] = field(default_factory=list)
    highs: Optional[List[float]] = None
    lows: Optional[List[float]] = None
    volumes: Optional[List[float]] = None
    change_24h: Optional[float] = None
