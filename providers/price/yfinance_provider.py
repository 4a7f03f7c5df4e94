"""
yfinance asset provider plugin.

Free, no API key needed. Covers all four asset classes by mapping them
onto Yahoo Finance tickers:

    crypto     BTC      -> BTC-USD
    forex      EURUSD   -> EURUSD=X
    commodity  gold/XAU -> GC=F
    stock      AAPL     -> AAPL

Every blocking yfinance call runs through yfinance_with_timeout() for
hang protection and is moved off the event loop with asyncio.to_thread.
"""
import asyncio
from typing import Optional

import pandas as pd
import yfinance as yf
from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from config.settings import get_settings
from providers.base import AssetQuote, AssetType, BaseAssetProvider, SeriesPayload
from utils.error_handler import retry_with_backoff
from utils.platform import yfinance_with_timeout


# Futures tickers for common commodity names and ISO metal codes
COMMODITY_TICKERS = {
    "gold": "GC=F", "xau": "GC=F",
    "silver": "SI=F", "xag": "SI=F",
    "platinum": "PL=F", "xpt": "PL=F",
    "palladium": "PA=F", "xpd": "PA=F",
    "copper": "HG=F",
    "oil": "CL=F", "crude oil": "CL=F", "wti": "CL=F",
    "brent": "BZ=F",
    "natural gas": "NG=F", "natgas": "NG=F",
    "corn": "ZC=F",
    "wheat": "ZW=F",
}

COMMODITY_NAMES = {
    "GC=F": "Gold", "SI=F": "Silver", "PL=F": "Platinum", "PA=F": "Palladium",
    "HG=F": "Copper", "CL=F": "Crude Oil", "BZ=F": "Brent Crude",
    "NG=F": "Natural Gas", "ZC=F": "Corn", "ZW=F": "Wheat",
}


def to_yahoo_ticker(symbol: str, asset_type: AssetType) -> str:
    """Map a user-facing symbol onto a Yahoo Finance ticker."""
    raw = symbol.strip()
    upper = raw.upper()

    if asset_type == AssetType.CRYPTO:
        if upper.endswith("-USD"):
            return upper
        return f"{upper}-USD"

    if asset_type == AssetType.FOREX:
        pair = upper.replace("/", "").replace("=X", "")
        return f"{pair}=X"

    if asset_type == AssetType.COMMODITY:
        if upper.endswith("=F"):
            return upper
        return COMMODITY_TICKERS.get(raw.lower(), upper)

    return upper


def _display_name(ticker: str, asset_type: AssetType) -> str:
    if asset_type == AssetType.COMMODITY:
        return COMMODITY_NAMES.get(ticker, ticker)
    if asset_type == AssetType.FOREX:
        pair = ticker.replace("=X", "")
        return f"{pair[:3]}/{pair[3:]}" if len(pair) == 6 else pair
    if asset_type == AssetType.CRYPTO:
        return ticker.replace("-USD", "")
    return ticker


class YFinanceAssetProvider(BaseAssetProvider):
    """Yahoo Finance via yfinance. No key, self-throttled by timeouts and retry."""

    def __init__(self, period: Optional[str] = None, timeout_seconds: Optional[int] = None):
        settings = get_settings()
        self._period = period or settings.history_period
        self._timeout = timeout_seconds or settings.yfinance_timeout

    @property
    def name(self) -> str:
        return "yfinance"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((TimeoutError, ConnectionError)),
        reraise=True,
    )
    def _download_history(self, ticker: str) -> Optional[pd.DataFrame]:
        period = self._period

        def _fetch():
            return yf.Ticker(ticker).history(period=period)

        return yfinance_with_timeout(_fetch, timeout_seconds=self._timeout)

    @retry_with_backoff(max_retries=2, base_delay=1.0)
    def _latest_price(self, ticker: str) -> Optional[float]:
        def _fetch():
            t = yf.Ticker(ticker)
            info = t.fast_info
            for attr in ["last_price", "regular_market_price", "previous_close"]:
                price = getattr(info, attr, None)
                if price and price > 0:
                    return float(price)
            # Fallback: last close from history
            df = t.history(period="5d")
            if df is not None and not df.empty:
                return float(df["Close"].iloc[-1])
            return None

        return yfinance_with_timeout(_fetch, timeout_seconds=self._timeout)

    async def resolve_asset(self, symbol: str, asset_type: AssetType) -> Optional[AssetQuote]:
        asset_type = AssetType.parse(asset_type)
        ticker = to_yahoo_ticker(symbol, asset_type)
        try:
            price = await asyncio.to_thread(self._latest_price, ticker)
        except Exception as e:
            logger.error(f"yfinance quote failed for {ticker}: {e}")
            return None

        if price is None or price <= 0:
            logger.warning(f"yfinance returned no price for {ticker}")
            return None

        return AssetQuote(
            symbol=ticker,
            display_name=_display_name(ticker, asset_type),
            current_price=price,
            asset_type=asset_type,
            asset_id=symbol.strip().lower(),
        )

    async def fetch_series(self, symbol: str, asset_type: AssetType) -> Optional[SeriesPayload]:
        asset_type = AssetType.parse(asset_type)
        ticker = to_yahoo_ticker(symbol, asset_type)
        try:
            df = await asyncio.to_thread(self._download_history, ticker)
        except Exception as e:
            logger.error(f"yfinance history failed for {ticker}: {e}")
            return None

        if df is None or df.empty:
            logger.warning(f"No history returned for {ticker}")
            return None

        return frame_to_payload(df, source=self.name)


def frame_to_payload(df: pd.DataFrame, source: str = "") -> Optional[SeriesPayload]:
    """Convert a yfinance-style OHLCV frame into a SeriesPayload."""
    df = df.rename(columns={
        "Open": "open", "High": "high", "Low": "low",
        "Close": "close", "Volume": "volume",
    })
    if "close" not in df.columns:
        return None

    df = df.dropna(subset=["close"])
    if df.empty:
        return None

    def _column(name: str):
        if name not in df.columns or df[name].isna().any():
            return None
        return df[name].astype(float).tolist()

    volumes = _column("volume")
    # FX and some indices report zero volume throughout
    if volumes is not None and not any(v > 0 for v in volumes):
        volumes = None

    return SeriesPayload(
        closes=df["close"].astype(float).tolist(),
        highs=_column("high"),
        lows=_column("low"),
        volumes=volumes,
        source=source,
    )
