"""
Configuration management for the Market Forecast Engine.
"""
from pathlib import Path
from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings

# Get base directory at module level
_BASE_DIR = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Paths
    base_dir: Path = _BASE_DIR
    log_dir: Path = _BASE_DIR / "logs"
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Technical indicator periods
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    bb_period: int = 20
    bb_std: float = 2.0
    stoch_k_period: int = 14
    stoch_d_period: int = 3
    williams_period: int = 14
    atr_period: int = 14
    ma_short: int = 20
    ma_medium: int = 50
    level_lookback: int = 50         # Samples used for pivots and pattern scans

    # Minimum history
    min_indicator_samples: int = 20
    min_prediction_samples: int = 20
    min_quick_samples: int = 20       # Below this the naive 5-vs-5 fallback applies
    min_regression_samples: int = 30

    # Regression predictor
    regression_window: int = 20      # Feature window per training row
    regression_lookback: int = 50    # Samples the window slides across
    regression_ridge: float = 1e-3   # Ridge term used only when X'X is singular
    max_predicted_return: float = 0.25

    # High/low synthesis when only closes are available (fraction of close)
    range_epsilon_crypto: float = Field(default=0.002, alias="RANGE_EPSILON_CRYPTO")
    range_epsilon_stock: float = Field(default=0.001, alias="RANGE_EPSILON_STOCK")
    range_epsilon_forex: float = Field(default=0.0002, alias="RANGE_EPSILON_FOREX")
    range_epsilon_commodity: float = Field(default=0.001, alias="RANGE_EPSILON_COMMODITY")
    range_epsilon_default: float = Field(default=0.001, alias="RANGE_EPSILON_DEFAULT")

    # Volume synthesis (proportional to local absolute return)
    synthetic_volume_base: float = 1_000_000.0
    synthetic_volume_floor: float = 0.001

    # Cache TTLs (seconds)
    analysis_cache_ttl: int = Field(default=600, alias="ANALYSIS_CACHE_TTL")
    prediction_cache_ttl: int = Field(default=300, alias="PREDICTION_CACHE_TTL")
    cache_max_entries: int = 5000

    # Data provider
    history_period: str = Field(default="3mo", alias="HISTORY_PERIOD")
    yfinance_timeout: int = Field(default=30, alias="YFINANCE_TIMEOUT")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True
    }

    def range_epsilon(self, asset_type: str | None) -> float:
        """Half-width of the synthetic high/low band for an asset class."""
        return {
            "crypto": self.range_epsilon_crypto,
            "stock": self.range_epsilon_stock,
            "forex": self.range_epsilon_forex,
            "commodity": self.range_epsilon_commodity,
        }.get((asset_type or "").lower(), self.range_epsilon_default)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
