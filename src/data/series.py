"""
PriceSeries - the immutable input to every engine call.

Closes are mandatory. Highs and lows are synthesized as
close × (1 ± epsilon) when the source only reports closes; volumes are
synthesized from local volatility when absent. Both are approximations:
ATR and pattern precision degrade on synthesized ranges.
"""
import hashlib
import math
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from config.settings import get_settings


def _as_tuple(values: Optional[Iterable[float]]) -> Optional[Tuple[float, ...]]:
    if values is None:
        return None
    return tuple(float(v) for v in values)


@dataclass(frozen=True)
class PriceSeries:
    """Chronological OHLCV samples (oldest first)."""
    closes: Tuple[float, ...]
    highs: Tuple[float, ...]
    lows: Tuple[float, ...]
    volumes: Optional[Tuple[float, ...]] = None
    asset_type: Optional[str] = None
    synthetic_range: bool = False

    def __post_init__(self):
        object.__setattr__(self, "closes", _as_tuple(self.closes))
        object.__setattr__(self, "highs", _as_tuple(self.highs))
        object.__setattr__(self, "lows", _as_tuple(self.lows))
        object.__setattr__(self, "volumes", _as_tuple(self.volumes))

        n = len(self.closes)
        if len(self.highs) != n or len(self.lows) != n:
            raise ValueError(
                f"Misaligned series: {n} closes, {len(self.highs)} highs, {len(self.lows)} lows"
            )
        if self.volumes is not None and len(self.volumes) != n:
            raise ValueError(f"Misaligned series: {n} closes, {len(self.volumes)} volumes")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_closes(cls, closes: Sequence[float], asset_type: Optional[str] = None,
                    volumes: Optional[Sequence[float]] = None) -> "PriceSeries":
        """Build a series from closes, synthesizing the high/low band."""
        eps = get_settings().range_epsilon(asset_type)
        closes = [float(c) for c in closes]
        return cls(
            closes=closes,
            highs=[c * (1 + eps) for c in closes],
            lows=[c * (1 - eps) for c in closes],
            volumes=volumes,
            asset_type=asset_type,
            synthetic_range=True,
        )

    @classmethod
    def from_arrays(cls, highs: Optional[Sequence[float]], lows: Optional[Sequence[float]],
                    closes: Sequence[float], volumes: Optional[Sequence[float]] = None,
                    asset_type: Optional[str] = None) -> "PriceSeries":
        """Build from provider arrays; missing or misaligned high/low falls back to synthesis."""
        n = len(closes)
        if highs is None or lows is None or len(highs) != n or len(lows) != n:
            base = cls.from_closes(closes, asset_type)
        else:
            base = cls(closes=closes, highs=highs, lows=lows, asset_type=asset_type)

        if volumes is not None and len(volumes) == n:
            return replace(base, volumes=_as_tuple(volumes))
        return base

    @classmethod
    def from_frame(cls, df: pd.DataFrame, asset_type: Optional[str] = None) -> "PriceSeries":
        """
        Build from an OHLCV DataFrame.

        Column names are matched case-insensitively; only 'close' is required.
        """
        columns = {c.lower(): c for c in df.columns}
        if "close" not in columns:
            raise ValueError("DataFrame must contain a 'close' column")

        def _col(name: str):
            if name not in columns:
                return None
            series = df[columns[name]]
            if series.isna().any():
                return None
            return series.astype(float).tolist()

        return cls.from_arrays(
            highs=_col("high"),
            lows=_col("low"),
            closes=df[columns["close"]].astype(float).tolist(),
            volumes=_col("volume"),
            asset_type=asset_type,
        )

    def to_frame(self) -> pd.DataFrame:
        """Lowercase OHLCV frame with a RangeIndex."""
        data = {
            "high": self.highs,
            "low": self.lows,
            "close": self.closes,
        }
        if self.volumes is not None:
            data["volume"] = self.volumes
        return pd.DataFrame(data)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.closes)

    @property
    def last_close(self) -> float:
        return self.closes[-1] if self.closes else 0.0

    @property
    def has_volume(self) -> bool:
        return self.volumes is not None

    def close_array(self) -> np.ndarray:
        return np.asarray(self.closes, dtype=float)

    def high_array(self) -> np.ndarray:
        return np.asarray(self.highs, dtype=float)

    def low_array(self) -> np.ndarray:
        return np.asarray(self.lows, dtype=float)

    def with_volumes(self) -> "PriceSeries":
        """
        Copy with volumes filled in.

        Synthetic volume is proportional to the absolute return at each
        step plus a floor, so a flat series weights every sample evenly.
        """
        if self.volumes is not None:
            return self
        settings = get_settings()
        volumes = []
        for i, close in enumerate(self.closes):
            prev = self.closes[i - 1] if i > 0 else close
            change = abs(close - prev) / prev if prev else 0.0
            volumes.append(settings.synthetic_volume_base * (settings.synthetic_volume_floor + change))
        return replace(self, volumes=tuple(volumes))

    def window(self, start: int, stop: int) -> "PriceSeries":
        """Samples [start, stop) as a new series."""
        return replace(
            self,
            closes=self.closes[start:stop],
            highs=self.highs[start:stop],
            lows=self.lows[start:stop],
            volumes=self.volumes[start:stop] if self.volumes is not None else None,
        )

    def tail(self, n: int) -> "PriceSeries":
        """Last n samples (the whole series if shorter)."""
        if n >= len(self):
            return self
        return self.window(len(self) - n, len(self))

    def resample(self, stride: int) -> "PriceSeries":
        """
        Coarser view keeping every `stride`-th sample, ending at the last one.

        Each kept close represents the bucket of `stride` samples ending at
        it; the bucket's highest high and lowest low are carried over.
        """
        if stride <= 1 or len(self) == 0:
            return self

        closes, highs, lows, volumes = [], [], [], []
        end = len(self)
        while end > 0:
            start = max(0, end - stride)
            closes.append(self.closes[end - 1])
            highs.append(max(self.highs[start:end]))
            lows.append(min(self.lows[start:end]))
            if self.volumes is not None:
                volumes.append(sum(self.volumes[start:end]))
            end -= stride

        closes.reverse()
        highs.reverse()
        lows.reverse()
        volumes.reverse()
        return replace(
            self,
            closes=tuple(closes),
            highs=tuple(highs),
            lows=tuple(lows),
            volumes=tuple(volumes) if self.volumes is not None else None,
        )

    def is_valid(self) -> bool:
        """True if every close is a finite positive number."""
        return len(self) > 0 and all(math.isfinite(c) and c > 0 for c in self.closes)

    def fingerprint(self) -> str:
        """MD5 over the exact float64 bytes; equal only for identical series."""
        digest = hashlib.md5()
        arrays = [self.closes, self.highs, self.lows]
        if self.volumes is not None:
            arrays.append(self.volumes)
        for values in arrays:
            digest.update(np.asarray(values, dtype=np.float64).tobytes())
        return digest.hexdigest()
