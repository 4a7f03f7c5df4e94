"""
Tests for src/data/series.py - PriceSeries construction and views.

Covers: alignment checks, high/low synthesis per asset class, DataFrame
conversion, volume synthesis, tail/resample, validity and fingerprints.
"""
import math

import pandas as pd
import pytest

from src.data.series import PriceSeries


class TestConstruction:

    def test_misaligned_raises(self):
        with pytest.raises(ValueError, match="Misaligned"):
            PriceSeries(closes=[1.0, 2.0], highs=[1.0], lows=[1.0, 2.0])

    def test_misaligned_volumes_raise(self):
        with pytest.raises(ValueError, match="volumes"):
            PriceSeries(closes=[1.0], highs=[1.0], lows=[1.0], volumes=[1.0, 2.0])

    @pytest.mark.parametrize("asset_type,eps", [
        ("crypto", 0.002),
        ("stock", 0.001),
        ("forex", 0.0002),
        ("commodity", 0.001),
        (None, 0.001),
    ])
    def test_synthesized_band(self, asset_type, eps):
        series = PriceSeries.from_closes([100.0, 200.0], asset_type)
        assert series.synthetic_range
        assert series.highs == pytest.approx((100 * (1 + eps), 200 * (1 + eps)))
        assert series.lows == pytest.approx((100 * (1 - eps), 200 * (1 - eps)))

    def test_from_arrays_keeps_real_range(self):
        series = PriceSeries.from_arrays([11.0, 12.0], [9.0, 10.0], [10.0, 11.0], [5.0, 6.0])
        assert not series.synthetic_range
        assert series.highs == (11.0, 12.0)
        assert series.volumes == (5.0, 6.0)

    def test_from_arrays_misaligned_range_synthesized(self):
        series = PriceSeries.from_arrays([11.0], [9.0], [10.0, 11.0], asset_type="stock")
        assert series.synthetic_range
        assert len(series.highs) == 2

    def test_from_frame_case_insensitive(self):
        df = pd.DataFrame({'Close': [1.0, 2.0], 'High': [1.5, 2.5], 'Low': [0.5, 1.5]})
        series = PriceSeries.from_frame(df)
        assert series.closes == (1.0, 2.0)
        assert series.highs == (1.5, 2.5)
        assert not series.has_volume

    def test_from_frame_requires_close(self):
        with pytest.raises(ValueError, match="close"):
            PriceSeries.from_frame(pd.DataFrame({'open': [1.0]}))

    def test_frame_round_trip_columns(self, sample_series):
        df = sample_series.to_frame()
        assert list(df.columns) == ['high', 'low', 'close', 'volume']
        assert len(df) == 100


class TestViews:

    def test_with_volumes_flat_is_even(self, flat_closes):
        volumes = PriceSeries.from_closes(flat_closes).with_volumes().volumes
        assert len(set(volumes)) == 1
        assert volumes[0] > 0

    def test_with_volumes_keeps_real_volume(self, sample_series):
        assert sample_series.with_volumes() is sample_series

    def test_tail(self, increasing_closes):
        series = PriceSeries.from_closes(increasing_closes)
        assert series.tail(3).closes == (118.0, 119.0, 120.0)
        assert series.tail(100) is series

    def test_resample_ends_at_last_sample(self):
        series = PriceSeries(
            closes=[1.0, 2.0, 3.0, 4.0, 5.0],
            highs=[1.5, 2.5, 3.5, 4.5, 5.5],
            lows=[0.5, 1.5, 2.5, 3.5, 4.5],
            volumes=[1.0, 1.0, 1.0, 1.0, 1.0],
        )
        view = series.resample(2)
        assert view.closes == (1.0, 3.0, 5.0)
        assert view.highs == (1.5, 3.5, 5.5)
        assert view.lows == (0.5, 1.5, 3.5)
        assert view.volumes == (1.0, 2.0, 2.0)

    def test_resample_stride_one(self, sample_series):
        assert sample_series.resample(1) is sample_series

    def test_is_valid(self):
        assert PriceSeries.from_closes([1.0, 2.0]).is_valid()
        assert not PriceSeries.from_closes([1.0, 0.0]).is_valid()
        assert not PriceSeries.from_closes([1.0, math.nan]).is_valid()
        assert not PriceSeries.from_closes([]).is_valid()

    def test_fingerprint_stable(self, increasing_closes):
        a = PriceSeries.from_closes(increasing_closes)
        b = PriceSeries.from_closes(list(increasing_closes))
        c = PriceSeries.from_closes(increasing_closes[:-1] + [121.0])
        assert a.fingerprint() == b.fingerprint()
        assert a.fingerprint() != c.fingerprint()

    def test_fingerprint_sees_small_differences(self):
        base = [100.0, 101.0, 102.0, 103.0]
        nudged = base[:-1] + [103.0000000001]
        a = PriceSeries.from_arrays(base, base, base)
        b = PriceSeries.from_arrays(nudged, nudged, nudged)
        assert a.fingerprint() != b.fingerprint()
        assert a.fingerprint() == PriceSeries.from_arrays(base, base, base).fingerprint()

    def test_fingerprint_survives_frame_round_trip(self, sample_series):
        assert PriceSeries.from_frame(sample_series.to_frame()).fingerprint() == sample_series.fingerprint()

    def test_last_close_empty(self):
        assert PriceSeries.from_closes([]).last_close == 0.0
