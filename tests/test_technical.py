"""
Tests for src/features/technical.py - TechnicalIndicators class.

Covers: ema, rsi, macd, bollinger_bands, stochastic, williams_r, vwap,
atr, support_resistance and calculate_all. Focuses on the neutral
sentinels returned for short or flat input.
"""
import numpy as np
import pytest

from src.data.series import PriceSeries
from src.features.technical import TechnicalIndicators, compute_indicators


class TestCalculateAllHappyPath:
    """Test calculate_all with normal OHLCV data."""

    def test_calculate_all_happy_path(self, sample_series):
        """100-row sample -> every indicator populated and in range."""
        result = TechnicalIndicators.calculate_all(sample_series)

        assert result.sample_count == 100
        assert result.price == sample_series.last_close
        assert 0 <= result.rsi <= 100
        assert -100 <= result.williams_r <= 0
        assert 0 <= result.stochastic.k <= 100
        assert result.atr > 0
        assert result.vwap > 0
        assert result.bollinger.upper >= result.bollinger.middle >= result.bollinger.lower

    def test_levels_bracket_price(self, sample_series):
        """Supports sit below the last close, resistances above, nearest first."""
        levels = TechnicalIndicators.calculate_all(sample_series).support_resistance
        price = sample_series.last_close

        assert all(s < price for s in levels.supports)
        assert all(r > price for r in levels.resistances)
        assert levels.supports == sorted(levels.supports, reverse=True)
        assert levels.resistances == sorted(levels.resistances)
        assert len(levels.supports) <= 3 and len(levels.resistances) <= 3

    def test_compute_indicators_accepts_closes(self, increasing_closes):
        """A bare list of closes is wrapped in a synthesized series."""
        result = compute_indicators(increasing_closes, "stock")
        assert result.sample_count == 21
        assert result.rsi == 100.0


class TestRSI:

    def test_rsi_flat_series_is_50(self, flat_closes):
        """Zero gain and zero loss -> exactly 50."""
        assert TechnicalIndicators.rsi(flat_closes) == 50.0

    def test_rsi_all_gains(self):
        """Monotonically increasing prices -> 100."""
        assert TechnicalIndicators.rsi(list(range(1, 51))) == 100.0

    def test_rsi_all_losses(self):
        assert TechnicalIndicators.rsi(list(range(50, 0, -1))) == 0.0

    def test_rsi_short_series(self):
        """Fewer than period + 1 samples -> neutral 50."""
        assert TechnicalIndicators.rsi([1.0, 2.0, 3.0], period=14) == 50.0

    def test_rsi_bounded(self, sample_ohlcv_df):
        closes = sample_ohlcv_df['close'].tolist()
        for end in range(15, len(closes), 7):
            assert 0 <= TechnicalIndicators.rsi(closes[:end]) <= 100


class TestEMA:

    def test_ema_constant_series(self):
        """A constant series converges to its value from index period-1."""
        ema = TechnicalIndicators.ema([7.5] * 30, 10)
        assert np.isnan(ema[:9]).all()
        assert ema[9:] == pytest.approx([7.5] * 21)

    def test_ema_seeded_with_sma(self):
        values = [1.0, 2.0, 3.0, 4.0, 5.0]
        ema = TechnicalIndicators.ema(values, 3)
        assert ema[2] == pytest.approx(2.0)
        assert ema[3] == pytest.approx(0.5 * 4 + 0.5 * 2.0)

    def test_ema_too_short(self):
        assert np.isnan(TechnicalIndicators.ema([1.0, 2.0], 5)).all()


class TestMACD:

    def test_macd_short_series_zero(self):
        result = TechnicalIndicators.macd([100.0] * 20)
        assert (result.line, result.signal, result.histogram) == (0.0, 0.0, 0.0)

    def test_macd_signal_zero_before_nine_line_values(self):
        """26..33 samples give fewer than 9 line values -> signal 0."""
        closes = [100.0 + i for i in range(30)]
        result = TechnicalIndicators.macd(closes)
        assert result.signal == 0.0
        assert result.histogram == pytest.approx(result.line)

    def test_macd_uptrend_positive(self):
        result = TechnicalIndicators.macd([100.0 + i for i in range(60)])
        assert result.line > 0


class TestBollinger:

    def test_band_ordering(self, sample_ohlcv_df):
        closes = sample_ohlcv_df['close'].tolist()
        for end in range(20, len(closes), 5):
            bb = TechnicalIndicators.bollinger_bands(closes[:end])
            assert bb.upper >= bb.middle >= bb.lower

    def test_collapsed_bands(self, flat_closes):
        """Zero deviation -> %B 0.5, bandwidth 0."""
        bb = TechnicalIndicators.bollinger_bands(flat_closes)
        assert bb.upper == bb.middle == bb.lower == 50.0
        assert bb.percent_b == 0.5
        assert bb.bandwidth == 0.0

    def test_short_series_unavailable(self):
        bb = TechnicalIndicators.bollinger_bands([1.0] * 5)
        assert not bb.available
        assert bb.upper == bb.middle == bb.lower == 0.0


class TestOscillators:

    def test_stochastic_flat_window(self):
        """No range in the window -> %K and %D read 50."""
        result = TechnicalIndicators.stochastic([10.0] * 20, [10.0] * 20, [10.0] * 20)
        assert result.k == 50.0
        assert result.d == 50.0

    def test_stochastic_short(self):
        result = TechnicalIndicators.stochastic([1.0] * 5, [1.0] * 5, [1.0] * 5)
        assert (result.k, result.d) == (50, 50)

    def test_stochastic_at_high(self):
        highs = [float(i + 1) for i in range(20)]
        lows = [float(i) for i in range(20)]
        closes = highs[:]
        assert TechnicalIndicators.stochastic(highs, lows, closes).k == pytest.approx(100.0)

    def test_williams_r_flat(self):
        assert TechnicalIndicators.williams_r([5.0] * 20, [5.0] * 20, [5.0] * 20) == -50.0

    def test_williams_r_range(self, sample_ohlcv_df):
        df = sample_ohlcv_df
        value = TechnicalIndicators.williams_r(df['high'].tolist(), df['low'].tolist(), df['close'].tolist())
        assert -100 <= value <= 0


class TestVolatilityMeasures:

    def test_atr_short_series(self):
        assert TechnicalIndicators.atr([1.0] * 10, [1.0] * 10, [1.0] * 10) == 0.0

    def test_atr_constant_range(self):
        """Every bar spans 2 with no gaps -> ATR 2."""
        closes = [100.0] * 30
        highs = [101.0] * 30
        lows = [99.0] * 30
        assert TechnicalIndicators.atr(highs, lows, closes) == pytest.approx(2.0)

    def test_vwap_empty(self):
        assert TechnicalIndicators.vwap(PriceSeries(closes=[], highs=[], lows=[])) == 0.0

    def test_vwap_flat_series(self, flat_closes):
        """Synthesized volume weights a flat series evenly."""
        series = PriceSeries.from_closes(flat_closes, "stock")
        assert TechnicalIndicators.vwap(series) == pytest.approx(50.0)

    def test_vwap_uses_volume(self):
        series = PriceSeries(
            closes=[10.0, 20.0], highs=[10.0, 20.0], lows=[10.0, 20.0], volumes=[3.0, 1.0]
        )
        assert TechnicalIndicators.vwap(series) == pytest.approx(12.5)


class TestSupportResistance:

    def test_short_series_pivot_only(self):
        series = PriceSeries.from_closes([100.0] * 5)
        levels = TechnicalIndicators.support_resistance(series)
        assert levels.pivot == 100.0
        assert levels.supports == [] and levels.resistances == []
        assert levels.nearest_support is None

    def test_cluster_levels(self):
        """Closes repeated 3+ times at one price become a level."""
        closes = [100.0, 110.0] * 10 + [105.0]
        series = PriceSeries.from_closes(closes)
        levels = TechnicalIndicators.support_resistance(series)
        assert 100.0 in levels.supports
        assert 110.0 in levels.resistances


class TestSignalSummary:

    def test_summary_labels(self, increasing_closes):
        summary = TechnicalIndicators.get_signal_summary(compute_indicators(increasing_closes))
        assert summary['rsi_signal'] == 'OVERBOUGHT'
        assert summary['macd_signal'] == 'NEUTRAL'
        assert summary['bb_signal'] == 'NEAR_UPPER_BAND'
