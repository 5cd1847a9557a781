"""Tests for technical indicators."""

import math

import pandas as pd
import pytest

from invest_intel.utils.indicators import (
    calculate_adx,
    calculate_atr,
    calculate_bollinger,
    calculate_ema,
    calculate_historical_volatility,
    calculate_macd,
    calculate_roc,
    calculate_rsi,
    calculate_sma,
    calculate_stochastic,
    calculate_zscore,
    last_value,
    range_position,
)


@pytest.fixture
def sample_price_series() -> pd.Series:
    """Sample price series for indicator testing."""
    return pd.Series(
        [100.0, 101.0, 102.0, 101.5, 103.0, 104.0, 103.5, 105.0, 106.0, 105.5,
         107.0, 108.0, 107.5, 109.0, 110.0, 109.5, 111.0, 112.0, 111.5, 113.0,
         114.0, 113.5, 115.0, 116.0, 115.5, 117.0, 118.0, 117.5, 119.0, 120.0]
    )


class TestSMA:
    """Tests for SMA calculation."""

    def test_sma_basic(self, sample_price_series: pd.Series) -> None:
        """Test basic SMA calculation."""
        sma = calculate_sma(sample_price_series, 5)

        # SMA should have NaN for first (period-1) values
        assert sma.iloc[:4].isna().all()

        # SMA of first 5 values: (100 + 101 + 102 + 101.5 + 103) / 5 = 101.5
        assert abs(sma.iloc[4] - 101.5) < 0.01

    def test_sma_insufficient_data(self) -> None:
        """Test SMA with insufficient data."""
        sma = calculate_sma(pd.Series([100, 101, 102]), 5)
        assert sma.isna().all()


class TestEMA:
    """Tests for EMA calculation."""

    def test_ema_warmup(self, sample_price_series: pd.Series) -> None:
        """Test EMA emits values once the period is reached."""
        ema = calculate_ema(sample_price_series, 5)
        assert pd.isna(ema.iloc[3])
        assert not pd.isna(ema.iloc[4])

    def test_ema_seeded_from_first_bar(self, sample_price_series: pd.Series) -> None:
        """Test min_periods=1 seeds the EMA from the first observation."""
        ema = calculate_ema(sample_price_series, 5, min_periods=1)
        assert ema.iloc[0] == 100.0


class TestRSI:
    """Tests for RSI calculation."""

    def test_rsi_range(self, sample_price_series: pd.Series) -> None:
        """Test RSI stays within 0-100."""
        rsi = calculate_rsi(sample_price_series, 14).dropna()
        assert ((rsi >= 0) & (rsi <= 100)).all()

    def test_rsi_all_gains(self) -> None:
        """Test RSI is 100 when there are no losses."""
        rsi = calculate_rsi(pd.Series(range(100, 130), dtype=float), 14)
        assert rsi.iloc[-1] == 100

    def test_rsi_uptrend_above_50(self, sample_price_series: pd.Series) -> None:
        """Test RSI is above 50 for a mostly rising series."""
        assert calculate_rsi(sample_price_series, 14).iloc[-1] > 50


class TestMACD:
    """Tests for MACD calculation."""

    def test_macd_keys(self, sample_price_series: pd.Series) -> None:
        """Test MACD returns line, signal and histogram."""
        macd = calculate_macd(sample_price_series)
        assert set(macd) == {"macd_line", "signal_line", "histogram"}

    def test_histogram_is_line_minus_signal(self, sample_price_series: pd.Series) -> None:
        """Test histogram equals macd - signal."""
        macd = calculate_macd(sample_price_series, min_periods=1)
        diff = macd["macd_line"] - macd["signal_line"] - macd["histogram"]
        assert diff.abs().max() < 1e-9

    def test_seeded_macd_defined_at_slow_period(self, sample_price_series: pd.Series) -> None:
        """Test a slow-period history yields a histogram when seeded."""
        macd = calculate_macd(sample_price_series.iloc[:26], min_periods=1)
        assert last_value(macd["histogram"]) is not None


class TestATR:
    """Tests for ATR calculation."""

    def test_atr_constant_range(self) -> None:
        """Test ATR equals the bar range when bars never gap."""
        close = pd.Series([100.0] * 30)
        atr = calculate_atr(close + 1, close - 1, close, 14)
        assert abs(atr.iloc[-1] - 2.0) < 1e-9


class TestStochastic:
    """Tests for the stochastic oscillator."""

    def test_close_at_high(self) -> None:
        """Test %K is 100 when close sits at the window high."""
        close = pd.Series([float(x) for x in range(100, 120)])
        stoch = calculate_stochastic(close, close - 1, close, 14, 3)
        assert stoch["k"].iloc[-1] == pytest.approx(100.0)

    def test_flat_window_midpoint(self) -> None:
        """Test a flat window parks %K at 50."""
        close = pd.Series([100.0] * 20)
        stoch = calculate_stochastic(close, close, close, 14, 3)
        assert stoch["k"].iloc[-1] == 50.0


class TestROC:
    """Tests for rate of change."""

    def test_roc_percent(self) -> None:
        """Test ROC is expressed in percent."""
        prices = pd.Series([100.0] * 12 + [110.0])
        assert calculate_roc(prices, 12).iloc[-1] == pytest.approx(10.0)


class TestADX:
    """Tests for ADX."""

    def test_undefined_without_directional_movement(self) -> None:
        """Test ADX is NaN when highs and lows never move."""
        close = pd.Series([100.0 - i * 0.1 for i in range(40)])
        high = pd.Series([101.0] * 40)
        low = pd.Series([90.0] * 40)
        adx = calculate_adx(high, low, close, 14)
        assert last_value(adx["adx"]) is None

    def test_uptrend_plus_di_dominates(self) -> None:
        """Test +DI exceeds -DI in a steady uptrend."""
        close = pd.Series([100.0 + i for i in range(40)])
        adx = calculate_adx(close + 1, close - 1, close, 14)
        assert adx["plus_di"].iloc[-1] > adx["minus_di"].iloc[-1]
        assert adx["adx"].iloc[-1] > 25


class TestBollinger:
    """Tests for Bollinger Bands."""

    def test_band_ordering(self, sample_price_series: pd.Series) -> None:
        """Test upper >= middle >= lower."""
        bands = calculate_bollinger(sample_price_series, 20)
        assert bands["upper"].iloc[-1] >= bands["middle"].iloc[-1] >= bands["lower"].iloc[-1]

    def test_collapsed_bands_percent_b(self) -> None:
        """Test %B is 0.5 when the bands collapse."""
        bands = calculate_bollinger(pd.Series([100.0] * 25), 20)
        assert bands["percent_b"].iloc[-1] == 0.5


class TestZScore:
    """Tests for rolling z-score."""

    def test_flat_window_is_zero(self) -> None:
        """Test z-score is 0 without dispersion."""
        assert calculate_zscore(pd.Series([50.0] * 25), 20).iloc[-1] == 0.0

    def test_sign_follows_deviation(self) -> None:
        """Test a close below the mean has a negative z-score."""
        prices = pd.Series([100.0, 101.0] * 10 + [90.0])
        assert calculate_zscore(prices, 20).iloc[-1] < -2


class TestHistoricalVolatility:
    """Tests for annualized historical volatility."""

    def test_insufficient_data(self) -> None:
        """Test None with fewer than two returns."""
        assert calculate_historical_volatility(pd.Series([100.0, 101.0]), 20) is None

    def test_constant_prices(self) -> None:
        """Test zero volatility for constant prices."""
        assert calculate_historical_volatility(pd.Series([100.0] * 30), 20) == 0.0

    def test_percent_units(self) -> None:
        """Test alternating moves give double-digit percentage volatility."""
        prices = pd.Series([100.0, 102.0] * 15)
        hv = calculate_historical_volatility(prices, 20)
        assert hv is not None
        assert 20 < hv < 40


class TestRangePosition:
    """Tests for range position."""

    def test_insufficient_data(self) -> None:
        """Test None with less than the lookback."""
        s = pd.Series([1.0] * 5)
        assert range_position(s, s, s, 20) is None

    def test_flat_range(self) -> None:
        """Test 0.5 for a flat range."""
        s = pd.Series([10.0] * 20)
        assert range_position(s, s, s, 20) == 0.5

    def test_at_range_high(self) -> None:
        """Test 1.0 when the close equals the range high."""
        close = pd.Series([float(x) for x in range(20)])
        assert range_position(close, close, close, 20) == 1.0


class TestLastValue:
    """Tests for last_value."""

    def test_empty_and_nan(self) -> None:
        """Test missing values become None."""
        assert last_value(pd.Series([], dtype=float)) is None
        assert last_value(pd.Series([1.0, math.nan])) is None
        assert last_value(pd.Series([1.0, 2.0])) == 2.0
