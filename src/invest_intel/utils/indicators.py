"""Technical indicator calculations."""

import math

import numpy as np
import pandas as pd


def calculate_sma(prices: pd.Series, period: int) -> pd.Series:
    """
    Calculate Simple Moving Average.

    Args:
        prices: Price series (typically close prices)
        period: Number of periods for the average

    Returns:
        SMA series
    """
    return prices.rolling(window=period, min_periods=period).mean()


def calculate_ema(prices: pd.Series, period: int, min_periods: int | None = None) -> pd.Series:
    """
    Calculate Exponential Moving Average.

    Args:
        prices: Price series (typically close prices)
        period: Number of periods for the average
        min_periods: Observations required before emitting a value
            (default: period)

    Returns:
        EMA series
    """
    if min_periods is None:
        min_periods = period
    return prices.ewm(span=period, adjust=False, min_periods=min_periods).mean()


def calculate_rsi(prices: pd.Series, period: int = 14) -> pd.Series:
    """
    Calculate Relative Strength Index.

    Uses Wilder's smoothing method (exponential moving average).

    Args:
        prices: Price series (typically close prices)
        period: RSI period (default: 14)

    Returns:
        RSI series (0-100 scale)
    """
    delta = prices.diff()

    gain = delta.where(delta > 0, 0.0)
    loss = (-delta).where(delta < 0, 0.0)

    # Wilder's smoothing: alpha = 1/period
    avg_gain = gain.ewm(alpha=1 / period, min_periods=period, adjust=False).mean()
    avg_loss = loss.ewm(alpha=1 / period, min_periods=period, adjust=False).mean()

    rs = avg_gain / avg_loss
    rsi = 100 - (100 / (1 + rs))

    # Handle division by zero (when avg_loss is 0)
    rsi = rsi.replace([np.inf, -np.inf], 100)

    return rsi


def calculate_macd(
    prices: pd.Series,
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
    min_periods: int | None = None,
) -> dict[str, pd.Series]:
    """
    Calculate MACD (Moving Average Convergence Divergence).

    Args:
        prices: Price series (typically close prices)
        fast: Fast EMA period (default: 12)
        slow: Slow EMA period (default: 26)
        signal: Signal line period (default: 9)
        min_periods: Warm-up passed to every EMA. None keeps the full
            period warm-up; 1 seeds each EMA from its first observation so
            a slow-period history already yields a histogram.

    Returns:
        Dict with 'macd_line', 'signal_line', 'histogram' series
    """
    ema_fast = calculate_ema(prices, fast, min_periods)
    ema_slow = calculate_ema(prices, slow, min_periods)

    macd_line = ema_fast - ema_slow
    signal_line = calculate_ema(macd_line, signal, min_periods)
    histogram = macd_line - signal_line

    return {
        "macd_line": macd_line,
        "signal_line": signal_line,
        "histogram": histogram,
    }


def calculate_true_range(high: pd.Series, low: pd.Series, close: pd.Series) -> pd.Series:
    """True range: max of bar range and gaps from the previous close."""
    prev_close = close.shift(1)

    tr1 = high - low
    tr2 = (high - prev_close).abs()
    tr3 = (low - prev_close).abs()

    return pd.concat([tr1, tr2, tr3], axis=1).max(axis=1)


def calculate_atr(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    period: int = 14,
) -> pd.Series:
    """
    Calculate Average True Range.

    Args:
        high: High price series
        low: Low price series
        close: Close price series
        period: ATR period (default: 14)

    Returns:
        ATR series
    """
    true_range = calculate_true_range(high, low, close)

    # Wilder's smoothing for ATR
    atr = true_range.ewm(alpha=1 / period, min_periods=period, adjust=False).mean()

    return atr


def calculate_stochastic(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    k_period: int = 14,
    d_period: int = 3,
) -> dict[str, pd.Series]:
    """
    Calculate Stochastic Oscillator.

    Args:
        high: High price series
        low: Low price series
        close: Close price series
        k_period: Lookback for %K (default: 14)
        d_period: SMA period for %D (default: 3)

    Returns:
        Dict with 'k' and 'd' series (0-100 scale)
    """
    lowest = low.rolling(window=k_period, min_periods=k_period).min()
    highest = high.rolling(window=k_period, min_periods=k_period).max()
    span = (highest - lowest).replace(0, np.nan)

    # Flat window: park %K at the midpoint
    k = (100 * (close - lowest) / span).where(span.notna(), 50.0)
    k = k.where(lowest.notna())
    d = calculate_sma(k, d_period)

    return {"k": k, "d": d}


def calculate_roc(prices: pd.Series, period: int = 12) -> pd.Series:
    """
    Calculate Rate of Change.

    Returns:
        ROC series in percent
    """
    past = prices.shift(period).replace(0, np.nan)
    return (prices - past) / past * 100


def calculate_adx(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    period: int = 14,
) -> dict[str, pd.Series]:
    """
    Calculate Average Directional Index with +DI/-DI.

    Uses Wilder's smoothing for DM, TR and DX.

    Returns:
        Dict with 'adx', 'plus_di', 'minus_di' series. ADX is NaN while
        neither directional movement has registered.
    """
    up_move = high.diff()
    down_move = -low.diff()

    plus_dm = up_move.where((up_move > down_move) & (up_move > 0), 0.0)
    minus_dm = down_move.where((down_move > up_move) & (down_move > 0), 0.0)

    alpha = 1 / period
    atr = calculate_true_range(high, low, close).ewm(
        alpha=alpha, min_periods=period, adjust=False
    ).mean()
    atr = atr.replace(0, np.nan)

    plus_di = 100 * plus_dm.ewm(alpha=alpha, min_periods=period, adjust=False).mean() / atr
    minus_di = 100 * minus_dm.ewm(alpha=alpha, min_periods=period, adjust=False).mean() / atr

    di_sum = (plus_di + minus_di).replace(0, np.nan)
    dx = 100 * (plus_di - minus_di).abs() / di_sum
    adx = dx.ewm(alpha=alpha, min_periods=1, adjust=False).mean()

    return {"adx": adx, "plus_di": plus_di, "minus_di": minus_di}


def calculate_bollinger(
    prices: pd.Series,
    period: int = 20,
    num_std: float = 2.0,
) -> dict[str, pd.Series]:
    """
    Calculate Bollinger Bands.

    Uses population standard deviation over the window.

    Returns:
        Dict with 'upper', 'middle', 'lower', 'bandwidth' (percent of middle)
        and 'percent_b' series. %B is 0.5 when the bands collapse.
    """
    middle = calculate_sma(prices, period)
    std = prices.rolling(window=period, min_periods=period).std(ddof=0)

    upper = middle + num_std * std
    lower = middle - num_std * std

    width = upper - lower
    bandwidth = width / middle.replace(0, np.nan) * 100
    percent_b = ((prices - lower) / width.replace(0, np.nan)).where(width != 0, 0.5)
    percent_b = percent_b.where(middle.notna())

    return {
        "upper": upper,
        "middle": middle,
        "lower": lower,
        "bandwidth": bandwidth,
        "percent_b": percent_b,
    }


def calculate_zscore(prices: pd.Series, period: int = 20) -> pd.Series:
    """
    Calculate rolling z-score of price against its mean.

    Returns:
        Z-score series; 0 where the window has no dispersion
    """
    mean = calculate_sma(prices, period)
    std = prices.rolling(window=period, min_periods=period).std(ddof=0)
    z = (prices - mean) / std.replace(0, np.nan)
    return z.where(std != 0, 0.0).where(mean.notna())


def calculate_keltner(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    ema_period: int = 20,
    atr_period: int = 10,
    multiplier: float = 2.0,
) -> dict[str, pd.Series]:
    """
    Calculate Keltner Channels (EMA +/- multiplier x ATR).

    Returns:
        Dict with 'upper', 'middle', 'lower' series
    """
    middle = calculate_ema(close, ema_period)
    atr = calculate_atr(high, low, close, atr_period)

    return {
        "upper": middle + multiplier * atr,
        "middle": middle,
        "lower": middle - multiplier * atr,
    }


def calculate_historical_volatility(prices: pd.Series, period: int = 20) -> float | None:
    """
    Calculate annualized historical volatility from log returns.

    Args:
        prices: Price series
        period: Number of most recent log returns to use

    Returns:
        Annualized volatility in percent (25.0 = 25%), or None if
        insufficient data
    """
    log_returns = np.log(prices / prices.shift(1)).dropna().tail(period)

    if len(log_returns) < 2:
        return None

    variance = float(log_returns.var(ddof=0))
    if math.isnan(variance):
        return None

    return math.sqrt(variance * 252) * 100


def range_position(close: pd.Series, high: pd.Series, low: pd.Series, period: int = 20) -> float | None:
    """
    Position of the last close inside the trailing high/low range.

    Returns:
        0.0 at the range low, 1.0 at the range high, 0.5 for a flat range,
        None if insufficient data
    """
    if len(close) < period:
        return None

    range_high = float(high.tail(period).max())
    range_low = float(low.tail(period).min())
    if range_high == range_low:
        return 0.5

    return (float(close.iloc[-1]) - range_low) / (range_high - range_low)


def last_value(series: pd.Series) -> float | None:
    """Last element as float, or None if missing/NaN."""
    if series.empty:
        return None
    value = series.iloc[-1]
    if pd.isna(value):
        return None
    return float(value)
