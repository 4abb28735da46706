"""
Technical indicators for strategy scripts and the reference strategy.

Every function is pure and stateless: it takes numeric sequences and
returns numpy float64 arrays of the same length as its input. Entries
before an indicator's warm-up point are NaN (undefined), never zero.
The statistics helpers (avg, sum, stdev, variance, correlation) return a
single float instead when called without a period.

This module is handed to strategies as the `ta` argument, so strategy
code calls e.g. `ta.ema(prices, 20)` or `ta.rsi(prices, 14)`.
"""
import math
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

ArrayLike = Union[Sequence[float], np.ndarray, pd.Series]


def _as_array(values: ArrayLike) -> np.ndarray:
    """Convert input to a float64 numpy array (NaN for None)."""
    if isinstance(values, pd.Series):
        return values.to_numpy(dtype=np.float64, na_value=np.nan)
    return np.asarray(
        [np.nan if v is None else v for v in values] if isinstance(values, list) else values,
        dtype=np.float64,
    )


def _check_period(period: Any, name: str = "period") -> int:
    """Validate an indicator period (positive integer, int-valued floats allowed)."""
    if isinstance(period, bool):
        raise ValueError(f"{name} must be a positive integer, got {period!r}")
    try:
        as_int = int(period)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a positive integer, got {period!r}")
    if as_int != period or as_int < 1:
        raise ValueError(f"{name} must be a positive integer, got {period!r}")
    return as_int


def _series(values: np.ndarray) -> pd.Series:
    return pd.Series(values, dtype=np.float64)


# ---------------------------------------------------------------------------
# Moving averages
# ---------------------------------------------------------------------------

def sma(values: ArrayLike, period: int) -> np.ndarray:
    """Simple moving average; NaN until `period` samples are available."""
    period = _check_period(period)
    x = _as_array(values)
    return _series(x).rolling(window=period, min_periods=period).mean().to_numpy()


def ema(values: ArrayLike, period: int) -> np.ndarray:
    """
    Exponential moving average seeded with a simple average.

    Leading NaNs are skipped. The first defined output sits at the
    `period`-th defined sample and equals the mean of those samples;
    after that each value is (x - prev) * 2 / (period + 1) + prev.
    """
    period = _check_period(period)
    x = _as_array(values)
    n = len(x)
    result = np.full(n, np.nan)

    defined = np.flatnonzero(~np.isnan(x))
    if len(defined) == 0:
        return result
    start = int(defined[0])
    seed_index = start + period - 1
    if seed_index >= n:
        return result

    multiplier = 2.0 / (period + 1)
    prev = float(np.mean(x[start:seed_index + 1]))
    result[seed_index] = prev
    tail = x[seed_index + 1:].tolist()
    for offset, value in enumerate(tail, start=seed_index + 1):
        prev = (value - prev) * multiplier + prev
        result[offset] = prev
    return result


def compact_ema(values: ArrayLike, period: int) -> np.ndarray:
    """
    EMA over the defined entries only, scattered back to full length.

    Undefined entries stay undefined and do not break the recursion.
    """
    x = _as_array(values)
    result = np.full(len(x), np.nan)
    defined = ~np.isnan(x)
    result[defined] = ema(x[defined], period)
    return result


def smooth(values: ArrayLike, length: int = 3) -> np.ndarray:
    """Smooth a series with an EMA of the given length."""
    return ema(values, length)


def wma(values: ArrayLike, period: int) -> np.ndarray:
    """Linearly weighted moving average (newest sample weighted `period`)."""
    period = _check_period(period)
    x = _as_array(values)
    weights = np.arange(1, period + 1, dtype=np.float64)
    weight_sum = weights.sum()
    return _series(x).rolling(window=period, min_periods=period).apply(
        lambda window: float(np.dot(window, weights) / weight_sum), raw=True
    ).to_numpy()


def vwma(values: ArrayLike, volumes: ArrayLike, period: int) -> np.ndarray:
    """Volume-weighted moving average; falls back to price when window volume is zero."""
    period = _check_period(period)
    x = _as_array(values)
    v = _as_array(volumes)
    weighted = _series(x * v).rolling(window=period, min_periods=period).sum().to_numpy()
    volume_sum = _series(v).rolling(window=period, min_periods=period).sum().to_numpy()
    with np.errstate(divide="ignore", invalid="ignore"):
        result = np.where(volume_sum > 0, weighted / volume_sum, x)
    result[np.isnan(volume_sum)] = np.nan
    return result


def swma(values: ArrayLike) -> np.ndarray:
    """Symmetrically weighted moving average over 4 bars (weights 1, 2, 2, 1)."""
    x = _as_array(values)
    weights = np.array([1.0, 2.0, 2.0, 1.0])
    return _series(x).rolling(window=4, min_periods=4).apply(
        lambda window: float(np.dot(window, weights) / 6.0), raw=True
    ).to_numpy()


def alma(values: ArrayLike, period: int, offset: float = 0.9, sigma: float = 6.0) -> np.ndarray:
    """
    Arnaud Legoux moving average.

    Gaussian weights centred at `offset` * (period - 1) counted from the
    oldest bar of the window, so offsets near 1 favour recent bars.
    """
    period = _check_period(period)
    if sigma <= 0:
        raise ValueError(f"sigma must be > 0, got {sigma!r}")
    x = _as_array(values)
    m = offset * (period - 1)
    s = period / sigma
    weights = np.exp(-((np.arange(period) - m) ** 2) / (2 * s * s))
    weights /= weights.sum()
    return _series(x).rolling(window=period, min_periods=period).apply(
        lambda window: float(np.dot(window, weights)), raw=True
    ).to_numpy()


def hma(values: ArrayLike, period: int) -> np.ndarray:
    """Hull moving average: WMA(2 * WMA(n/2) - WMA(n), sqrt(n))."""
    period = _check_period(period)
    half = max(period // 2, 1)
    root = max(int(math.sqrt(period)), 1)
    diff = 2.0 * wma(values, half) - wma(values, period)
    return wma(diff, root)


# ---------------------------------------------------------------------------
# Oscillators
# ---------------------------------------------------------------------------

def rsi(prices: ArrayLike, period: int = 14) -> np.ndarray:
    """
    Relative Strength Index.

    RSI = 100 - (100 / (1 + RS)), RS = EMA(gains) / EMA(losses).
    A window without losses reads 100.
    """
    period = _check_period(period)
    x = _as_array(prices)
    delta = np.diff(x, prepend=np.nan)
    gains = np.where(delta > 0, delta, 0.0)
    losses = np.where(delta < 0, -delta, 0.0)
    gains[0] = np.nan
    losses[0] = np.nan

    avg_gain = ema(gains, period)
    avg_loss = ema(losses, period)
    with np.errstate(divide="ignore", invalid="ignore"):
        result = np.where(avg_loss == 0, 100.0, 100.0 - 100.0 / (1.0 + avg_gain / avg_loss))
    result[np.isnan(avg_loss)] = np.nan
    return result


def stoch(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    k_period: int = 14,
    d_period: int = 3,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Stochastic oscillator.

    Returns:
        Tuple of (%K, %D) where %D is the SMA of %K
    """
    k_period = _check_period(k_period, "k_period")
    d_period = _check_period(d_period, "d_period")
    c = _as_array(closes)
    highest_high = highest(highs, k_period)
    lowest_low = lowest(lows, k_period)
    with np.errstate(divide="ignore", invalid="ignore"):
        k = (c - lowest_low) / (highest_high - lowest_low) * 100.0
    d = sma(k, d_period)
    return k, d


def stochrsi(
    prices: ArrayLike,
    period: int = 14,
    k_period: int = 3,
    d_period: int = 3,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Stochastic RSI: where RSI sits within its own `period`-bar range.

    A flat RSI range reads 0.

    Returns:
        Tuple of (stoch_rsi, %K, %D) where %K = SMA(stoch_rsi) and %D = SMA(%K)
    """
    period = _check_period(period)
    k_period = _check_period(k_period, "k_period")
    d_period = _check_period(d_period, "d_period")
    r = rsi(prices, period)
    low = lowest(r, period)
    high = highest(r, period)
    with np.errstate(divide="ignore", invalid="ignore"):
        stoch_rsi = np.where(high == low, 0.0, (r - low) / (high - low) * 100.0)
    stoch_rsi[np.isnan(low)] = np.nan
    k = sma(stoch_rsi, k_period)
    d = sma(k, d_period)
    return stoch_rsi, k, d


def cci(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 20) -> np.ndarray:
    """Commodity Channel Index over the typical price."""
    period = _check_period(period)
    tp = hlc3(highs, lows, closes)
    tp_sma = sma(tp, period)
    mean_dev = _series(tp).rolling(window=period, min_periods=period).apply(
        lambda window: float(np.mean(np.abs(window - window.mean()))), raw=True
    ).to_numpy()
    with np.errstate(divide="ignore", invalid="ignore"):
        result = np.where(mean_dev == 0, 0.0, (tp - tp_sma) / (0.015 * mean_dev))
    result[np.isnan(tp_sma)] = np.nan
    return result


def mfi(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    volumes: ArrayLike,
    period: int = 14,
) -> np.ndarray:
    """Money Flow Index; defined from index `period` onwards."""
    period = _check_period(period)
    tp = hlc3(highs, lows, closes)
    money_flow = tp * _as_array(volumes)
    up = np.diff(tp, prepend=np.nan) > 0

    positive = np.where(up, money_flow, 0.0)
    negative = np.where(up, 0.0, money_flow)
    positive[0] = np.nan
    negative[0] = np.nan
    positive_sum = _series(positive).rolling(window=period, min_periods=period).sum().to_numpy()
    negative_sum = _series(negative).rolling(window=period, min_periods=period).sum().to_numpy()

    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = positive_sum / negative_sum
        result = np.where(negative_sum == 0, 100.0, 100.0 - 100.0 / (1.0 + ratio))
    result[np.isnan(negative_sum)] = np.nan
    return result


def williams_r(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 14) -> np.ndarray:
    """Williams %R in the range [-100, 0]."""
    period = _check_period(period)
    c = _as_array(closes)
    highest_high = highest(highs, period)
    lowest_low = lowest(lows, period)
    with np.errstate(divide="ignore", invalid="ignore"):
        return (highest_high - c) / (highest_high - lowest_low) * -100.0


# ---------------------------------------------------------------------------
# Trend
# ---------------------------------------------------------------------------

def macd(
    prices: ArrayLike,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Calculate MACD (Moving Average Convergence Divergence).

    Returns:
        Tuple of (MACD line, Signal line, Histogram)
    """
    x = _as_array(prices)
    macd_line = ema(x, fast_period) - ema(x, slow_period)
    signal_line = ema(macd_line, signal_period)
    histogram = macd_line - signal_line
    return macd_line, signal_line, histogram


def true_range(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike) -> np.ndarray:
    """True range; undefined at the first bar (no previous close)."""
    h = _as_array(highs)
    l = _as_array(lows)
    prev_close = np.roll(_as_array(closes), 1)
    result = np.maximum.reduce([h - l, np.abs(h - prev_close), np.abs(l - prev_close)])
    if len(result):
        result[0] = np.nan
    return result


def atr(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 14) -> np.ndarray:
    """Average True Range (EMA of the true range)."""
    return ema(true_range(highs, lows, closes), period)


def adx(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    period: int = 14,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Average Directional Index.

    Returns:
        Tuple of (ADX, +DI, -DI)
    """
    period = _check_period(period)
    h = _as_array(highs)
    l = _as_array(lows)
    up_move = np.diff(h, prepend=np.nan)
    down_move = -np.diff(l, prepend=np.nan)

    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)
    if len(h):
        plus_dm[0] = np.nan
        minus_dm[0] = np.nan

    average_range = atr(highs, lows, closes, period)
    with np.errstate(divide="ignore", invalid="ignore"):
        plus_di = ema(plus_dm, period) / average_range * 100.0
        minus_di = ema(minus_dm, period) / average_range * 100.0
        dx = np.abs(plus_di - minus_di) / (plus_di + minus_di) * 100.0
    dx[~np.isfinite(dx)] = np.nan
    return compact_ema(dx, period), plus_di, minus_di


def psar(
    highs: ArrayLike,
    lows: ArrayLike,
    step: float = 0.02,
    max_step: float = 0.2,
) -> np.ndarray:
    """Parabolic SAR starting in an uptrend at the first low."""
    h = _as_array(highs).tolist()
    l = _as_array(lows).tolist()
    n = len(h)
    result = np.full(n, np.nan)
    if n == 0:
        return result

    trend = 1
    sar = l[0]
    extreme = h[0]
    factor = step
    result[0] = sar
    for i in range(1, n):
        sar = sar + factor * (extreme - sar)
        if trend == 1:
            if h[i] > extreme:
                extreme = h[i]
                factor = min(factor + step, max_step)
            if l[i] < sar:
                trend = -1
                sar = extreme
                extreme = l[i]
                factor = step
        else:
            if l[i] < extreme:
                extreme = l[i]
                factor = min(factor + step, max_step)
            if h[i] > sar:
                trend = 1
                sar = extreme
                extreme = h[i]
                factor = step
        result[i] = sar
    return result


# ---------------------------------------------------------------------------
# Volatility
# ---------------------------------------------------------------------------

def rolling_std(values: ArrayLike, window: int = 20) -> np.ndarray:
    """Population standard deviation over a rolling window."""
    window = _check_period(window, "window")
    x = _as_array(values)
    return _series(x).rolling(window=window, min_periods=window).std(ddof=0).to_numpy()


def bollinger_bands(
    prices: ArrayLike,
    period: int = 20,
    multiplier: float = 2.0,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Bollinger Bands.

    Returns:
        Tuple of (upper, middle, lower)
    """
    middle = sma(prices, period)
    deviation = rolling_std(prices, period) * multiplier
    return middle + deviation, middle, middle - deviation


def keltner_channels(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    period: int = 20,
    multiplier: float = 2.0,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Keltner Channels (EMA of close +- ATR).

    Returns:
        Tuple of (upper, middle, lower)
    """
    middle = ema(closes, period)
    band = atr(highs, lows, closes, period) * multiplier
    return middle + band, middle, middle - band


# ---------------------------------------------------------------------------
# Volume
# ---------------------------------------------------------------------------

def obv(closes: ArrayLike, volumes: ArrayLike) -> np.ndarray:
    """On-Balance Volume starting at the first bar's volume."""
    c = _as_array(closes)
    v = _as_array(volumes)
    if len(c) == 0:
        return np.array([], dtype=np.float64)
    direction = np.sign(np.diff(c))
    steps = np.concatenate([[v[0]], direction * v[1:]])
    return np.cumsum(steps)


def accumulation_distribution(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    volumes: ArrayLike,
) -> np.ndarray:
    """Accumulation/Distribution line; bars with high == low contribute nothing."""
    h = _as_array(highs)
    l = _as_array(lows)
    c = _as_array(closes)
    spread = h - l
    with np.errstate(divide="ignore", invalid="ignore"):
        clv = np.where(spread == 0, 0.0, ((c - l) - (h - c)) / spread)
    return np.cumsum(clv * _as_array(volumes))


# ---------------------------------------------------------------------------
# Momentum
# ---------------------------------------------------------------------------

def change(values: ArrayLike, period: int = 1) -> np.ndarray:
    """Difference to the value `period` bars ago."""
    period = _check_period(period)
    x = _as_array(values)
    result = np.full(len(x), np.nan)
    result[period:] = x[period:] - x[:-period]
    return result


def mom(prices: ArrayLike, period: int = 10) -> np.ndarray:
    """Momentum: price minus price `period` bars ago."""
    return change(prices, period)


def roc(prices: ArrayLike, period: int = 10) -> np.ndarray:
    """Rate of change in percent."""
    period = _check_period(period)
    x = _as_array(prices)
    result = np.full(len(x), np.nan)
    with np.errstate(divide="ignore", invalid="ignore"):
        result[period:] = (x[period:] - x[:-period]) / x[:-period] * 100.0
    return result


# ---------------------------------------------------------------------------
# Statistics
#
# avg, sum, stdev, variance and correlation reduce the whole series to a
# float over its defined values when called without a period, and are
# rolling (same-length arrays) with one.
# ---------------------------------------------------------------------------

def _defined(x: np.ndarray) -> np.ndarray:
    return x[~np.isnan(x)]


def avg(values: ArrayLike, period: Optional[int] = None) -> Union[float, np.ndarray]:
    """Mean of the series, or its rolling mean over `period` bars."""
    if period is not None:
        return sma(values, period)
    x = _defined(_as_array(values))
    return float(np.mean(x)) if len(x) else math.nan


def sum(values: ArrayLike, period: Optional[int] = None) -> Union[float, np.ndarray]:
    """Sum of the series, or its rolling sum over `period` bars."""
    if period is not None:
        period = _check_period(period)
        return _series(_as_array(values)).rolling(window=period, min_periods=period).sum().to_numpy()
    return float(np.sum(_defined(_as_array(values))))


def variance(values: ArrayLike, period: Optional[int] = None) -> Union[float, np.ndarray]:
    """Population variance of the series, or rolling over `period` bars."""
    if period is not None:
        period = _check_period(period)
        return _series(_as_array(values)).rolling(window=period, min_periods=period).var(ddof=0).to_numpy()
    x = _defined(_as_array(values))
    return float(np.var(x)) if len(x) else math.nan


def stdev(values: ArrayLike, period: Optional[int] = None) -> Union[float, np.ndarray]:
    """Population standard deviation of the series, or rolling over `period` bars."""
    if period is not None:
        return rolling_std(values, period)
    x = _defined(_as_array(values))
    return float(np.std(x)) if len(x) else math.nan


def correlation(
    series1: ArrayLike,
    series2: ArrayLike,
    period: Optional[int] = None,
) -> Union[float, np.ndarray]:
    """
    Pearson correlation of two equally long series.

    Without a period, bars where either side is undefined are skipped and a
    series without variance correlates 0.0. With a period, the rolling
    correlation (NaN where a window has no variance).
    """
    a = _as_array(series1)
    b = _as_array(series2)
    if len(a) != len(b):
        raise ValueError(f"correlation needs equally long series, got {len(a)} and {len(b)}")
    if period is not None:
        period = _check_period(period)
        return _series(a).rolling(window=period, min_periods=period).corr(_series(b)).to_numpy()

    both = ~np.isnan(a) & ~np.isnan(b)
    da = a[both] - a[both].mean() if both.any() else a[both]
    db = b[both] - b[both].mean() if both.any() else b[both]
    denominator = math.sqrt(float(np.dot(da, da)) * float(np.dot(db, db)))
    return 0.0 if denominator == 0 else float(np.dot(da, db)) / denominator


def dev(values: ArrayLike, period: int) -> np.ndarray:
    """Absolute deviation of each value from its `period`-bar SMA."""
    x = _as_array(values)
    return np.abs(x - sma(x, period))


def percentrank(values: ArrayLike, period: int) -> np.ndarray:
    """
    Percent of the previous `period` - 1 values below the current one.

    The current value is ranked within its `period`-bar window, so the
    window's maximum reads 100 and its minimum 0.
    """
    period = _check_period(period)
    if period < 2:
        raise ValueError(f"percentrank period must be >= 2, got {period}")
    return _series(_as_array(values)).rolling(window=period, min_periods=period).apply(
        lambda window: float(np.count_nonzero(window < window[-1]) / (period - 1) * 100.0), raw=True
    ).to_numpy()


# ---------------------------------------------------------------------------
# Utilities
# ---------------------------------------------------------------------------

def crossover(series1: ArrayLike, series2: ArrayLike) -> np.ndarray:
    """True where series1 crosses above series2."""
    a = _as_array(series1)
    b = _as_array(series2)
    n = min(len(a), len(b))
    a, b = a[:n], b[:n]
    result = np.zeros(n, dtype=bool)
    result[1:] = (a[1:] > b[1:]) & (a[:-1] <= b[:-1])
    return result


def crossunder(series1: ArrayLike, series2: ArrayLike) -> np.ndarray:
    """True where series1 crosses below series2."""
    a = _as_array(series1)
    b = _as_array(series2)
    n = min(len(a), len(b))
    a, b = a[:n], b[:n]
    result = np.zeros(n, dtype=bool)
    result[1:] = (a[1:] < b[1:]) & (a[:-1] >= b[:-1])
    return result


def highest(values: ArrayLike, period: int) -> np.ndarray:
    """Rolling maximum."""
    period = _check_period(period)
    return _series(_as_array(values)).rolling(window=period, min_periods=period).max().to_numpy()


def lowest(values: ArrayLike, period: int) -> np.ndarray:
    """Rolling minimum."""
    period = _check_period(period)
    return _series(_as_array(values)).rolling(window=period, min_periods=period).min().to_numpy()


def rising(values: ArrayLike, period: int = 1) -> np.ndarray:
    return change(values, period) > 0


def falling(values: ArrayLike, period: int = 1) -> np.ndarray:
    return change(values, period) < 0


def na(value: Any) -> Union[bool, np.ndarray]:
    """True for None/NaN (element-wise for sequences)."""
    if value is None:
        return True
    if np.ndim(value) == 0:
        try:
            return math.isnan(value)
        except TypeError:
            return False
    return np.isnan(_as_array(value))


def nz(value: Any, replacement: float = 0.0) -> Any:
    """Replace None/NaN with `replacement` (element-wise for sequences)."""
    if value is None:
        return replacement
    if np.ndim(value) == 0:
        return replacement if na(value) else value
    x = _as_array(value)
    return np.where(np.isnan(x), replacement, x)


def fixnan(values: ArrayLike, replacement: float = 0.0) -> np.ndarray:
    """Replace every undefined entry with `replacement`."""
    return nz(_as_array(values), replacement)


def fill_forward(values: ArrayLike) -> np.ndarray:
    """Carry the last defined value forward over undefined entries."""
    return _series(_as_array(values)).ffill().to_numpy()


# ---------------------------------------------------------------------------
# Price blends
# ---------------------------------------------------------------------------

def ohlc4(opens: ArrayLike, highs: ArrayLike, lows: ArrayLike, closes: ArrayLike) -> np.ndarray:
    return (_as_array(opens) + _as_array(highs) + _as_array(lows) + _as_array(closes)) / 4.0


def hlc3(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike) -> np.ndarray:
    return (_as_array(highs) + _as_array(lows) + _as_array(closes)) / 3.0


def hl2(highs: ArrayLike, lows: ArrayLike) -> np.ndarray:
    return (_as_array(highs) + _as_array(lows)) / 2.0
