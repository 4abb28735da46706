"""
Indicator calculation module.

Pure functions over numeric sequences (moving averages, oscillators,
trend, volatility, volume and momentum indicators, statistics).
Strategies receive the `technical` module itself as their `ta` argument.
"""
from . import technical
from .technical import (
    sma, ema, compact_ema, wma, vwma, swma, alma, hma, smooth,
    rsi, stoch, stochrsi, cci, mfi, williams_r,
    macd, adx, psar,
    true_range, atr, bollinger_bands, keltner_channels, rolling_std,
    obv, accumulation_distribution,
    mom, roc, change,
    avg, sum, stdev, variance, correlation, dev, percentrank,
    crossover, crossunder, highest, lowest, rising, falling,
    na, nz, fixnan, fill_forward,
    ohlc4, hlc3, hl2,
)

__all__ = [
    'technical',
    'sma', 'ema', 'compact_ema', 'wma', 'vwma', 'swma', 'alma', 'hma', 'smooth',
    'rsi', 'stoch', 'stochrsi', 'cci', 'mfi', 'williams_r',
    'macd', 'adx', 'psar',
    'true_range', 'atr', 'bollinger_bands', 'keltner_channels', 'rolling_std',
    'obv', 'accumulation_distribution',
    'mom', 'roc', 'change',
    'avg', 'sum', 'stdev', 'variance', 'correlation', 'dev', 'percentrank',
    'crossover', 'crossunder', 'highest', 'lowest', 'rising', 'falling',
    'na', 'nz', 'fixnan', 'fill_forward',
    'ohlc4', 'hlc3', 'hl2',
]
