"""
Built-in example strategies and the strategy registry.

Each strategy follows the signal contract:
strategy(signal_prices, execution_prices, params, ta) -> int8 signals.
"""
from typing import Callable, Dict

import numpy as np

from ..indicators import technical
from ..shared.defaults import FAST_MA, SLOW_MA, RSI_PERIOD, RSI_OVERBOUGHT, RSI_OVERSOLD
from ..shared.errors import ConfigError
from .strategy import ema_differential

# Minimum move (fraction) for a price momentum signal
MOMENTUM_THRESHOLD = 0.02


def ma_crossover(signal_prices, execution_prices, params, ta=technical) -> np.ndarray:
    """Buy when the fast EMA crosses above the slow EMA, sell on the cross below."""
    fast_period = int(params.get("fast_ma", FAST_MA))
    slow_period = int(params.get("slow_ma", SLOW_MA))
    if fast_period >= slow_period:
        raise ValueError(f"fast_ma ({fast_period}) must be less than slow_ma ({slow_period})")

    fast = ta.ema(signal_prices, fast_period)
    slow = ta.ema(signal_prices, slow_period)

    signals = np.zeros(len(signal_prices), dtype=np.int8)
    signals[ta.crossover(fast, slow)] = 1
    signals[ta.crossunder(fast, slow)] = -1
    return signals


def rsi_reversion(signal_prices, execution_prices, params, ta=technical) -> np.ndarray:
    """Buy when RSI is oversold, sell when it is overbought."""
    period = int(params.get("rsi_period", RSI_PERIOD))
    overbought = float(params.get("rsi_overbought", RSI_OVERBOUGHT))
    oversold = float(params.get("rsi_oversold", RSI_OVERSOLD))
    if oversold >= overbought:
        raise ValueError(f"rsi_oversold ({oversold}) must be less than rsi_overbought ({overbought})")

    values = ta.rsi(signal_prices, period)
    signals = np.zeros(len(signal_prices), dtype=np.int8)
    with np.errstate(invalid="ignore"):
        signals[values < oversold] = 1
        signals[values > overbought] = -1
    return signals


def price_momentum(signal_prices, execution_prices, params, ta=technical) -> np.ndarray:
    """Buy after a 2% rise from the previous bar, sell after a 2% drop."""
    prices = np.asarray(signal_prices, dtype=np.float64)
    signals = np.zeros(len(prices), dtype=np.int8)
    if len(prices) < 2:
        return signals

    with np.errstate(divide="ignore", invalid="ignore"):
        move = ta.change(prices, 1) / np.roll(prices, 1)
    signals[move > MOMENTUM_THRESHOLD] = 1
    signals[move < -MOMENTUM_THRESHOLD] = -1
    return signals


STRATEGIES: Dict[str, Callable] = {
    "ema_differential": ema_differential,
    "ma_crossover": ma_crossover,
    "rsi_reversion": rsi_reversion,
    "price_momentum": price_momentum,
}


def get_strategy(name: str) -> Callable:
    """Look up a built-in strategy by name."""
    if name not in STRATEGIES:
        raise ConfigError(f"Unknown strategy '{name}'. Available: {sorted(STRATEGIES)}")
    return STRATEGIES[name]
