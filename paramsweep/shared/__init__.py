"""
Shared types, defaults and errors for the backtesting engine.

This module provides:
- Bar, PriceSeries and ParameterSet value types
- Centralized default values for strategy and simulation parameters
- The engine's error taxonomy
"""
from .types import (
    Bar, PriceSeries, ParameterSet, ParameterSpace, TradeSide,
    SIGNAL_SELL, SIGNAL_HOLD, SIGNAL_BUY, SIGNAL_VALUES,
)
from .defaults import (
    EMA_FLOOR, EMA_CEILING, VOL_FLOOR, VOL_CEILING, VOLATILITY_WINDOW,
    SMOOTH_LENGTH, VOLT_SCALE, FORCE_BUY_THRESHOLD,
    POSITION_SIZE, FEE_RATE, STARTING_DENOMINATION, STARTING_AMOUNT,
    BATCH_SIZE, MAX_WORKERS, PARAMETER_CATALOG,
)
from .errors import (
    BacktestError, InputError, ConfigError,
    ScriptValidationError, StrategyRuntimeError, describe_error,
)

__all__ = [
    'Bar', 'PriceSeries', 'ParameterSet', 'ParameterSpace', 'TradeSide',
    'SIGNAL_SELL', 'SIGNAL_HOLD', 'SIGNAL_BUY', 'SIGNAL_VALUES',
    'EMA_FLOOR', 'EMA_CEILING', 'VOL_FLOOR', 'VOL_CEILING', 'VOLATILITY_WINDOW',
    'SMOOTH_LENGTH', 'VOLT_SCALE', 'FORCE_BUY_THRESHOLD',
    'POSITION_SIZE', 'FEE_RATE', 'STARTING_DENOMINATION', 'STARTING_AMOUNT',
    'BATCH_SIZE', 'MAX_WORKERS', 'PARAMETER_CATALOG',
    'BacktestError', 'InputError', 'ConfigError',
    'ScriptValidationError', 'StrategyRuntimeError', 'describe_error',
]
