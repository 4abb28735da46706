"""
Signal generation module.

Wraps one strategy callable behind a validating contract. Strategies can
be the reference EMA differential strategy, a built-in example or a
restricted user script compiled by the script host.
"""
from .contract import SignalGenerator, validate_signals
from .strategy import (
    EmaDifferentialParams,
    ema_differential,
    volatility_percent,
    map_volatility_to_period,
    dynamic_ema,
)
from .examples import STRATEGIES, get_strategy, ma_crossover, rsi_reversion, price_momentum
from .script_host import (
    ScriptStrategy, compile_strategy, load_strategy_script, screen_source, discover_parameters,
)

__all__ = [
    'SignalGenerator',
    'validate_signals',
    'EmaDifferentialParams',
    'ema_differential',
    'volatility_percent',
    'map_volatility_to_period',
    'dynamic_ema',
    'STRATEGIES',
    'get_strategy',
    'ma_crossover',
    'rsi_reversion',
    'price_momentum',
    'ScriptStrategy',
    'compile_strategy',
    'load_strategy_script',
    'screen_source',
    'discover_parameters',
]
