"""
Centralized default values for strategy, simulation and sweep parameters.

This is the SINGLE SOURCE OF TRUTH for parameter defaults.
All modules should import from here to ensure consistency.

Strategy defaults match the volatility-adaptive EMA differential
reference strategy. Ranges in PARAMETER_CATALOG are the bounds a
ParameterSpace is validated against when it is loaded from YAML.
"""

# EMA differential: dynamic EMA period bounds
EMA_FLOOR = 10  # Shortest EMA period (used in high volatility)
EMA_CEILING = 50  # Longest EMA period (used in low volatility)

# EMA differential: volatility thresholds (percent of price)
VOL_FLOOR = 0.5
VOL_CEILING = 2.0
VOLATILITY_WINDOW = 20  # Rolling std window

# EMA differential: signal shaping
SMOOTH_LENGTH = 3
VOLT_SCALE = 1.0
FORCE_BUY_THRESHOLD = -5.0  # Smoothed differential at or below this forces a buy

# Example strategies
FAST_MA = 10
SLOW_MA = 30
RSI_PERIOD = 14
RSI_OVERBOUGHT = 70
RSI_OVERSOLD = 30

# Portfolio simulation
POSITION_SIZE = 1.0  # Fraction of the available side traded per signal
FEE_RATE = 0.001  # 0.1% fees + slippage per trade
STARTING_DENOMINATION = "quote"  # "quote" or "coin"
STARTING_AMOUNT = 1000.0
MAX_FEE_RATE = 0.1

# Price series selection
DECISION_PRICE = "ohlc4"
EXECUTION_PRICE = "close"
PRICE_TYPES = ("ohlc4", "hlc3", "hl2", "close")

# Sweep scheduling
BATCH_SIZE = 50
MAX_WORKERS = 1
MAX_COMBINATIONS = 50_000  # Larger sweeps are rejected (every result is retained)
WARN_COMBINATIONS = 10_000  # Larger sweeps log a warning

# Error result sentinels (neutral; the error field is authoritative)
ERROR_FINAL_VALUE = 0.0
ERROR_TOTAL_RETURN = 0.0

# Known parameters: default value, valid range and max number of sweep values.
# Unknown (custom script) parameters are accepted without range checks.
PARAMETER_CATALOG = {
    "ema_floor": {
        "label": "EMA Floor", "category": "EMA", "default": EMA_FLOOR,
        "min": 1, "max": 200, "max_count": 10,
        "description": "Shortest EMA periods to test",
    },
    "ema_ceiling": {
        "label": "EMA Ceiling", "category": "EMA", "default": EMA_CEILING,
        "min": 1, "max": 200, "max_count": 10,
        "description": "Longest EMA periods to test",
    },
    "vol_floor": {
        "label": "Volatility Floor", "category": "Volatility", "default": VOL_FLOOR,
        "min": 0, "max": 20, "max_count": 10,
        "description": "Low volatility threshold values (% of price)",
    },
    "vol_ceiling": {
        "label": "Volatility Ceiling", "category": "Volatility", "default": VOL_CEILING,
        "min": 0, "max": 20, "max_count": 10,
        "description": "High volatility threshold values (% of price)",
    },
    "volatility_window": {
        "label": "Volatility Window", "category": "Technical", "default": VOLATILITY_WINDOW,
        "min": 5, "max": 100, "max_count": 5,
        "description": "Rolling window for volatility calculation",
    },
    "smooth_length": {
        "label": "Smooth Length", "category": "Signal", "default": SMOOTH_LENGTH,
        "min": 1, "max": 20, "max_count": 5,
        "description": "Signal smoothing periods",
    },
    "force_buy_threshold": {
        "label": "Force Buy Threshold", "category": "Signal", "default": FORCE_BUY_THRESHOLD,
        "min": -100, "max": 0, "max_count": 10,
        "description": "Extreme negative differential levels that force a buy",
    },
    "volt_scale": {
        "label": "Volatility Scale", "category": "Signal", "default": VOLT_SCALE,
        "min": 0.1, "max": 5.0, "max_count": 5,
        "description": "Differential scaling factor",
    },
    "position_size": {
        "label": "Position Size", "category": "Risk", "default": POSITION_SIZE,
        "min": 0.1, "max": 1.0, "max_count": 5,
        "description": "Fraction of the available balance traded per signal",
    },
    "fee_rate": {
        "label": "Fees + Slippage", "category": "Risk", "default": FEE_RATE,
        "min": 0, "max": MAX_FEE_RATE, "max_count": 5,
        "description": "Combined fee and slippage rate (0.001 = 0.1%)",
    },
    "fast_ma": {
        "label": "Fast MA Period", "category": "MA", "default": FAST_MA,
        "min": 1, "max": 50, "max_count": 10,
        "description": "Fast moving average periods",
    },
    "slow_ma": {
        "label": "Slow MA Period", "category": "MA", "default": SLOW_MA,
        "min": 1, "max": 200, "max_count": 10,
        "description": "Slow moving average periods",
    },
    "rsi_period": {
        "label": "RSI Period", "category": "Oscillators", "default": RSI_PERIOD,
        "min": 2, "max": 100, "max_count": 10,
        "description": "RSI calculation periods",
    },
    "rsi_overbought": {
        "label": "RSI Overbought", "category": "Oscillators", "default": RSI_OVERBOUGHT,
        "min": 50, "max": 95, "max_count": 10,
        "description": "RSI overbought threshold levels",
    },
    "rsi_oversold": {
        "label": "RSI Oversold", "category": "Oscillators", "default": RSI_OVERSOLD,
        "min": 5, "max": 50, "max_count": 10,
        "description": "RSI oversold threshold levels",
    },
}
