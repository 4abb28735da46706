"""
Market-data boundary.

Loads OHLCV bars and precomputes the read-only price arrays a sweep
shares between all combinations.
"""
from .loader import DataLoader, load_bars, bars_to_frame
from .preparation import prepare_price_series, validate_price_series

__all__ = [
    'DataLoader',
    'load_bars',
    'bars_to_frame',
    'prepare_price_series',
    'validate_price_series',
]
