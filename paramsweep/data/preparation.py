"""
Price-series preparation and validation for sweeps.

Derives the decision and execution price arrays once from the bars so
every combination of a sweep reads the same read-only arrays.
Fail-fast approach: raises InputError on validation errors.
"""
import logging
from typing import Any, Iterable, Mapping, Union

import numpy as np
import pandas as pd

from ..indicators import technical as ta
from ..shared.defaults import DECISION_PRICE, EXECUTION_PRICE, PRICE_TYPES
from ..shared.errors import InputError
from ..shared.types import Bar, PriceSeries
from .loader import bars_to_frame

logger = logging.getLogger(__name__)

BarsInput = Union[pd.DataFrame, Iterable[Union[Bar, Mapping[str, Any]]]]


def _read_only(values: np.ndarray) -> np.ndarray:
    array = np.ascontiguousarray(values, dtype=np.float64)
    array.flags.writeable = False
    return array


def _timestamps(df: pd.DataFrame) -> np.ndarray:
    if isinstance(df.index, pd.DatetimeIndex):
        stamps = df.index.to_numpy()
    else:
        stamps = np.arange(len(df))
    stamps.flags.writeable = False
    return stamps


def prepare_price_series(
    bars: BarsInput,
    decision: str = DECISION_PRICE,
    execution: str = EXECUTION_PRICE,
) -> PriceSeries:
    """
    Precompute the price arrays used by strategies and the simulator.

    Args:
        bars: Bar frame (open, high, low, close, volume) or Bar records / dicts
        decision: Price blend fed to the strategy (ohlc4, hlc3, hl2, close)
        execution: Price at which trades execute (ohlc4, hlc3, hl2, close)

    Returns:
        PriceSeries with read-only float64 arrays of the bar count length

    Raises:
        InputError: If there are no bars, a price type is unknown, or prices
            contain NaN values
    """
    for label, price_type in (("decision", decision), ("execution", execution)):
        if price_type not in PRICE_TYPES:
            raise InputError(f"Unknown {label} price type '{price_type}'. Available: {list(PRICE_TYPES)}")

    df = bars if isinstance(bars, pd.DataFrame) else bars_to_frame(bars)
    if len(df) == 0:
        raise InputError("No bars provided")

    columns = {c: df[c].to_numpy(dtype=np.float64) for c in ("open", "high", "low", "close")}
    for name, values in columns.items():
        nan_count = int(np.isnan(values).sum())
        if nan_count:
            first = int(np.flatnonzero(np.isnan(values))[0])
            raise InputError(f"Column '{name}' has {nan_count} NaN values (first at bar {first})")

    blends = {
        "ohlc4": _read_only(ta.ohlc4(columns["open"], columns["high"], columns["low"], columns["close"])),
        "hlc3": _read_only(ta.hlc3(columns["high"], columns["low"], columns["close"])),
        "hl2": _read_only(ta.hl2(columns["high"], columns["low"])),
        "close": _read_only(columns["close"]),
    }

    logger.debug(f"Prepared {len(df)} bars (decision={decision}, execution={execution})")
    return PriceSeries(
        decision=blends[decision],
        execution=blends[execution],
        ohlc4=blends["ohlc4"],
        hlc3=blends["hlc3"],
        hl2=blends["hl2"],
        close=blends["close"],
        timestamps=_timestamps(df),
        decision_type=decision,
        execution_type=execution,
    )


def validate_price_series(prices: PriceSeries, bar_count: int) -> None:
    """
    Check that every PriceSeries array matches the bar count.

    Raises:
        InputError: On an empty dataset or any length mismatch
    """
    if bar_count == 0:
        raise InputError("Dataset is empty: no bars to backtest")
    arrays = {
        "decision": prices.decision,
        "execution": prices.execution,
        "ohlc4": prices.ohlc4,
        "hlc3": prices.hlc3,
        "hl2": prices.hl2,
        "close": prices.close,
    }
    if prices.timestamps is not None:
        arrays["timestamps"] = prices.timestamps
    for name, values in arrays.items():
        if len(values) != bar_count:
            raise InputError(
                f"PriceSeries '{name}' has {len(values)} values but the dataset has {bar_count} bars"
            )
