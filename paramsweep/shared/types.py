"""
Shared types for the backtesting engine.

This module consolidates the value types passed between the data,
signal, evaluation and sweep layers: bars, price series, parameter sets
and trade sides.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

import numpy as np


class TradeSide(Enum):
    """Side of an executed trade."""
    BUY = "buy"
    SELL = "sell"


# Signal values emitted by strategies
SIGNAL_SELL = -1
SIGNAL_HOLD = 0
SIGNAL_BUY = 1
SIGNAL_VALUES = (SIGNAL_SELL, SIGNAL_HOLD, SIGNAL_BUY)


@dataclass(frozen=True)
class Bar:
    """One OHLCV interval."""
    timestamp: Any
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass(frozen=True)
class PriceSeries:
    """
    Precomputed, index-aligned price arrays derived once from the bars.

    All arrays are float64, read-only and shared by every combination of
    a sweep. `decision` feeds the strategy, `execution` feeds the
    simulator.
    """
    decision: np.ndarray
    execution: np.ndarray
    ohlc4: np.ndarray
    hlc3: np.ndarray
    hl2: np.ndarray
    close: np.ndarray
    timestamps: Optional[np.ndarray] = None
    decision_type: str = "ohlc4"
    execution_type: str = "close"

    def __len__(self) -> int:
        return len(self.execution)


class ParameterSet(Mapping):
    """
    Immutable mapping of parameter name to value for one simulation.

    Hashable and picklable so it can key caches and cross process
    boundaries. Iteration follows insertion order.
    """

    __slots__ = ("_values", "_hash")

    def __init__(self, values: Optional[Mapping[str, Any]] = None, **kwargs):
        data: Dict[str, Any] = dict(values or {})
        data.update(kwargs)
        object.__setattr__(self, "_values", data)
        object.__setattr__(self, "_hash", None)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __hash__(self) -> int:
        if self._hash is None:
            object.__setattr__(self, "_hash", hash(tuple(self._values.items())))
        return self._hash

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            return dict(self._values) == dict(other)
        return NotImplemented

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("ParameterSet is immutable")

    def __reduce__(self):
        return (ParameterSet, (dict(self._values),))

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self._values.items())
        return f"ParameterSet({inner})"

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def get_int(self, key: str, default: int) -> int:
        return int(self._values.get(key, default))

    def get_float(self, key: str, default: float) -> float:
        return float(self._values.get(key, default))


# Ordered mapping of parameter name to candidate values
ParameterSpace = Mapping[str, Tuple[Any, ...]]
