"""
Signal generation contract.

A strategy is any callable

    strategy(signal_prices, execution_prices, params, ta) -> sequence

returning one signal per bar: 1 (buy), -1 (sell) or 0 (hold). The
SignalGenerator invokes it once per ParameterSet and validates the whole
output before anything reaches the simulator.
"""
from typing import Any, Callable, Mapping, Optional

import numpy as np
import pandas as pd

from ..indicators import technical
from ..shared.errors import ScriptValidationError, StrategyRuntimeError, describe_error
from ..shared.types import ParameterSet, PriceSeries, SIGNAL_VALUES


StrategyFn = Callable[[np.ndarray, np.ndarray, Mapping[str, Any], Any], Any]


def _invalid_value_error(index: int, value: Any) -> ScriptValidationError:
    return ScriptValidationError(
        f"Invalid signal {value!r} at index {index}: signals must be -1, 0 or 1",
        index=index,
        value=value,
    )


def _is_valid_signal(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return False
    if isinstance(value, (int, np.integer, float, np.floating)):
        return value in SIGNAL_VALUES
    return False


def validate_signals(output: Any, expected_length: int) -> np.ndarray:
    """
    Validate a strategy's output and convert it to an int8 signal array.

    Args:
        output: Sequence returned by the strategy
        expected_length: Number of bars

    Returns:
        numpy int8 array with values in {-1, 0, 1}

    Raises:
        ScriptValidationError: On a non-sequence, a wrong length, or the
            first element that is not exactly -1, 0 or 1
    """
    if isinstance(output, pd.Series):
        output = output.to_numpy()
    if output is None or isinstance(output, (str, bytes, Mapping)) or not hasattr(output, "__len__"):
        raise ScriptValidationError(
            f"Strategy must return a sequence of signals, got {type(output).__name__}",
            expected_length=expected_length,
        )
    if isinstance(output, np.ndarray) and output.ndim != 1:
        raise ScriptValidationError(
            f"Strategy must return a 1-D sequence, got shape {output.shape}",
            expected_length=expected_length,
        )

    actual_length = len(output)
    if actual_length != expected_length:
        raise ScriptValidationError(
            f"Signal length {actual_length} does not match bar count {expected_length}",
            expected_length=expected_length,
            actual_length=actual_length,
        )

    if isinstance(output, np.ndarray) and output.dtype.kind in "iuf":
        invalid = ~np.isin(output, SIGNAL_VALUES)
        if invalid.any():
            index = int(np.argmax(invalid))
            raise _invalid_value_error(index, output[index].item())
        return output.astype(np.int8)

    for index, value in enumerate(output):
        if not _is_valid_signal(value):
            raise _invalid_value_error(index, value)
    return np.fromiter((int(v) for v in output), dtype=np.int8, count=actual_length)


class SignalGenerator:
    """Wraps exactly one strategy callable behind the validation boundary."""

    def __init__(self, strategy: StrategyFn, name: Optional[str] = None):
        if not callable(strategy):
            raise TypeError(f"strategy must be callable, got {type(strategy).__name__}")
        self.strategy = strategy
        self.name = name or getattr(strategy, "__name__", type(strategy).__name__)

    def generate(self, prices: PriceSeries, parameters: Mapping[str, Any]) -> np.ndarray:
        """
        Run the strategy for one ParameterSet and validate its output.

        Raises:
            StrategyRuntimeError: If the strategy raised (cause chained)
            ScriptValidationError: If the output violates the contract
        """
        params = parameters if isinstance(parameters, ParameterSet) else ParameterSet(parameters)
        try:
            output = self.strategy(prices.decision, prices.execution, params, technical)
        except Exception as e:
            raise StrategyRuntimeError(
                f"Strategy '{self.name}' failed: {describe_error(e)}",
                parameters=params,
            ) from e
        return validate_signals(output, len(prices.execution))

    def __repr__(self) -> str:
        return f"SignalGenerator({self.name!r})"
