"""
Error taxonomy for the backtesting engine.

Sweep-fatal errors (InputError, ConfigError) abort before any combination
runs. Per-combination errors (ScriptValidationError, StrategyRuntimeError)
are caught by the scheduler and turned into error results.
"""
from typing import Any, Mapping, Optional


class BacktestError(Exception):
    """Base class for all engine errors."""
    pass


class InputError(BacktestError, ValueError):
    """Raised when bars, prices or signals have mismatched lengths or are empty."""
    pass


class ConfigError(BacktestError, ValueError):
    """Raised when a ParameterSpace or sweep configuration is malformed."""
    pass


class ScriptValidationError(BacktestError):
    """
    Raised when a strategy returns an invalid signal sequence.

    Carries the offending index and value for domain violations, or the
    expected/actual lengths for a length violation.
    """

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        value: Any = None,
        expected_length: Optional[int] = None,
        actual_length: Optional[int] = None,
    ):
        super().__init__(message)
        self.index = index
        self.value = value
        self.expected_length = expected_length
        self.actual_length = actual_length

    def __reduce__(self):
        return (
            type(self),
            (str(self), self.index, self.value, self.expected_length, self.actual_length),
        )


class StrategyRuntimeError(BacktestError, RuntimeError):
    """Raised when strategy or indicator code fails for one ParameterSet."""

    def __init__(self, message: str, parameters: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self.parameters = parameters

    def __reduce__(self):
        return (type(self), (str(self), self.parameters))


def describe_error(error: BaseException) -> str:
    """Short description stored on error results: '<ErrorType>: message'."""
    return f"{type(error).__name__}: {error}"
