"""
Parameter-space expansion for grid sweeps.

A ParameterSpace maps each parameter name to an ordered tuple of
candidate values. Expansion is the Cartesian product in declared key
order with the right-most key varying fastest.
"""
import itertools
import logging
import math
import numbers
from functools import reduce
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Tuple

from ..shared.defaults import MAX_COMBINATIONS, WARN_COMBINATIONS
from ..shared.errors import ConfigError
from ..shared.types import ParameterSet

logger = logging.getLogger(__name__)

# Parameters that only make sense together (floor/ceiling, fast/slow)
PAIRED_PARAMETERS = (
    ("ema_floor", "ema_ceiling"),
    ("vol_floor", "vol_ceiling"),
    ("fast_ma", "slow_ma"),
)


def _check_value(name: str, value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigError(f"Parameter '{name}' has non-numeric value {value!r}")
    if not math.isfinite(value):
        raise ConfigError(f"Parameter '{name}' has non-finite value {value!r}")
    return value


def normalize_parameter_space(space: Mapping[str, Any]) -> Dict[str, Tuple[Any, ...]]:
    """
    Validate a ParameterSpace and return it as name -> tuple of values.

    Scalars become one-value sets. Key order is preserved.

    Raises:
        ConfigError: On an empty space, a non-string key, an empty value
            set or a non-numeric value
    """
    if not isinstance(space, Mapping):
        raise ConfigError(f"ParameterSpace must be a mapping, got {type(space).__name__}")
    if len(space) == 0:
        raise ConfigError("ParameterSpace is empty")

    normalized: Dict[str, Tuple[Any, ...]] = {}
    for name, values in space.items():
        if not isinstance(name, str) or not name:
            raise ConfigError(f"Parameter names must be non-empty strings, got {name!r}")
        if isinstance(values, (list, tuple)):
            candidates = tuple(values)
        else:
            candidates = (values,)
        if not candidates:
            raise ConfigError(f"Parameter '{name}' has an empty value set")
        normalized[name] = tuple(_check_value(name, v) for v in candidates)
    return normalized


def count_combinations(space: Mapping[str, Any]) -> int:
    """Number of ParameterSets the space expands to, without materialising them."""
    normalized = normalize_parameter_space(space)
    return reduce(lambda total, values: total * len(values), normalized.values(), 1)


def iter_parameter_sets(space: Mapping[str, Any]) -> Iterator[ParameterSet]:
    """Lazily yield ParameterSets in enumeration order."""
    normalized = normalize_parameter_space(space)
    names = list(normalized)
    for combo in itertools.product(*normalized.values()):
        yield ParameterSet(zip(names, combo))


def expand_parameter_space(space: Mapping[str, Any]) -> List[ParameterSet]:
    """
    Expand a ParameterSpace into every ParameterSet.

    Example:
        {"ema_floor": [5, 10], "ema_ceiling": [30]} ->
        [{ema_floor: 5, ema_ceiling: 30}, {ema_floor: 10, ema_ceiling: 30}]
    """
    return list(iter_parameter_sets(space))


def validate_combination_count(total: int, limit: int = MAX_COMBINATIONS) -> int:
    """
    Check that a sweep is small enough to run.

    Sweeps above WARN_COMBINATIONS are logged as a warning.

    Returns:
        The combination count

    Raises:
        ConfigError: If there is nothing to run or `total` exceeds `limit`
    """
    if total < 1:
        raise ConfigError("No parameter combinations to test")
    if total > limit:
        raise ConfigError(f"Too many combinations ({total:,}); at most {limit:,} allowed")
    if total > WARN_COMBINATIONS:
        logger.warning(f"Large sweep: {total:,} combinations. Consider reducing the parameter sets.")
    return total


def parameter_pair_warnings(names: Iterable[str]) -> List[str]:
    """Warnings for parameters that are normally swept together but appear alone."""
    present = set(names)
    warnings = []
    for first, second in PAIRED_PARAMETERS:
        if first in present and second not in present:
            warnings.append(f"'{first}' is set without '{second}'; consider adding it")
        if second in present and first not in present:
            warnings.append(f"'{second}' is set without '{first}'; consider adding it")
    if "rsi_period" in present and not present & {"rsi_overbought", "rsi_oversold"}:
        warnings.append("'rsi_period' without 'rsi_overbought'/'rsi_oversold' levels")
    return warnings
