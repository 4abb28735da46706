"""
Sweep configuration.

Defines a complete sweep: which strategy, which price blends, the
simulation settings, batch scheduling and the ParameterSpace to expand.
Validated on construction; invalid settings raise ConfigError.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from ..evaluation.portfolio_types import SimulationConfig
from ..shared.defaults import (
    BATCH_SIZE, MAX_WORKERS, DECISION_PRICE, EXECUTION_PRICE, PRICE_TYPES, PARAMETER_CATALOG,
)
from ..shared.errors import ConfigError
from ..signals.examples import STRATEGIES
from .grid_search import (
    normalize_parameter_space, count_combinations, validate_combination_count, parameter_pair_warnings,
)

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY = "ema_differential"


def validate_parameter_ranges(space: Mapping[str, Tuple[Any, ...]]) -> None:
    """
    Check known parameters against their catalogued range and max value count.

    Unknown parameters (custom script parameters) are accepted as-is.

    Raises:
        ConfigError: On a value outside the range or too many values
    """
    for name, values in space.items():
        entry = PARAMETER_CATALOG.get(name)
        if entry is None:
            continue
        if len(values) > entry["max_count"]:
            raise ConfigError(
                f"Parameter '{name}' has {len(values)} values; at most {entry['max_count']} allowed"
            )
        for value in values:
            if value < entry["min"] or value > entry["max"]:
                raise ConfigError(
                    f"Parameter '{name}' value {value} outside range [{entry['min']}, {entry['max']}]"
                )


@dataclass
class SweepConfig:
    """Configuration of one parameter sweep."""

    name: str
    description: str = ""

    # Strategy: built-in name, or a script path (script wins when set)
    strategy: str = DEFAULT_STRATEGY
    script: Optional[str] = None

    # Price blends
    decision_price: str = DECISION_PRICE
    execution_price: str = EXECUTION_PRICE

    simulation: SimulationConfig = field(default_factory=SimulationConfig)

    # Scheduling
    batch_size: int = BATCH_SIZE
    max_workers: int = MAX_WORKERS

    # ParameterSpace: name -> candidate values
    parameters: Dict[str, Tuple[Any, ...]] = field(default_factory=dict)

    def __post_init__(self):
        if self.script is None and self.strategy not in STRATEGIES:
            raise ConfigError(f"Unknown strategy '{self.strategy}'. Available: {sorted(STRATEGIES)}")
        for label, price_type in (("decision_price", self.decision_price), ("execution_price", self.execution_price)):
            if price_type not in PRICE_TYPES:
                raise ConfigError(f"{label} must be one of {list(PRICE_TYPES)}, got '{price_type}'")
        if int(self.batch_size) < 1:
            raise ConfigError(f"batch_size must be >= 1, got {self.batch_size}")
        if int(self.max_workers) < 1:
            raise ConfigError(f"max_workers must be >= 1, got {self.max_workers}")
        self.parameters = normalize_parameter_space(self.parameters)
        validate_parameter_ranges(self.parameters)
        validate_combination_count(count_combinations(self.parameters))
        for warning in parameter_pair_warnings(self.parameters):
            logger.warning(f"Sweep '{self.name}': {warning}")

    @property
    def combination_count(self) -> int:
        return count_combinations(self.parameters)

    @property
    def strategy_label(self) -> str:
        return f"script:{self.script}" if self.script else self.strategy
