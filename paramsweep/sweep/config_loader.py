"""
YAML configuration loader for parameter sweeps.

Loads sweep configurations from YAML files, allowing sweeps to be shared
and modified without code changes.
"""
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..evaluation.portfolio_types import SimulationConfig
from ..shared.defaults import (
    BATCH_SIZE, MAX_WORKERS, DECISION_PRICE, EXECUTION_PRICE,
    STARTING_DENOMINATION, STARTING_AMOUNT, POSITION_SIZE, FEE_RATE,
)
from ..shared.errors import ConfigError
from ..signals.contract import SignalGenerator
from ..signals.examples import get_strategy
from ..signals.script_host import load_strategy_script
from .config import SweepConfig


def _parse_number(text: str) -> Union[int, float]:
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        raise ConfigError(f"'{text}' is not a number")


def parse_value_list(value: Any) -> List[Any]:
    """
    Parse one parameter entry into a list of candidate values.

    Accepts a YAML list, a scalar, or a comma-separated string ("5,10,15").
    """
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        parts = [p for p in value.split(",") if p.strip()]
        if not parts:
            raise ConfigError(f"Empty value list '{value}'")
        return [_parse_number(p) for p in parts]
    return [value]


def _section(config_dict: Dict[str, Any], key: str) -> Dict[str, Any]:
    section = config_dict.get(key) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{key}' must be a mapping, got {type(section).__name__}")
    return section


def load_sweep_config(yaml_path: Union[str, Path]) -> SweepConfig:
    """
    Load a sweep configuration from a YAML file.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        SweepConfig object

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ConfigError: If YAML is invalid or a setting fails validation
    """
    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(yaml_path, 'r') as f:
        try:
            config_dict = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {yaml_path}: {e}") from e

    if not config_dict:
        raise ConfigError(f"Empty config file: {yaml_path}")
    if not isinstance(config_dict, dict):
        raise ConfigError(f"Config file must contain a mapping: {yaml_path}")

    prices = _section(config_dict, 'prices')
    simulation = _section(config_dict, 'simulation')
    sweep = _section(config_dict, 'sweep')
    raw_parameters = _section(config_dict, 'parameters')

    parameters = {name: parse_value_list(value) for name, value in raw_parameters.items()}

    return SweepConfig(
        name=config_dict.get('name', yaml_path.stem),
        description=config_dict.get('description', ''),
        strategy=config_dict.get('strategy', 'ema_differential'),
        script=config_dict.get('script'),

        # Prices
        decision_price=prices.get('decision', DECISION_PRICE),
        execution_price=prices.get('execution', EXECUTION_PRICE),

        # Simulation
        simulation=SimulationConfig(
            starting_denomination=simulation.get('starting_denomination', STARTING_DENOMINATION),
            starting_amount=float(simulation.get('starting_amount', STARTING_AMOUNT)),
            position_size=float(simulation.get('position_size', POSITION_SIZE)),
            fee_rate=float(simulation.get('fee_rate', FEE_RATE)),
        ),

        # Scheduling
        batch_size=int(sweep.get('batch_size', BATCH_SIZE)),
        max_workers=int(sweep.get('max_workers', MAX_WORKERS)),

        parameters=parameters,
    )


def save_sweep_config(config: SweepConfig, yaml_path: Union[str, Path]):
    """
    Save a sweep configuration to a YAML file.

    Args:
        config: SweepConfig object to save
        yaml_path: Path where to save YAML file
    """
    yaml_path = Path(yaml_path)

    config_dict = {
        'name': config.name,
        'description': config.description,
        **({'script': config.script} if config.script else {'strategy': config.strategy}),
        'prices': {
            'decision': config.decision_price,
            'execution': config.execution_price,
        },
        'simulation': config.simulation.to_dict(),
        'sweep': {
            'batch_size': config.batch_size,
            'max_workers': config.max_workers,
        },
        'parameters': {name: list(values) for name, values in config.parameters.items()},
    }

    # Ensure parent directory exists
    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    with open(yaml_path, 'w') as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)


def build_signal_generator(config: SweepConfig, base_dir: Optional[Union[str, Path]] = None) -> SignalGenerator:
    """
    Create the SignalGenerator a config names.

    Script paths are resolved relative to `base_dir` (usually the config
    file's directory) when they are not absolute.
    """
    if config.script:
        script_path = Path(config.script)
        if not script_path.is_absolute() and base_dir is not None:
            script_path = Path(base_dir) / script_path
        strategy = load_strategy_script(script_path)
        return SignalGenerator(strategy, name=strategy.name)
    return SignalGenerator(get_strategy(config.strategy), name=config.strategy)
