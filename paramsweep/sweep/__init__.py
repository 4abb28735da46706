"""
Parameter-sweep module.

Expands a ParameterSpace, runs every combination in batches with failure
isolation and ranks the results. Sweeps can be configured in YAML.
"""
from .grid_search import (
    normalize_parameter_space,
    count_combinations,
    iter_parameter_sets,
    expand_parameter_space,
    validate_combination_count,
    parameter_pair_warnings,
)
from .scheduler import (
    SweepScheduler,
    SweepDataset,
    SweepResult,
    BatchReport,
    rank_results,
    run_combination,
)
from .config import SweepConfig, validate_parameter_ranges
from .config_loader import load_sweep_config, save_sweep_config, build_signal_generator, parse_value_list
from .analysis import results_to_frame, analyze_by_parameter, summarize

__all__ = [
    'normalize_parameter_space',
    'count_combinations',
    'iter_parameter_sets',
    'expand_parameter_space',
    'validate_combination_count',
    'parameter_pair_warnings',
    'SweepScheduler',
    'SweepDataset',
    'SweepResult',
    'BatchReport',
    'rank_results',
    'run_combination',
    'SweepConfig',
    'validate_parameter_ranges',
    'load_sweep_config',
    'save_sweep_config',
    'build_signal_generator',
    'parse_value_list',
    'results_to_frame',
    'analyze_by_parameter',
    'summarize',
]
