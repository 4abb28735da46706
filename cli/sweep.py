#!/usr/bin/env python3
"""
Parameter sweep CLI.

Loads OHLCV bars and a sweep configuration, runs every parameter
combination in batches and prints the best combinations. Optionally
re-runs one ranked combination with the full trade log.
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

from paramsweep.data.loader import load_bars
from paramsweep.evaluation.portfolio import PortfolioSimulator
from paramsweep.shared.errors import BacktestError
from paramsweep.signals.contract import SignalGenerator
from paramsweep.signals.script_host import load_strategy_script
from paramsweep.sweep.analysis import results_to_frame, summarize
from paramsweep.sweep.config import SweepConfig
from paramsweep.sweep.config_loader import load_sweep_config, build_signal_generator
from paramsweep.sweep.scheduler import SweepScheduler, SweepDataset


def setup_logging(verbose: bool = False):
    """
    Setup logging to stdout.

    Args:
        verbose: If True, use DEBUG level, otherwise WARNING
    """
    level = logging.DEBUG if verbose else logging.WARNING

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run a parameter sweep over one strategy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Sweep the reference EMA differential strategy
    python -m cli.sweep --data data/btc_1h.csv --config configs/ema_sweep.yaml

    # Sweep a strategy script, show the trade log of the best combination
    python -m cli.sweep --data data/btc_1h.csv --config configs/ema_sweep.yaml \\
        --script strategies/ma_crossover.py --detail 1
        """
    )
    parser.add_argument("--data", "-d", required=True, help="CSV file with OHLCV bars")
    parser.add_argument("--config", "-c", required=True, help="Sweep configuration YAML")
    parser.add_argument(
        "--script",
        default=None,
        help="Strategy script (overrides the strategy named in the config)",
    )
    parser.add_argument("--start", default=None, help="First bar date to include (e.g. 2024-01-01)")
    parser.add_argument("--end", default=None, help="Last bar date to include")
    parser.add_argument("--batch-size", type=int, default=None, help="Override sweep.batch_size")
    parser.add_argument("--workers", type=int, default=None, help="Override sweep.max_workers")
    parser.add_argument("--top", type=int, default=10, help="Number of ranked results to print (default: 10)")
    parser.add_argument(
        "--detail",
        type=int,
        default=None,
        metavar="RANK",
        help="Re-run the combination at this rank and print its trade log",
    )
    parser.add_argument("--output", "-o", default=None, help="Write all ranked results to this CSV file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def _print_progress(fraction: float, completed: int, total: int):
    print(f"\r  Progress: {completed}/{total} ({fraction * 100:.0f}%)", end="", flush=True)


def _print_config(config: SweepConfig, bar_count: int, strategy_name: str):
    print(f"Config: {config.name}")
    if config.description:
        print(f"  {config.description}")
    print(f"Strategy: {strategy_name}")
    print(f"Bars: {bar_count} (decision={config.decision_price}, execution={config.execution_price})")
    print(f"Start: {config.simulation.starting_amount} {config.simulation.starting_denomination}, "
          f"position size {config.simulation.position_size}, fee rate {config.simulation.fee_rate}")
    print("Parameters:")
    for name, values in config.parameters.items():
        print(f"  {name}: {list(values)}")
    print(f"Combinations: {config.combination_count}")
    print()


def _print_detail(scheduler: SweepScheduler, sweep_result, rank: int) -> int:
    if rank < 1 or rank > len(sweep_result.results):
        print(f"Error: --detail rank must be between 1 and {len(sweep_result.results)}", file=sys.stderr)
        return 1
    chosen = sweep_result.results[rank - 1]
    if chosen.is_error:
        print(f"Error: rank {rank} is an error result ({chosen.error})", file=sys.stderr)
        return 1

    detail = scheduler.recompute_detail(chosen.parameters)
    stats = detail.statistics
    print("\n" + "=" * 80)
    print(f"TRADE LOG - RANK {rank}")
    print("=" * 80)
    print(f"Parameters: {chosen.parameters.to_dict()}")
    print(f"Final value: {detail.result.final_value:.2f} ({detail.result.total_return:+.2f}%)")
    print(f"Trades: {stats.total_trades} ({stats.buy_trades} buys, {stats.sell_trades} sells), "
          f"volume {stats.total_volume:.2f}")
    print()
    trades = detail.trades_frame()
    if trades.empty:
        print("No trades.")
    else:
        with pd.option_context("display.max_rows", None, "display.width", 200):
            print(trades.to_string(index=False))
    return 0


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    print("=" * 80)
    print("PARAMETER SWEEP")
    print("=" * 80)
    print()

    try:
        config = load_sweep_config(args.config)
        bars = load_bars(args.data, start_date=args.start, end_date=args.end)
        if args.script:
            strategy = load_strategy_script(args.script)
            generator = SignalGenerator(strategy, name=strategy.name)
        else:
            generator = build_signal_generator(config, base_dir=Path(args.config).parent)
        dataset = SweepDataset.from_bars(bars, config.decision_price, config.execution_price)
        scheduler = SweepScheduler(
            dataset,
            generator,
            simulator=PortfolioSimulator(config.simulation),
            batch_size=args.batch_size or config.batch_size,
            max_workers=args.workers or config.max_workers,
        )
    except (FileNotFoundError, BacktestError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _print_config(config, dataset.bar_count, generator.name)

    sweep_result = scheduler.run(config.parameters, on_progress=_print_progress)
    print()

    summary = summarize(sweep_result)
    print(f"\nCompleted {summary['completed']}/{summary['total']} combinations in {summary['elapsed_s']:.2f}s "
          f"({summary['errors']} errors{', cancelled' if summary['cancelled'] else ''})")

    frame = results_to_frame(sweep_result.results)
    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(output_path, index=False)
        print(f"Results written to {output_path}")

    print("\n" + "=" * 80)
    print(f"TOP {min(args.top, len(frame))} COMBINATIONS")
    print("=" * 80)
    if frame.empty:
        print("No results.")
    else:
        with pd.option_context("display.max_columns", None, "display.width", 200):
            print(frame.head(args.top).to_string(index=False, float_format=lambda v: f"{v:.2f}"))

    if summary["best_parameters"] is None:
        print("\nNo successful combination.")
        return 1

    if args.detail is not None:
        return _print_detail(scheduler, sweep_result, args.detail)
    return 0


if __name__ == "__main__":
    sys.exit(main())
