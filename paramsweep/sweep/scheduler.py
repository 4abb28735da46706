"""
Batch scheduler for parameter sweeps.

Expands a ParameterSpace lazily, runs fixed-size batches of combinations
(sequentially or over a process pool), isolates per-combination failures
as error results, and ranks everything by final portfolio value.

Yield points are batch boundaries: iter_batches() yields a BatchReport
after every batch, run() drives it synchronously and run_async() hands
control back to the event loop after every batch.
"""
import asyncio
import contextlib
import logging
import math
import pickle
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from itertools import islice
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

import pandas as pd

from ..data.preparation import prepare_price_series, validate_price_series
from ..evaluation.portfolio import PortfolioSimulator
from ..evaluation.portfolio_types import BacktestResult, DetailedRun
from ..shared.defaults import BATCH_SIZE, MAX_WORKERS, MAX_COMBINATIONS
from ..shared.errors import ConfigError, describe_error
from ..shared.types import ParameterSet, PriceSeries
from ..signals.contract import SignalGenerator
from .grid_search import count_combinations, iter_parameter_sets, validate_combination_count

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, int, int], None]
CancelCheck = Callable[[], bool]


@dataclass(frozen=True)
class SweepDataset:
    """Bars of a sweep together with their precomputed PriceSeries."""
    prices: PriceSeries
    bar_count: int
    bars: Optional[pd.DataFrame] = None

    @classmethod
    def from_bars(cls, bars: pd.DataFrame, decision: str = "ohlc4", execution: str = "close") -> 'SweepDataset':
        return cls(prices=prepare_price_series(bars, decision, execution), bar_count=len(bars), bars=bars)

    @classmethod
    def coerce(cls, dataset: Union['SweepDataset', PriceSeries, pd.DataFrame]) -> 'SweepDataset':
        if isinstance(dataset, SweepDataset):
            return dataset
        if isinstance(dataset, PriceSeries):
            return cls(prices=dataset, bar_count=len(dataset.execution))
        if isinstance(dataset, pd.DataFrame):
            return cls.from_bars(dataset)
        raise TypeError(f"Unsupported dataset type {type(dataset).__name__}")


@dataclass(frozen=True)
class BatchReport:
    """Progress after one finished batch."""
    batch_number: int  # 1-based
    batch_size: int  # Combinations in this batch
    completed: int
    total: int
    errors: int  # Error results in this batch
    elapsed_s: float

    @property
    def fraction(self) -> float:
        return self.completed / self.total if self.total else 1.0


@dataclass
class SweepResult:
    """Ranked results of a sweep (best first, error results last)."""
    results: List[BacktestResult]
    total: int
    completed: int
    cancelled: bool
    elapsed_s: float

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.results if r.is_error)

    @property
    def best(self) -> Optional[BacktestResult]:
        if not self.results or self.results[0].is_error:
            return None
        return self.results[0]


def rank_results(results: Iterable[BacktestResult]) -> List[BacktestResult]:
    """Sort by final value descending, error results last, ties by enumeration index."""
    return sorted(results, key=lambda r: (r.is_error, -r.final_value, r.index))


def run_combination(
    prices: PriceSeries,
    generator: SignalGenerator,
    simulator: PortfolioSimulator,
    parameters: ParameterSet,
    index: int,
) -> BacktestResult:
    """Run one ParameterSet; any failure becomes an error result."""
    try:
        signals = generator.generate(prices, parameters)
        return simulator.simulate(prices.execution, signals, parameters, index=index)
    except Exception as e:
        logger.warning(f"Combination {index} {parameters.to_dict()} failed: {describe_error(e)}")
        return BacktestResult.from_error(parameters, describe_error(e), index=index)


# Per-process state for pool workers (set once by the pool initializer)
_WORKER_CONTEXT: Dict[str, Any] = {}


def _init_worker(prices: PriceSeries, generator: SignalGenerator, simulator: PortfolioSimulator) -> None:
    for name in ("decision", "execution", "ohlc4", "hlc3", "hl2", "close"):
        getattr(prices, name).flags.writeable = False
    _WORKER_CONTEXT.update(prices=prices, generator=generator, simulator=simulator)


def _run_chunk_worker(tasks: List[Tuple[int, ParameterSet]]) -> List[BacktestResult]:
    """
    Worker function for one chunk of a batch.

    This runs in a separate process. Must be a module-level function
    for pickling by ProcessPoolExecutor.
    """
    ctx = _WORKER_CONTEXT
    return [
        run_combination(ctx["prices"], ctx["generator"], ctx["simulator"], params, index)
        for index, params in tasks
    ]


class SweepScheduler:
    """
    Runs every combination of a ParameterSpace in fixed-size batches.

    The dataset, signal generator and simulator are passed in explicitly
    and shared read-only by all combinations.
    """

    def __init__(
        self,
        dataset: Union[SweepDataset, PriceSeries, pd.DataFrame],
        generator: SignalGenerator,
        simulator: Optional[PortfolioSimulator] = None,
        batch_size: int = BATCH_SIZE,
        max_workers: int = MAX_WORKERS,
        max_combinations: int = MAX_COMBINATIONS,
    ):
        """
        Initialize the scheduler.

        Args:
            dataset: SweepDataset, PriceSeries or bar DataFrame
            generator: SignalGenerator wrapping the strategy
            simulator: PortfolioSimulator (default: PortfolioSimulator())
            batch_size: Combinations per batch (yield/progress/cancel granularity)
            max_workers: 1 runs in-process; > 1 fans batches out over a process pool
            max_combinations: Largest ParameterSpace the scheduler will start

        Raises:
            InputError: If the dataset is empty or its PriceSeries does not
                match the bar count
            ConfigError: If batch_size or max_workers is < 1, or if max_workers > 1
                and the generator or simulator cannot be pickled for the pool
        """
        if int(batch_size) < 1:
            raise ConfigError(f"batch_size must be >= 1, got {batch_size}")
        if int(max_workers) < 1:
            raise ConfigError(f"max_workers must be >= 1, got {max_workers}")

        self.dataset = SweepDataset.coerce(dataset)
        validate_price_series(self.dataset.prices, self.dataset.bar_count)

        self.generator = generator
        self.simulator = simulator or PortfolioSimulator()
        self.batch_size = int(batch_size)
        self.max_workers = int(max_workers)
        self.max_combinations = int(max_combinations)
        if self.max_workers > 1:
            self._check_picklable()
        self.last_result: Optional[SweepResult] = None
        self._cancelled = False

    @property
    def prices(self) -> PriceSeries:
        return self.dataset.prices

    def _check_picklable(self) -> None:
        """Pool workers receive the generator and simulator by pickle."""
        try:
            pickle.dumps((self.generator, self.simulator))
        except (pickle.PicklingError, AttributeError, TypeError) as e:
            raise ConfigError(
                f"max_workers={self.max_workers} needs a picklable strategy; "
                f"'{self.generator.name}' cannot be sent to worker processes ({e}). "
                "Use a module-level function or a strategy script, or max_workers=1."
            ) from e

    def cancel(self) -> None:
        """Request cancellation; honoured at the next batch boundary."""
        self._cancelled = True

    def _executor(self):
        if self.max_workers == 1:
            return contextlib.nullcontext()
        return ProcessPoolExecutor(
            max_workers=self.max_workers,
            initializer=_init_worker,
            initargs=(self.prices, self.generator, self.simulator),
        )

    def _run_batch(self, batch: List[Tuple[int, ParameterSet]], pool) -> List[BacktestResult]:
        if pool is None:
            return [
                run_combination(self.prices, self.generator, self.simulator, params, index)
                for index, params in batch
            ]

        chunk_size = math.ceil(len(batch) / self.max_workers)
        chunks = [batch[i:i + chunk_size] for i in range(0, len(batch), chunk_size)]
        futures = [pool.submit(_run_chunk_worker, chunk) for chunk in chunks]
        results: List[BacktestResult] = []
        for future in as_completed(futures):
            results.extend(future.result())
        results.sort(key=lambda r: r.index)
        return results

    def iter_batches(self, space: Mapping[str, Any]) -> Iterator[BatchReport]:
        """
        Run the sweep batch by batch, yielding a BatchReport after each batch.

        The final SweepResult is stored on `last_result` once the generator
        finishes or is closed.

        Raises:
            ConfigError: If the ParameterSpace is malformed or has more than
                `max_combinations` combinations (before any batch runs)
        """
        total = validate_combination_count(count_combinations(space), self.max_combinations)
        combinations = enumerate(iter_parameter_sets(space))
        self._cancelled = False
        self.last_result = None
        results: List[BacktestResult] = []
        start = time.perf_counter()
        batch_number = 0

        logger.info(
            f"Starting sweep: {total} combinations, batch size {self.batch_size}, "
            f"{self.max_workers} worker(s), strategy '{self.generator.name}'"
        )
        try:
            with self._executor() as pool:
                while not self._cancelled:
                    batch = list(islice(combinations, self.batch_size))
                    if not batch:
                        break
                    batch_number += 1
                    batch_start = time.perf_counter()
                    batch_results = self._run_batch(batch, pool)
                    results.extend(batch_results)
                    batch_elapsed = time.perf_counter() - batch_start
                    errors = sum(1 for r in batch_results if r.is_error)
                    logger.debug(
                        f"Batch {batch_number}: {len(batch)} combinations in {batch_elapsed:.3f}s "
                        f"({errors} errors, {len(results)}/{total} done)"
                    )
                    yield BatchReport(
                        batch_number=batch_number,
                        batch_size=len(batch),
                        completed=len(results),
                        total=total,
                        errors=errors,
                        elapsed_s=batch_elapsed,
                    )
        finally:
            elapsed = time.perf_counter() - start
            cancelled = len(results) < total
            self.last_result = SweepResult(
                results=rank_results(results),
                total=total,
                completed=len(results),
                cancelled=cancelled,
                elapsed_s=elapsed,
            )
            logger.info(
                f"Sweep {'cancelled' if cancelled else 'finished'}: {len(results)}/{total} combinations "
                f"in {elapsed:.2f}s ({self.last_result.error_count} errors)"
            )

    def run(
        self,
        space: Mapping[str, Any],
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> SweepResult:
        """
        Run the whole sweep synchronously.

        Args:
            space: ParameterSpace (name -> candidate values)
            on_progress: Called after each batch with (fraction, completed, total)
            should_cancel: Polled after each batch; True stops before the next batch

        Returns:
            SweepResult with ranked results (cancelled=True if stopped early)
        """
        for report in self.iter_batches(space):
            if on_progress is not None:
                on_progress(report.fraction, report.completed, report.total)
            if should_cancel is not None and should_cancel():
                self.cancel()
        return self.last_result

    async def run_async(
        self,
        space: Mapping[str, Any],
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> SweepResult:
        """Run the sweep, yielding to the event loop after every batch."""
        for report in self.iter_batches(space):
            if on_progress is not None:
                on_progress(report.fraction, report.completed, report.total)
            if should_cancel is not None and should_cancel():
                self.cancel()
            await asyncio.sleep(0)
        return self.last_result

    def recompute_detail(self, parameters: Mapping[str, Any]) -> DetailedRun:
        """
        Re-run exactly one ParameterSet with full trade recording.

        Errors are raised, not isolated: the caller asked for this one run.
        """
        params = parameters if isinstance(parameters, ParameterSet) else ParameterSet(parameters)
        signals = self.generator.generate(self.prices, params)
        return self.simulator.simulate(
            self.prices.execution,
            signals,
            params,
            timestamps=self.prices.timestamps,
            record_detail=True,
        )
