"""
Tests for the batch sweep scheduler.
"""
import asyncio

import pytest
import numpy as np
import pandas as pd
from paramsweep.data.preparation import prepare_price_series
from paramsweep.evaluation.portfolio import PortfolioSimulator
from paramsweep.evaluation.portfolio_types import DetailedRun, SimulationConfig
from paramsweep.shared.errors import ConfigError, InputError
from paramsweep.shared.types import PriceSeries
from paramsweep.signals.contract import SignalGenerator
from paramsweep.signals.examples import ma_crossover
from paramsweep.sweep.scheduler import SweepDataset, SweepScheduler, rank_results


@pytest.fixture
def sample_bars():
    """Random-walk OHLCV bars (hourly)."""
    rng = np.random.default_rng(42)
    close = 100 * np.exp(np.cumsum(rng.normal(0, 0.01, 200)))
    open_ = np.concatenate([[close[0]], close[:-1]])
    return pd.DataFrame({
        'open': open_,
        'high': np.maximum(open_, close) * 1.005,
        'low': np.minimum(open_, close) * 0.995,
        'close': close,
        'volume': rng.integers(100, 1000, 200).astype(float),
    }, index=pd.date_range('2024-01-01', periods=200, freq='h'))


@pytest.fixture
def rising_bars():
    """Steadily rising bars."""
    close = np.linspace(100, 200, 50)
    return pd.DataFrame({'open': close, 'high': close, 'low': close, 'close': close})


def hold_strategy(signal_prices, execution_prices, params, ta):
    return np.zeros(len(signal_prices), dtype=int)


def buy_first_bar(signal_prices, execution_prices, params, ta):
    signals = np.zeros(len(signal_prices), dtype=int)
    signals[0] = 1
    return signals


def fails_on_three(signal_prices, execution_prices, params, ta):
    if params["x"] == 3:
        raise ValueError("three is not allowed")
    return buy_first_bar(signal_prices, execution_prices, params, ta)


def crossover_failing_on_fast_3(signal_prices, execution_prices, params, ta):
    if params["fast_ma"] == 3:
        raise ValueError("fast_ma 3 is not allowed")
    return ma_crossover(signal_prices, execution_prices, params, ta)


def invalid_on_two(signal_prices, execution_prices, params, ta):
    signals = np.zeros(len(signal_prices), dtype=int)
    if params["x"] == 2:
        signals[5] = 2
    return signals


class TestConstruction:
    """Test scheduler setup validation."""

    def test_accepts_dataframe_and_price_series(self, sample_bars):
        prices = prepare_price_series(sample_bars)
        assert SweepScheduler(sample_bars, SignalGenerator(hold_strategy)).dataset.bar_count == 200
        assert SweepScheduler(prices, SignalGenerator(hold_strategy)).dataset.bar_count == 200

    @pytest.mark.parametrize("kwargs", [{"batch_size": 0}, {"max_workers": 0}])
    def test_invalid_scheduling(self, sample_bars, kwargs):
        with pytest.raises(ConfigError):
            SweepScheduler(sample_bars, SignalGenerator(hold_strategy), **kwargs)

    def test_empty_dataset(self):
        empty = np.array([])
        prices = PriceSeries(decision=empty, execution=empty, ohlc4=empty, hlc3=empty, hl2=empty, close=empty)
        with pytest.raises(InputError, match="empty"):
            SweepScheduler(SweepDataset(prices=prices, bar_count=0), SignalGenerator(hold_strategy))

    def test_price_series_length_mismatch(self, sample_bars):
        prices = prepare_price_series(sample_bars)
        with pytest.raises(InputError, match="decision"):
            SweepScheduler(SweepDataset(prices=prices, bar_count=201), SignalGenerator(hold_strategy))

    def test_parallel_needs_picklable_strategy(self, sample_bars):
        def local_strategy(signal_prices, execution_prices, params, ta):
            return np.zeros(len(signal_prices), dtype=int)

        for strategy in (local_strategy, lambda s, e, p, ta: np.zeros(len(s), dtype=int)):
            with pytest.raises(ConfigError, match="picklable strategy"):
                SweepScheduler(sample_bars, SignalGenerator(strategy), max_workers=2)
        # In-process runs take any callable
        SweepScheduler(sample_bars, SignalGenerator(local_strategy), max_workers=1)

    def test_parallel_accepts_module_level_strategy(self, sample_bars):
        scheduler = SweepScheduler(sample_bars, SignalGenerator(ma_crossover), max_workers=2)
        assert scheduler.max_workers == 2

    def test_malformed_space_fails_before_running(self, sample_bars):
        scheduler = SweepScheduler(sample_bars, SignalGenerator(hold_strategy))
        with pytest.raises(ConfigError):
            scheduler.run({"x": []})

    def test_oversized_space_fails_before_running(self, sample_bars):
        calls = []
        scheduler = SweepScheduler(sample_bars, SignalGenerator(hold_strategy), max_combinations=10)
        with pytest.raises(ConfigError, match="Too many combinations \\(11\\)"):
            scheduler.run({"x": list(range(11))}, on_progress=lambda *args: calls.append(args))
        assert calls == []

    def test_default_cap(self, sample_bars):
        scheduler = SweepScheduler(sample_bars, SignalGenerator(hold_strategy))
        with pytest.raises(ConfigError, match="at most 50,000"):
            scheduler.run({"a": list(range(1000)), "b": list(range(51))})


class TestBatching:
    """Test batch sizes and progress reporting."""

    def test_237_combinations_in_batches_of_50(self, sample_bars):
        scheduler = SweepScheduler(sample_bars, SignalGenerator(hold_strategy), batch_size=50)
        reports = list(scheduler.iter_batches({"x": list(range(1, 238))}))
        assert [r.batch_size for r in reports] == [50, 50, 50, 50, 37]
        assert [r.completed for r in reports] == [50, 100, 150, 200, 237]
        assert scheduler.last_result.completed == 237
        assert not scheduler.last_result.cancelled

    def test_progress_monotonic_ending_at_one(self, sample_bars):
        calls = []
        scheduler = SweepScheduler(sample_bars, SignalGenerator(hold_strategy), batch_size=50)
        scheduler.run({"x": list(range(1, 238))}, on_progress=lambda f, done, total: calls.append((f, done, total)))
        fractions = [c[0] for c in calls]
        assert len(calls) == 5
        assert fractions == sorted(fractions)
        assert fractions[-1] == 1.0
        assert all(c[2] == 237 for c in calls)

    def test_every_combination_evaluated_once(self, sample_bars):
        scheduler = SweepScheduler(sample_bars, SignalGenerator(hold_strategy), batch_size=7)
        result = scheduler.run({"a": [1, 2, 3], "b": [4, 5, 6, 7]})
        assert result.total == result.completed == 12
        assert sorted(r.index for r in result.results) == list(range(12))
        assert len({r.parameters for r in result.results}) == 12


class TestRanking:
    """Test result ordering."""

    def test_sorted_by_final_value(self, rising_bars):
        simulator = PortfolioSimulator(SimulationConfig(fee_rate=0.0))
        scheduler = SweepScheduler(rising_bars, SignalGenerator(buy_first_bar), simulator=simulator)
        result = scheduler.run({"position_size": [0.25, 1.0, 0.5]})
        assert [r.parameters["position_size"] for r in result.results] == [1.0, 0.5, 0.25]
        assert result.best.parameters["position_size"] == 1.0
        values = [r.final_value for r in result.results]
        assert values == sorted(values, reverse=True)

    def test_ties_keep_enumeration_order(self, sample_bars):
        """Equal final values keep their enumeration order."""
        scheduler = SweepScheduler(sample_bars, SignalGenerator(hold_strategy), batch_size=4)
        result = scheduler.run({"x": list(range(10))})
        assert [r.index for r in result.results] == list(range(10))
        assert [r.parameters["x"] for r in result.results] == list(range(10))

    def test_rank_results_puts_errors_last(self, rising_bars):
        scheduler = SweepScheduler(rising_bars, SignalGenerator(fails_on_three))
        result = scheduler.run({"x": [1, 2, 3, 4]})
        ranked = rank_results(reversed(result.results))
        assert ranked[-1].is_error
        assert [r.index for r in ranked[:-1]] == [0, 1, 3]


class TestFailureIsolation:
    """Test per-combination error results."""

    def test_strategy_exception_becomes_error_result(self, rising_bars):
        scheduler = SweepScheduler(rising_bars, SignalGenerator(fails_on_three))
        result = scheduler.run({"x": [1, 2, 3, 4]})
        assert result.completed == 4
        assert result.error_count == 1
        failed = result.results[-1]
        assert failed.parameters["x"] == 3
        assert failed.error.startswith("StrategyRuntimeError")
        assert "three is not allowed" in failed.error
        assert failed.final_value == 0.0
        assert all(not r.is_error for r in result.results[:-1])

    def test_failures_leave_other_results_unchanged(self, sample_bars):
        """Surviving results equal those of a run where nothing fails."""
        space = {"fast_ma": [2, 3, 4, 5], "slow_ma": [10, 20]}
        clean = SweepScheduler(sample_bars, SignalGenerator(ma_crossover), batch_size=3).run(space)
        mixed = SweepScheduler(
            sample_bars, SignalGenerator(crossover_failing_on_fast_3), batch_size=3
        ).run(space)

        assert mixed.completed == clean.completed == 8
        assert mixed.error_count == 2
        assert all(r.parameters["fast_ma"] == 3 for r in mixed.results if r.is_error)

        expected = [r.to_dict() for r in clean.results if r.parameters["fast_ma"] != 3]
        survivors = [r.to_dict() for r in mixed.results if not r.is_error]
        assert survivors == expected

    def test_invalid_signal_becomes_error_result(self, sample_bars):
        scheduler = SweepScheduler(sample_bars, SignalGenerator(invalid_on_two))
        result = scheduler.run({"x": [1, 2, 3]})
        errors = [r for r in result.results if r.is_error]
        assert len(errors) == 1
        assert errors[0].error.startswith("ScriptValidationError")
        assert "index 5" in errors[0].error

    def test_all_errors_has_no_best(self, sample_bars):
        scheduler = SweepScheduler(sample_bars, SignalGenerator(invalid_on_two))
        result = scheduler.run({"x": [2]})
        assert result.best is None


class TestCancellation:
    """Test stopping at batch boundaries."""

    def test_should_cancel_stops_after_batch(self, sample_bars):
        scheduler = SweepScheduler(sample_bars, SignalGenerator(hold_strategy), batch_size=10)
        result = scheduler.run({"x": list(range(35))}, should_cancel=lambda: True)
        assert result.completed == 10
        assert result.total == 35
        assert result.cancelled
        assert len(result.results) == 10

    def test_cancel_from_progress_callback(self, sample_bars):
        scheduler = SweepScheduler(sample_bars, SignalGenerator(hold_strategy), batch_size=10)

        def on_progress(fraction, completed, total):
            if completed >= 20:
                scheduler.cancel()

        result = scheduler.run({"x": list(range(35))}, on_progress=on_progress)
        assert result.completed == 20
        assert result.cancelled

    def test_closed_iterator_keeps_partial_result(self, sample_bars):
        scheduler = SweepScheduler(sample_bars, SignalGenerator(hold_strategy), batch_size=10)
        batches = scheduler.iter_batches({"x": list(range(35))})
        next(batches)
        batches.close()
        assert scheduler.last_result.completed == 10
        assert scheduler.last_result.cancelled


class TestAsyncAndDetail:
    """Test the async driver and detailed re-runs."""

    def test_run_async_matches_run(self, sample_bars):
        generator = SignalGenerator(ma_crossover)
        space = {"fast_ma": [3, 5], "slow_ma": [10, 20]}
        sync_result = SweepScheduler(sample_bars, generator, batch_size=3).run(space)

        progress = []
        async_result = asyncio.run(
            SweepScheduler(sample_bars, generator, batch_size=3).run_async(
                space, on_progress=lambda f, done, total: progress.append(f)
            )
        )
        assert [r.to_dict() for r in async_result.results] == [r.to_dict() for r in sync_result.results]
        assert progress[-1] == 1.0

    def test_deterministic(self, sample_bars):
        generator = SignalGenerator(ma_crossover)
        space = {"fast_ma": [3, 5, 8], "slow_ma": [13, 21]}
        first = SweepScheduler(sample_bars, generator).run(space)
        second = SweepScheduler(sample_bars, generator).run(space)
        assert [r.to_dict() for r in first.results] == [r.to_dict() for r in second.results]

    def test_recompute_detail(self, sample_bars):
        scheduler = SweepScheduler(sample_bars, SignalGenerator(ma_crossover))
        result = scheduler.run({"fast_ma": [3, 5], "slow_ma": [10, 20]})
        best = result.best
        detail = scheduler.recompute_detail(best.parameters)
        assert isinstance(detail, DetailedRun)
        assert detail.result.final_value == pytest.approx(best.final_value)
        assert detail.result.total_trades == best.total_trades
        assert len(detail.trades) == best.total_trades
        assert all(t.timestamp is not None for t in detail.trades)

    def test_parallel_matches_sequential(self, sample_bars):
        """A process pool gives the same ranked results as the in-process run."""
        generator = SignalGenerator(ma_crossover)
        space = {"fast_ma": [3, 5, 8], "slow_ma": [13, 21]}
        sequential = SweepScheduler(sample_bars, generator, batch_size=4).run(space)
        parallel = SweepScheduler(sample_bars, generator, batch_size=4, max_workers=2).run(space)
        assert [r.to_dict() for r in parallel.results] == [r.to_dict() for r in sequential.results]
