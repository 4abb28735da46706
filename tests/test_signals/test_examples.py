"""
Tests for the built-in example strategies and the strategy registry.
"""
import pytest
import numpy as np
from paramsweep.indicators import technical
from paramsweep.shared.errors import ConfigError
from paramsweep.shared.types import ParameterSet
from paramsweep.signals.examples import (
    STRATEGIES,
    get_strategy,
    ma_crossover,
    price_momentum,
    rsi_reversion,
)


@pytest.fixture
def v_shaped_prices():
    """Falling then rising prices."""
    return np.concatenate([np.linspace(150, 100, 60), np.linspace(100, 160, 60)])


class TestRegistry:
    """Test strategy lookup."""

    def test_builtin_names(self):
        assert set(STRATEGIES) == {"ema_differential", "ma_crossover", "rsi_reversion", "price_momentum"}

    def test_get_strategy(self):
        assert get_strategy("ma_crossover") is ma_crossover

    def test_unknown_strategy(self):
        with pytest.raises(ConfigError, match="Unknown strategy"):
            get_strategy("does_not_exist")


class TestMaCrossover:
    """Test the EMA crossover example."""

    def test_buys_on_recovery(self, v_shaped_prices):
        params = ParameterSet(fast_ma=5, slow_ma=20)
        signals = ma_crossover(v_shaped_prices, v_shaped_prices, params, technical)
        buys = np.flatnonzero(signals == 1)
        assert len(buys) == 1
        assert buys[0] > 60

    def test_fast_must_be_below_slow(self, v_shaped_prices):
        with pytest.raises(ValueError, match="fast_ma"):
            ma_crossover(v_shaped_prices, v_shaped_prices, ParameterSet(fast_ma=20, slow_ma=20), technical)


class TestRsiReversion:
    """Test the RSI mean-reversion example."""

    def test_sells_when_overbought(self):
        prices = 100 + np.arange(40, dtype=float)
        signals = rsi_reversion(prices, prices, ParameterSet(rsi_period=14), technical)
        assert (signals[:14] == 0).all()
        assert (signals[14:] == -1).all()

    def test_thresholds_must_be_ordered(self):
        prices = np.arange(40, dtype=float)
        with pytest.raises(ValueError, match="rsi_oversold"):
            rsi_reversion(prices, prices, ParameterSet(rsi_oversold=70, rsi_overbought=30), technical)


class TestPriceMomentum:
    """Test the bar-to-bar momentum example."""

    def test_signals_on_large_moves(self):
        prices = np.array([100.0, 103.0, 100.0, 100.5])
        signals = price_momentum(prices, prices, ParameterSet(), technical)
        np.testing.assert_array_equal(signals, [0, 1, -1, 0])

    def test_single_bar(self):
        signals = price_momentum(np.array([100.0]), np.array([100.0]), ParameterSet(), technical)
        np.testing.assert_array_equal(signals, [0])
