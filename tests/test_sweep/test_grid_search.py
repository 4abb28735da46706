"""
Tests for parameter-space expansion and ParameterSet.
"""
import inspect
import logging
import math
import pickle

import pytest
from paramsweep.shared.errors import ConfigError
from paramsweep.shared.types import ParameterSet
from paramsweep.sweep.grid_search import (
    count_combinations,
    expand_parameter_space,
    iter_parameter_sets,
    normalize_parameter_space,
    parameter_pair_warnings,
    validate_combination_count,
)


class TestExpansion:
    """Test Cartesian product expansion."""

    def test_combination_count_is_product(self):
        space = {"a": [1, 2, 3], "b": [1, 2], "c": [5], "d": [0.1, 0.2, 0.3, 0.4]}
        assert count_combinations(space) == 3 * 2 * 1 * 4
        assert len(expand_parameter_space(space)) == count_combinations(space)

    def test_two_floors_one_ceiling(self):
        result = expand_parameter_space({"ema_floor": [5, 10], "ema_ceiling": [30]})
        assert result == [
            {"ema_floor": 5, "ema_ceiling": 30},
            {"ema_floor": 10, "ema_ceiling": 30},
        ]
        assert all(isinstance(p, ParameterSet) for p in result)

    def test_rightmost_key_varies_fastest(self):
        result = expand_parameter_space({"a": [1, 2], "b": [3, 4]})
        assert [(p["a"], p["b"]) for p in result] == [(1, 3), (1, 4), (2, 3), (2, 4)]

    def test_key_order_preserved(self):
        result = expand_parameter_space({"z": [1], "a": [2]})
        assert list(result[0]) == ["z", "a"]

    def test_scalar_becomes_single_value(self):
        assert normalize_parameter_space({"a": 3, "b": (1, 2)}) == {"a": (3,), "b": (1, 2)}

    def test_lazy_iteration(self):
        assert inspect.isgenerator(iter_parameter_sets({"a": [1, 2]}))

    def test_large_space_counted_without_expansion(self):
        space = {name: list(range(10)) for name in "abcdefgh"}
        assert count_combinations(space) == 10 ** 8
        first = next(iter_parameter_sets(space))
        assert first == {name: 0 for name in "abcdefgh"}


class TestMalformedSpace:
    """Test ConfigError on malformed spaces."""

    @pytest.mark.parametrize("space, message", [
        ({}, "empty"),
        ({"a": []}, "empty value set"),
        ({"a": [1, "x"]}, "non-numeric"),
        ({"a": [True]}, "non-numeric"),
        ({"a": [math.nan]}, "non-finite"),
        ({"a": [math.inf]}, "non-finite"),
        ({1: [1]}, "non-empty strings"),
        ({"": [1]}, "non-empty strings"),
        ([("a", [1])], "mapping"),
    ])
    def test_rejected(self, space, message):
        with pytest.raises(ConfigError, match=message):
            count_combinations(space)


class TestCombinationLimits:
    """Test the combination cap and warnings."""

    def test_within_limits(self, caplog):
        assert validate_combination_count(500) == 500
        assert not caplog.records

    def test_zero_combinations(self):
        with pytest.raises(ConfigError, match="No parameter combinations"):
            validate_combination_count(0)

    def test_over_cap(self):
        with pytest.raises(ConfigError, match="Too many combinations \\(50,001\\)"):
            validate_combination_count(50_001)

    def test_custom_cap(self):
        with pytest.raises(ConfigError, match="at most 100 allowed"):
            validate_combination_count(101, limit=100)

    def test_large_sweep_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="paramsweep.sweep.grid_search"):
            assert validate_combination_count(10_001) == 10_001
        assert "Large sweep: 10,001 combinations" in caplog.text


class TestParameterPairs:
    """Test warnings for parameters swept without their partner."""

    def test_complete_pairs(self):
        names = ["ema_floor", "ema_ceiling", "fast_ma", "slow_ma", "rsi_period", "rsi_oversold"]
        assert parameter_pair_warnings(names) == []

    def test_missing_partners(self):
        warnings = parameter_pair_warnings(["ema_floor", "vol_ceiling", "slow_ma", "rsi_period"])
        assert warnings == [
            "'ema_floor' is set without 'ema_ceiling'; consider adding it",
            "'vol_ceiling' is set without 'vol_floor'; consider adding it",
            "'slow_ma' is set without 'fast_ma'; consider adding it",
            "'rsi_period' without 'rsi_overbought'/'rsi_oversold' levels",
        ]

    def test_custom_names_ignored(self):
        assert parameter_pair_warnings(["my_threshold"]) == []


class TestParameterSet:
    """Test the immutable parameter mapping."""

    def test_mapping_behaviour(self):
        params = ParameterSet({"a": 1}, b=2.5)
        assert params["a"] == 1
        assert params.get("c", 7) == 7
        assert len(params) == 2
        assert params.get_int("a", 0) == 1
        assert params.get_float("b", 0.0) == 2.5

    def test_immutable(self):
        params = ParameterSet(a=1)
        with pytest.raises(AttributeError):
            params.a = 2
        with pytest.raises(TypeError):
            params["a"] = 2

    def test_hashable_and_equal(self):
        assert hash(ParameterSet(a=1, b=2)) == hash(ParameterSet(a=1, b=2))
        assert ParameterSet(a=1) == {"a": 1}
        assert len({ParameterSet(a=1), ParameterSet(a=1)}) == 1

    def test_pickle(self):
        params = ParameterSet(a=1, b=0.5)
        assert pickle.loads(pickle.dumps(params)) == params

    def test_repr(self):
        assert repr(ParameterSet(a=1)) == "ParameterSet(a=1)"
