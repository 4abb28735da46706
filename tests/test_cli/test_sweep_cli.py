"""
Tests for the sweep and params command-line entry points.
"""
from pathlib import Path

import pytest
import numpy as np
import pandas as pd
import cli.params as params_cli
import cli.sweep as sweep_cli

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the CLI from replacing pytest's log handlers."""
    monkeypatch.setattr(sweep_cli, "setup_logging", lambda verbose=False: None)


@pytest.fixture
def data_path(tmp_path):
    """CSV with 150 hourly random-walk bars."""
    rng = np.random.default_rng(1)
    close = 100 * np.exp(np.cumsum(rng.normal(0, 0.01, 150)))
    open_ = np.concatenate([[close[0]], close[:-1]])
    df = pd.DataFrame({
        'timestamp': pd.date_range('2024-01-01', periods=150, freq='h').strftime('%Y-%m-%d %H:%M:%S'),
        'open': open_,
        'high': np.maximum(open_, close) * 1.002,
        'low': np.minimum(open_, close) * 0.998,
        'close': close,
        'volume': np.full(150, 500.0),
    })
    path = tmp_path / "bars.csv"
    df.to_csv(path, index=False)
    return path


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "sweep.yaml"
    path.write_text(
        "name: cli_test\n"
        "strategy: ma_crossover\n"
        "sweep:\n"
        "  batch_size: 2\n"
        "parameters:\n"
        "  fast_ma: [3, 5]\n"
        "  slow_ma: [10, 20]\n"
    )
    return path


class TestSweepCli:
    """Test cli.sweep."""

    def test_runs_and_prints_ranking(self, data_path, config_path, capsys):
        exit_code = sweep_cli.main(["--data", str(data_path), "--config", str(config_path), "--top", "3"])
        out = capsys.readouterr().out
        assert exit_code == 0
        assert "PARAMETER SWEEP" in out
        assert "Combinations: 4" in out
        assert "Completed 4/4 combinations" in out
        assert "TOP 3 COMBINATIONS" in out

    def test_detail_prints_trade_log(self, data_path, config_path, capsys):
        exit_code = sweep_cli.main(["--data", str(data_path), "--config", str(config_path), "--detail", "1"])
        out = capsys.readouterr().out
        assert exit_code == 0
        assert "TRADE LOG - RANK 1" in out

    def test_detail_rank_out_of_range(self, data_path, config_path, capsys):
        exit_code = sweep_cli.main(["--data", str(data_path), "--config", str(config_path), "--detail", "9"])
        assert exit_code == 1
        assert "--detail rank" in capsys.readouterr().err

    def test_script_override_and_csv_output(self, data_path, config_path, tmp_path):
        output = tmp_path / "out" / "results.csv"
        exit_code = sweep_cli.main([
            "--data", str(data_path),
            "--config", str(config_path),
            "--script", str(PROJECT_ROOT / "strategies" / "ma_crossover.py"),
            "--output", str(output),
        ])
        assert exit_code == 0
        results = pd.read_csv(output)
        assert len(results) == 4
        assert list(results["rank"]) == [1, 2, 3, 4]

    def test_missing_data_file(self, tmp_path, config_path, capsys):
        exit_code = sweep_cli.main(["--data", str(tmp_path / "missing.csv"), "--config", str(config_path)])
        assert exit_code == 1
        assert "Data file not found" in capsys.readouterr().err

    def test_invalid_config(self, data_path, tmp_path, capsys):
        bad = tmp_path / "bad.yaml"
        bad.write_text("strategy: nope\nparameters:\n  x: [1]\n")
        exit_code = sweep_cli.main(["--data", str(data_path), "--config", str(bad)])
        assert exit_code == 1
        assert "Unknown strategy" in capsys.readouterr().err


class TestParamsCli:
    """Test cli.params."""

    def test_catalog(self, capsys):
        assert params_cli.main([]) == 0
        out = capsys.readouterr().out
        assert "PARAMETER REFERENCE" in out
        assert "ema_floor" in out
        assert "Range: 1-200" in out

    def test_script_parameters(self, capsys):
        script = PROJECT_ROOT / "strategies" / "ma_crossover.py"
        assert params_cli.main(["--script", str(script)]) == 0
        out = capsys.readouterr().out
        assert "fast_ma" in out
        assert "slow_ma" in out

    def test_missing_script(self, tmp_path, capsys):
        assert params_cli.main(["--script", str(tmp_path / "nope.py")]) == 1

    def test_script_with_unpaired_parameter_warns(self, tmp_path, capsys):
        script = tmp_path / "fast_only.py"
        script.write_text(
            "def generate_signals(signal_prices, execution_prices, params, ta):\n"
            "    fast = ta.ema(signal_prices, int(params['fast_ma']))\n"
            "    return np.zeros(len(signal_prices), dtype=int)\n"
        )
        assert params_cli.main(["--script", str(script)]) == 0
        assert "Warning: 'fast_ma' is set without 'slow_ma'" in capsys.readouterr().out
