"""
Summaries of sweep results.

Flattens ranked BacktestResults into a DataFrame (one column per
parameter plus metrics), aggregates final value per parameter value and
produces a short summary of a SweepResult.
"""
from typing import Any, Dict, Iterable

import pandas as pd

from ..evaluation.portfolio_types import BacktestResult
from .scheduler import SweepResult

METRIC_COLUMNS = [
    "final_value", "total_return", "win_rate", "total_trades",
    "max_drawdown", "max_drawdown_pct", "total_fees", "avg_profit", "signal_count",
]


def results_to_frame(results: Iterable[BacktestResult]) -> pd.DataFrame:
    """
    One row per result, in the given order (rank order for a SweepResult).

    Columns: rank, index, each parameter, the metrics and error.
    """
    rows = []
    for rank, result in enumerate(results, start=1):
        row: Dict[str, Any] = {"rank": rank, "index": result.index}
        row.update(result.parameters.to_dict())
        for column in METRIC_COLUMNS:
            row[column] = getattr(result, column)
        row["error"] = result.error
        rows.append(row)
    if not rows:
        return pd.DataFrame(columns=["rank", "index", *METRIC_COLUMNS, "error"])
    return pd.DataFrame(rows)


def analyze_by_parameter(df: pd.DataFrame, parameter: str) -> pd.DataFrame:
    """Aggregate final value and return by one parameter's values (successful runs only)."""
    if parameter not in df.columns:
        raise KeyError(f"Parameter '{parameter}' not in results. Available: {list(df.columns)}")
    ok = df[df["error"].isna()]
    stats = ok.groupby(parameter).agg({
        "final_value": ["mean", "max", "count"],
        "total_return": "mean",
        "win_rate": "mean",
        "total_trades": "mean",
    }).round(4)
    stats.columns = ["_".join(col).strip() for col in stats.columns.values]
    stats = stats.sort_values("final_value_mean", ascending=False)
    return stats.reset_index()


def summarize(sweep_result: SweepResult) -> Dict[str, Any]:
    """Counts of successes/errors, completion state and the best combination."""
    best = sweep_result.best
    return {
        "total": sweep_result.total,
        "completed": sweep_result.completed,
        "cancelled": sweep_result.cancelled,
        "successful": sweep_result.completed - sweep_result.error_count,
        "errors": sweep_result.error_count,
        "elapsed_s": sweep_result.elapsed_s,
        "best_parameters": best.parameters.to_dict() if best else None,
        "best_final_value": best.final_value if best else None,
        "best_total_return": best.total_return if best else None,
    }
