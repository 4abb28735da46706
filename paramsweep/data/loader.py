"""
Market-data loader for OHLCV bars.

Loads bars from CSV files with support for:
- Case-insensitive column names (timestamp/date, open, high, low, close, volume)
- Epoch timestamps (seconds, milliseconds or microseconds, detected from
  their magnitude) or date strings
- Date range filtering
- Building a bar frame from in-memory Bar records or dicts

No gap filling or resampling is done: the bars are used exactly as given.
"""
import logging
from pathlib import Path
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Union

import pandas as pd

from ..shared.errors import InputError
from ..shared.types import Bar

logger = logging.getLogger(__name__)

OHLCV_COLUMNS = ["open", "high", "low", "close", "volume"]
REQUIRED_COLUMNS = ["open", "high", "low", "close"]
TIME_COLUMNS = ("timestamp", "date", "datetime", "time", "open_time")

# Largest epoch value read in each unit
EPOCH_UNIT_LIMITS = ((1e11, "s"), (1e14, "ms"), (1e17, "us"))


def _epoch_unit(times: pd.Series) -> str:
    """Epoch unit of numeric timestamps, judged by their largest magnitude."""
    largest = times.abs().max()
    for limit, unit in EPOCH_UNIT_LIMITS:
        if largest < limit:
            return unit
    return "ns"


def _normalize_frame(df: pd.DataFrame, source: str) -> pd.DataFrame:
    """Lower-case columns, index by time, keep OHLCV in a fixed order."""
    df = df.rename(columns=lambda c: str(c).strip().lower())

    time_column = next((c for c in TIME_COLUMNS if c in df.columns), None)
    if time_column is not None:
        times = df[time_column]
        if pd.api.types.is_numeric_dtype(times):
            index = pd.to_datetime(times, unit=_epoch_unit(times))
        else:
            index = pd.to_datetime(times)
        df = df.drop(columns=[time_column])
        df.index = pd.DatetimeIndex(index, name="timestamp")

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise InputError(f"{source}: missing required columns {missing}. Available: {list(df.columns)}")
    if "volume" not in df.columns:
        df["volume"] = 0.0

    df = df[OHLCV_COLUMNS].astype(float)
    if isinstance(df.index, pd.DatetimeIndex):
        df = df.sort_index()
    return df


class DataLoader:
    """
    Loads OHLCV bars from a CSV file.

    Supports date range filtering when the file carries timestamps.
    """

    def __init__(self, data_path: Union[str, Path]):
        """
        Initialize the data loader.

        Args:
            data_path: Path to the CSV file containing the bars
        """
        self.data_path = Path(data_path)
        if not self.data_path.exists():
            raise FileNotFoundError(f"Data file not found: {self.data_path}")

    def load(
        self,
        start_date: Optional[Union[str, datetime, pd.Timestamp]] = None,
        end_date: Optional[Union[str, datetime, pd.Timestamp]] = None,
    ) -> pd.DataFrame:
        """
        Load bars from the CSV file with optional filtering.

        Args:
            start_date: Start date for filtering (inclusive). If None, no start filter.
            end_date: End date for filtering (inclusive). If None, no end filter.

        Returns:
            DataFrame with columns open, high, low, close, volume (sorted by time)
        """
        df = _normalize_frame(pd.read_csv(self.data_path), str(self.data_path))

        if start_date is not None or end_date is not None:
            if not isinstance(df.index, pd.DatetimeIndex):
                raise InputError(f"{self.data_path}: date filtering needs a timestamp column")
            if start_date is not None:
                df = df[df.index >= pd.to_datetime(start_date)]
            if end_date is not None:
                df = df[df.index <= pd.to_datetime(end_date)]

        logger.info(f"Loaded {len(df)} bars from {self.data_path}")
        return df


def load_bars(
    path: Union[str, Path],
    start_date: Optional[Union[str, datetime, pd.Timestamp]] = None,
    end_date: Optional[Union[str, datetime, pd.Timestamp]] = None,
) -> pd.DataFrame:
    """Load an OHLCV CSV into a bar frame (convenience wrapper around DataLoader)."""
    return DataLoader(path).load(start_date=start_date, end_date=end_date)


def bars_to_frame(bars: Iterable[Union[Bar, Mapping[str, Any]]]) -> pd.DataFrame:
    """
    Build a bar frame from Bar records or dicts.

    Dict keys are matched case-insensitively; a `timestamp` (epoch value or
    date string) becomes the index when present.
    """
    records = []
    for bar in bars:
        if isinstance(bar, Bar):
            records.append({
                "timestamp": bar.timestamp, "open": bar.open, "high": bar.high,
                "low": bar.low, "close": bar.close, "volume": bar.volume,
            })
        else:
            records.append(dict(bar))
    if not records:
        raise InputError("No bars provided")

    df = pd.DataFrame.from_records(records)
    df = df.rename(columns=lambda c: str(c).strip().lower())
    if "timestamp" in df.columns and df["timestamp"].isna().all():
        df = df.drop(columns=["timestamp"])
    return _normalize_frame(df, "bars")
