"""
Volatility-adaptive EMA differential strategy.

The EMA period follows volatility: calm markets use the long period
(ema_ceiling), volatile markets the short one (ema_floor). The smoothed
percentage distance between price and that dynamic EMA decides the
signal: above the EMA buys, below sells, and a deep dip below
force_buy_threshold buys anyway.
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import numpy as np

from ..indicators import technical
from ..shared.defaults import (
    EMA_FLOOR, EMA_CEILING, VOL_FLOOR, VOL_CEILING, VOLATILITY_WINDOW,
    SMOOTH_LENGTH, VOLT_SCALE, FORCE_BUY_THRESHOLD,
)


def _validate_params(
    *,
    ema_floor: int,
    ema_ceiling: int,
    vol_floor: float,
    vol_ceiling: float,
    smooth_length: int,
    force_buy_threshold: float,
    volatility_window: int,
) -> None:
    """Validate strategy parameters. Raises ValueError with clear message on failure."""
    if ema_floor >= ema_ceiling:
        raise ValueError(f"ema_floor ({ema_floor}) must be less than ema_ceiling ({ema_ceiling})")
    if vol_floor >= vol_ceiling:
        raise ValueError(f"vol_floor ({vol_floor}) must be less than vol_ceiling ({vol_ceiling})")
    if ema_floor < 1:
        raise ValueError(f"ema_floor must be >= 1, got {ema_floor}")
    if smooth_length < 1:
        raise ValueError(f"smooth_length must be >= 1, got {smooth_length}")
    if force_buy_threshold > 0:
        raise ValueError(f"force_buy_threshold must be <= 0, got {force_buy_threshold}")
    if volatility_window < 1:
        raise ValueError(f"volatility_window must be >= 1, got {volatility_window}")


@dataclass(frozen=True)
class EmaDifferentialParams:
    """Parameters of the EMA differential strategy (defaults from shared.defaults)."""
    ema_floor: int = EMA_FLOOR
    ema_ceiling: int = EMA_CEILING
    vol_floor: float = VOL_FLOOR
    vol_ceiling: float = VOL_CEILING
    smooth_length: int = SMOOTH_LENGTH
    volt_scale: float = VOLT_SCALE
    force_buy_threshold: float = FORCE_BUY_THRESHOLD
    volatility_window: int = VOLATILITY_WINDOW

    def __post_init__(self):
        _validate_params(
            ema_floor=self.ema_floor,
            ema_ceiling=self.ema_ceiling,
            vol_floor=self.vol_floor,
            vol_ceiling=self.vol_ceiling,
            smooth_length=self.smooth_length,
            force_buy_threshold=self.force_buy_threshold,
            volatility_window=self.volatility_window,
        )

    @classmethod
    def from_params(cls, params: Optional[Mapping[str, Any]]) -> 'EmaDifferentialParams':
        """Build from a ParameterSet; missing keys take their defaults, unrelated keys are ignored."""
        params = params or {}
        return cls(
            ema_floor=int(params.get("ema_floor", EMA_FLOOR)),
            ema_ceiling=int(params.get("ema_ceiling", EMA_CEILING)),
            vol_floor=float(params.get("vol_floor", VOL_FLOOR)),
            vol_ceiling=float(params.get("vol_ceiling", VOL_CEILING)),
            smooth_length=int(params.get("smooth_length", SMOOTH_LENGTH)),
            volt_scale=float(params.get("volt_scale", VOLT_SCALE)),
            force_buy_threshold=float(params.get("force_buy_threshold", FORCE_BUY_THRESHOLD)),
            volatility_window=int(params.get("volatility_window", VOLATILITY_WINDOW)),
        )


def volatility_percent(prices: np.ndarray, window: int) -> np.ndarray:
    """Rolling std as a percentage of price; NaN where undefined or price <= 0."""
    prices = np.asarray(prices, dtype=np.float64)
    std = technical.rolling_std(prices, window)
    with np.errstate(divide="ignore", invalid="ignore"):
        pct = np.where(prices > 0, std / prices * 100.0, np.nan)
    return pct


def map_volatility_to_period(
    volatility_pct: np.ndarray,
    ema_floor: int,
    ema_ceiling: int,
    vol_floor: float,
    vol_ceiling: float,
) -> np.ndarray:
    """
    Map volatility to an EMA period per bar.

    <= vol_floor (or undefined) -> ema_ceiling, >= vol_ceiling -> ema_floor,
    in between inverse linear interpolation rounded half-up.
    """
    vol = np.asarray(volatility_pct, dtype=np.float64)
    position = (vol - vol_floor) / (vol_ceiling - vol_floor)
    interpolated = np.floor(ema_floor + (1.0 - position) * (ema_ceiling - ema_floor) + 0.5)
    with np.errstate(invalid="ignore"):
        periods = np.where(
            np.isnan(vol) | (vol <= vol_floor),
            ema_ceiling,
            np.where(vol >= vol_ceiling, ema_floor, interpolated),
        )
    return periods.astype(np.int64)


def dynamic_ema(prices: np.ndarray, periods: np.ndarray) -> np.ndarray:
    """
    EMA whose period changes per bar.

    Where at least periods[i] samples are available the value is the
    SMA-seeded EMA over exactly the last periods[i] samples, which is that
    window's mean. Earlier bars fall back to one global EMA computed with
    the largest period.
    """
    prices = np.asarray(prices, dtype=np.float64)
    periods = np.asarray(periods, dtype=np.int64)
    n = len(prices)
    result = np.full(n, np.nan)
    if n == 0:
        return result

    global_ema = technical.ema(prices, int(periods.max()))
    local = np.arange(n) >= periods - 1
    result[~local] = global_ema[~local]
    for period in np.unique(periods[local]):
        mask = local & (periods == period)
        result[mask] = technical.sma(prices, int(period))[mask]
    return result


def ema_differential(signal_prices, execution_prices, params, ta=technical) -> np.ndarray:
    """
    Generate EMA differential signals.

    Args:
        signal_prices: Decision prices (usually OHLC4)
        execution_prices: Execution prices (unused, part of the strategy contract)
        params: ParameterSet; unknown keys are ignored
        ta: Indicator module

    Returns:
        int8 signal array: 1 buy, -1 sell, 0 hold
    """
    p = EmaDifferentialParams.from_params(params)
    prices = np.asarray(signal_prices, dtype=np.float64)

    vol_pct = volatility_percent(prices, p.volatility_window)
    periods = map_volatility_to_period(vol_pct, p.ema_floor, p.ema_ceiling, p.vol_floor, p.vol_ceiling)
    ema = dynamic_ema(prices, periods)

    with np.errstate(divide="ignore", invalid="ignore"):
        raw_diff = np.where(ema > 0, (prices - ema) / ema * 100.0 * p.volt_scale, np.nan)
    smoothed = ta.compact_ema(raw_diff, p.smooth_length)

    signals = np.zeros(len(prices), dtype=np.int8)
    defined = ~np.isnan(smoothed)
    with np.errstate(invalid="ignore"):
        buy = defined & ((smoothed > 0) | (smoothed <= p.force_buy_threshold))
        sell = defined & (smoothed < 0) & ~buy
    signals[buy] = 1
    signals[sell] = -1
    return signals
