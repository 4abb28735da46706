"""
Portfolio and simulation types: configuration, trades, wallet state, results.

Kept apart from portfolio.py so the sweep layer and reporting can import
result types without pulling in PortfolioSimulator.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from ..shared.defaults import (
    STARTING_DENOMINATION, STARTING_AMOUNT, POSITION_SIZE, FEE_RATE, MAX_FEE_RATE,
    ERROR_FINAL_VALUE, ERROR_TOTAL_RETURN,
)
from ..shared.errors import ConfigError
from ..shared.types import ParameterSet, TradeSide

DENOMINATIONS = ("quote", "coin")


def validate_trade_settings(position_size: float, fee_rate: float) -> None:
    """Validate per-trade settings. Raises ConfigError with clear message on failure."""
    if not (0 < position_size <= 1):
        raise ConfigError(f"position_size must be in (0, 1], got {position_size}")
    if not (0 <= fee_rate <= MAX_FEE_RATE):
        raise ConfigError(f"fee_rate must be in [0, {MAX_FEE_RATE}], got {fee_rate}")


@dataclass(frozen=True)
class SimulationConfig:
    """Starting wallet and default trade settings for the simulator."""
    starting_denomination: str = STARTING_DENOMINATION  # "quote" or "coin"
    starting_amount: float = STARTING_AMOUNT
    position_size: float = POSITION_SIZE  # Fraction of the available side traded per signal
    fee_rate: float = FEE_RATE  # Fees + slippage per trade (0.001 = 0.1%)

    def __post_init__(self):
        if self.starting_denomination not in DENOMINATIONS:
            raise ConfigError(
                f"starting_denomination must be one of {list(DENOMINATIONS)}, got '{self.starting_denomination}'"
            )
        if not self.starting_amount > 0:
            raise ConfigError(f"starting_amount must be > 0, got {self.starting_amount}")
        validate_trade_settings(self.position_size, self.fee_rate)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "starting_denomination": self.starting_denomination,
            "starting_amount": self.starting_amount,
            "position_size": self.position_size,
            "fee_rate": self.fee_rate,
        }


@dataclass(frozen=True)
class Trade:
    """
    One executed trade.

    Detail fields (timestamp onwards) are only filled by detailed runs.
    """
    side: TradeSide
    bar_index: int
    price: float
    amount: float  # Coins sold or bought
    value: float  # Quote received (sell) or spent (buy)
    fee: float

    timestamp: Any = None
    coin_balance: Optional[float] = None
    quote_balance: Optional[float] = None
    total_value: Optional[float] = None
    previous_total: Optional[float] = None
    relative_change: Optional[float] = None  # Sells only: price change since the previous sell
    relative_change_pct: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "side": self.side.value,
            "bar_index": self.bar_index,
            "timestamp": self.timestamp,
            "price": self.price,
            "amount": self.amount,
            "value": self.value,
            "fee": self.fee,
            "coin_balance": self.coin_balance,
            "quote_balance": self.quote_balance,
            "total_value": self.total_value,
            "previous_total": self.previous_total,
            "relative_change": self.relative_change,
            "relative_change_pct": self.relative_change_pct,
        }


@dataclass
class PortfolioState:
    """Mutable wallet for exactly one simulation; never shared between ParameterSets."""
    coin_balance: float
    quote_balance: float
    trades: List[Trade] = field(default_factory=list)
    fees_paid: float = 0.0

    @classmethod
    def fresh(cls, config: SimulationConfig) -> 'PortfolioState':
        """Wallet holding the configured starting amount in the configured denomination."""
        if config.starting_denomination == "coin":
            return cls(coin_balance=float(config.starting_amount), quote_balance=0.0)
        return cls(coin_balance=0.0, quote_balance=float(config.starting_amount))

    def total_value(self, price: float) -> float:
        return self.coin_balance * price + self.quote_balance


@dataclass(frozen=True)
class BacktestResult:
    """
    Metrics of one simulated ParameterSet.

    `error is not None` marks an error result; its numeric fields are
    neutral sentinels and must not be read as performance.
    """
    parameters: ParameterSet
    initial_value: float
    final_value: float
    total_return: float  # Percent
    win_rate: float  # Percent of buy->sell pairs with positive profit
    total_trades: int
    max_drawdown: float  # Absolute, in quote units
    max_drawdown_pct: float  # Percent of initial value
    total_fees: float
    avg_profit: float  # Mean profit of winning pairs
    final_coin_balance: float
    final_quote_balance: float
    signal_count: int = 0
    index: int = 0  # Enumeration index within the sweep
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def from_error(cls, parameters: Mapping[str, Any], error: str, index: int = 0) -> 'BacktestResult':
        """Error result with neutral numeric fields."""
        params = parameters if isinstance(parameters, ParameterSet) else ParameterSet(parameters)
        return cls(
            parameters=params,
            initial_value=0.0,
            final_value=ERROR_FINAL_VALUE,
            total_return=ERROR_TOTAL_RETURN,
            win_rate=0.0,
            total_trades=0,
            max_drawdown=0.0,
            max_drawdown_pct=0.0,
            total_fees=0.0,
            avg_profit=0.0,
            final_coin_balance=0.0,
            final_quote_balance=0.0,
            signal_count=0,
            index=index,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Summary record; `error` is only present on error results."""
        record = {
            "parameters": self.parameters.to_dict(),
            "initial_value": self.initial_value,
            "final_value": self.final_value,
            "total_return": self.total_return,
            "win_rate": self.win_rate,
            "total_trades": self.total_trades,
            "max_drawdown": self.max_drawdown,
            "max_drawdown_pct": self.max_drawdown_pct,
            "total_fees": self.total_fees,
            "avg_profit": self.avg_profit,
            "final_coin_balance": self.final_coin_balance,
            "final_quote_balance": self.final_quote_balance,
            "signal_count": self.signal_count,
            "index": self.index,
        }
        if self.error is not None:
            record["error"] = self.error
        return record


@dataclass(frozen=True)
class TradeStatistics:
    """Aggregate statistics of a detailed run's trade log."""
    total_trades: int
    buy_trades: int
    sell_trades: int
    avg_trade_value: float
    total_volume: float


@dataclass
class DetailedRun:
    """Full re-run of one ParameterSet: metrics, trade log and per-bar values."""
    result: BacktestResult
    trades: List[Trade]  # Oldest first
    value_history: np.ndarray
    statistics: TradeStatistics

    def trades_frame(self) -> pd.DataFrame:
        """Trade log as a DataFrame (one row per trade, oldest first)."""
        columns = list(Trade.__dataclass_fields__)
        if not self.trades:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame([t.to_dict() for t in self.trades])
