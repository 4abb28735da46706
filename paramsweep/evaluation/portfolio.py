"""
Single-asset portfolio simulator with fee/slippage modelling.

Simulates trading with a wallet that:
- Starts with a configured amount of quote currency or coins
- Cannot be overextended (no debt, no shorts)
- Trades a fraction (position_size) of the available side per signal
- Pays fees + slippage on every trade
"""
from typing import Any, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..shared.errors import InputError
from ..shared.types import ParameterSet, TradeSide, SIGNAL_BUY, SIGNAL_SELL
from .portfolio_types import (
    SimulationConfig, Trade, PortfolioState, BacktestResult, TradeStatistics, DetailedRun,
    validate_trade_settings,
)


__all__ = ["PortfolioSimulator", "SimulationConfig", "BacktestResult", "DetailedRun", "Trade", "PortfolioState"]


def _trade_pairs(trades: Sequence[Trade]) -> List[float]:
    """
    Profits of buy->sell round trips in execution order.

    A sell closes the most recent unpaired buy; profit is
    (sell.price - buy.price) * buy.amount.
    """
    profits = []
    open_buy: Optional[Trade] = None
    for trade in trades:
        if trade.side is TradeSide.BUY:
            open_buy = trade
        elif open_buy is not None:
            profits.append((trade.price - open_buy.price) * open_buy.amount)
            open_buy = None
    return profits


def _max_drawdown(values: np.ndarray) -> float:
    """Largest peak-to-trough drop of the per-bar values (absolute)."""
    if len(values) == 0:
        return 0.0
    peaks = np.maximum.accumulate(values)
    return float(np.max(peaks - values))


def _trade_statistics(trades: Sequence[Trade]) -> TradeStatistics:
    if not trades:
        return TradeStatistics(total_trades=0, buy_trades=0, sell_trades=0, avg_trade_value=0.0, total_volume=0.0)
    buys = sum(1 for t in trades if t.side is TradeSide.BUY)
    total_volume = float(sum(t.value for t in trades))
    return TradeStatistics(
        total_trades=len(trades),
        buy_trades=buys,
        sell_trades=len(trades) - buys,
        avg_trade_value=total_volume / len(trades),
        total_volume=total_volume,
    )


class PortfolioSimulator:
    """
    Simulates one ParameterSet's signals against the execution prices.

    The simulator itself holds only configuration; every call to
    simulate() builds a fresh PortfolioState, so one instance can serve a
    whole sweep.
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        """
        Initialize the portfolio simulator.

        Args:
            config: Starting wallet and default trade settings
                (default: SimulationConfig() from shared.defaults)
        """
        self.config = config or SimulationConfig()

    def _trade_settings(self, parameters: Optional[Mapping[str, Any]]) -> Tuple[float, float]:
        """position_size and fee_rate from the ParameterSet, falling back to the config."""
        params = parameters or {}
        position_size = float(params.get("position_size", self.config.position_size))
        fee_rate = float(params.get("fee_rate", self.config.fee_rate))
        validate_trade_settings(position_size, fee_rate)
        return position_size, fee_rate

    def _fee_for_trade(self, trade_value: float, fee_rate: float) -> float:
        """Fee for one trade: trade_value * fee_rate."""
        return trade_value * fee_rate

    def _initial_value(self, first_price: float) -> float:
        if self.config.starting_denomination == "coin":
            return self.config.starting_amount * first_price
        return float(self.config.starting_amount)

    def simulate(
        self,
        execution_prices: Sequence[float],
        signals: Sequence[int],
        parameters: Optional[Mapping[str, Any]] = None,
        timestamps: Optional[Sequence[Any]] = None,
        record_detail: bool = False,
        index: int = 0,
    ):
        """
        Simulate a signal series.

        Args:
            execution_prices: Price at which each bar's signal executes
            signals: One signal per bar (1 buy, -1 sell, 0 hold)
            parameters: ParameterSet (position_size / fee_rate override the config)
            timestamps: Optional bar timestamps (recorded on detailed trades)
            record_detail: If True, return a DetailedRun with the full trade log
            index: Enumeration index stored on the result

        Returns:
            BacktestResult, or DetailedRun when record_detail is True

        Raises:
            InputError: On empty input, a length mismatch or NaN prices
                (before any wallet state is created)
        """
        prices = np.asarray(execution_prices, dtype=np.float64)
        signal_array = np.asarray(signals)
        n = len(prices)
        if n == 0:
            raise InputError("No execution prices to simulate")
        if len(signal_array) != n:
            raise InputError(f"Signal count {len(signal_array)} does not match price count {n}")
        if np.isnan(prices).any():
            raise InputError("Execution prices contain NaN values")
        if timestamps is not None and len(timestamps) != n:
            raise InputError(f"Timestamp count {len(timestamps)} does not match price count {n}")

        params = parameters if isinstance(parameters, ParameterSet) else ParameterSet(parameters or {})
        position_size, fee_rate = self._trade_settings(params)

        state = PortfolioState.fresh(self.config)
        initial_value = self._initial_value(float(prices[0]))

        # Balances after each signal bar; carried forward to value every bar
        coin_track = np.full(n, np.nan)
        quote_track = np.full(n, np.nan)
        last_sell_price: Optional[float] = None
        price_list = prices.tolist()

        for i in np.flatnonzero(signal_array).tolist():
            signal = signal_array[i]
            price = price_list[i]
            previous_total = state.total_value(price)
            trade = None

            if signal == SIGNAL_SELL and state.coin_balance > 0:
                coins = state.coin_balance * position_size
                gross = coins * price
                fee = self._fee_for_trade(gross, fee_rate)
                proceeds = gross * (1 - fee_rate)
                state.coin_balance -= coins
                state.quote_balance += proceeds
                trade = Trade(side=TradeSide.SELL, bar_index=i, price=price, amount=coins, value=proceeds, fee=fee)
            elif signal == SIGNAL_BUY and state.quote_balance > 0:
                spend = state.quote_balance * position_size
                fee = self._fee_for_trade(spend, fee_rate)
                coins = spend / price * (1 - fee_rate)
                state.quote_balance -= spend
                state.coin_balance += coins
                trade = Trade(side=TradeSide.BUY, bar_index=i, price=price, amount=coins, value=spend, fee=fee)

            if trade is None:
                continue
            state.fees_paid += trade.fee
            if record_detail:
                relative_change = relative_change_pct = None
                if trade.side is TradeSide.SELL:
                    relative_change = relative_change_pct = 0.0
                    if last_sell_price is not None:
                        relative_change = price - last_sell_price
                        relative_change_pct = relative_change / last_sell_price * 100
                    last_sell_price = price
                trade = Trade(
                    side=trade.side, bar_index=i, price=price, amount=trade.amount,
                    value=trade.value, fee=trade.fee,
                    timestamp=timestamps[i] if timestamps is not None else None,
                    coin_balance=state.coin_balance,
                    quote_balance=state.quote_balance,
                    total_value=state.total_value(price),
                    previous_total=previous_total,
                    relative_change=relative_change,
                    relative_change_pct=relative_change_pct,
                )
            state.trades.append(trade)
            coin_track[i] = state.coin_balance
            quote_track[i] = state.quote_balance

        start = PortfolioState.fresh(self.config)
        coins_held = pd.Series(coin_track).ffill().fillna(start.coin_balance).to_numpy()
        quote_held = pd.Series(quote_track).ffill().fillna(start.quote_balance).to_numpy()
        values = coins_held * prices + quote_held

        result = self._finalize(state, params, initial_value, price_list[-1], values, signal_array, index)
        if not record_detail:
            return result
        return DetailedRun(
            result=result,
            trades=list(state.trades),
            value_history=values,
            statistics=_trade_statistics(state.trades),
        )

    def _finalize(
        self,
        state: PortfolioState,
        params: ParameterSet,
        initial_value: float,
        final_price: float,
        values: np.ndarray,
        signals: np.ndarray,
        index: int,
    ) -> BacktestResult:
        final_value = state.total_value(final_price)
        profits = _trade_pairs(state.trades)
        winners = [p for p in profits if p > 0]
        max_drawdown = _max_drawdown(values)

        return BacktestResult(
            parameters=params,
            initial_value=initial_value,
            final_value=final_value,
            total_return=(final_value - initial_value) / initial_value * 100 if initial_value > 0 else 0.0,
            win_rate=len(winners) / len(profits) * 100 if profits else 0.0,
            total_trades=len(state.trades),
            max_drawdown=max_drawdown,
            max_drawdown_pct=max_drawdown / initial_value * 100 if initial_value > 0 else 0.0,
            total_fees=state.fees_paid,
            avg_profit=sum(winners) / len(winners) if winners else 0.0,
            final_coin_balance=state.coin_balance,
            final_quote_balance=state.quote_balance,
            signal_count=int(np.count_nonzero(signals)),
            index=index,
        )
