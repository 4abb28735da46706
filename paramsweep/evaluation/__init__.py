"""
Portfolio evaluation module.

Simulates a signal series against execution prices with one fresh wallet
per ParameterSet and reduces it to a BacktestResult (or a DetailedRun
with the full trade log).
"""
from .portfolio import PortfolioSimulator
from .portfolio_types import (
    SimulationConfig,
    Trade,
    PortfolioState,
    BacktestResult,
    TradeStatistics,
    DetailedRun,
    validate_trade_settings,
)

__all__ = [
    'PortfolioSimulator',
    'SimulationConfig',
    'Trade',
    'PortfolioState',
    'BacktestResult',
    'TradeStatistics',
    'DetailedRun',
    'validate_trade_settings',
]
