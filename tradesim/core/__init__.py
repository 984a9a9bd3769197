"""tradesim.core

Core primitives.

If a module needs to exist, it should probably depend only on this package.
"""

from .config import BacktestConfig, Config
from .exceptions import CandleOrderError, ConfigError, InputContractError, ParameterError, TradesimError
from .time import parse_dt, utc_now
from .types import BacktestResult, Candle, RiskParameters, Strategy, StrategyIdea, StrategyType, Trade

__all__ = [
    "BacktestConfig",
    "BacktestResult",
    "Candle",
    "CandleOrderError",
    "Config",
    "ConfigError",
    "InputContractError",
    "ParameterError",
    "RiskParameters",
    "Strategy",
    "StrategyIdea",
    "StrategyType",
    "Trade",
    "TradesimError",
    "parse_dt",
    "utc_now",
]
