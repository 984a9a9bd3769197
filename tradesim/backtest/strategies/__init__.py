"""tradesim.backtest.strategies

Strategy archetypes.

``resolve`` maps a caller's ``Strategy`` onto one closed variant once per run,
so the loop never re-reads the type string.
"""

from __future__ import annotations

from tradesim.backtest.strategies.base import MIN_WARMUP, SignalStrategy
from tradesim.backtest.strategies.mean_reversion import MeanReversion
from tradesim.backtest.strategies.momentum import Momentum
from tradesim.backtest.strategies.params import StrategyParams, sanitize
from tradesim.backtest.strategies.trend_following import TrendFollowing
from tradesim.core.types import Strategy, StrategyType

StrategyVariant = TrendFollowing | MeanReversion | Momentum


def trade_start(strategy: Strategy) -> int:
    """First bar the trade loop may act on.

    Shared by every archetype: a variant can emit signals from its own warm-up,
    but no order goes out before all configured lookbacks are filled.
    """

    p = sanitize(strategy.parameters)
    return max(MIN_WARMUP, p.slow_period, p.bb_period, p.rsi_period)


def resolve(strategy: Strategy) -> StrategyVariant:
    p = sanitize(strategy.parameters)
    match strategy.strategy_type:
        case StrategyType.TREND_FOLLOWING:
            return TrendFollowing(fast_period=p.fast_period, slow_period=p.slow_period)
        case StrategyType.MEAN_REVERSION:
            return MeanReversion(
                rsi_period=p.rsi_period,
                oversold=p.oversold,
                overbought=p.overbought,
                bb_period=p.bb_period,
                bb_std_dev=p.bb_std_dev,
            )
        case _:
            return Momentum(rsi_period=p.rsi_period, oversold=p.oversold, overbought=p.overbought)


__all__ = [
    "MIN_WARMUP",
    "MeanReversion",
    "Momentum",
    "SignalStrategy",
    "StrategyParams",
    "StrategyVariant",
    "TrendFollowing",
    "resolve",
    "sanitize",
    "trade_start",
]
