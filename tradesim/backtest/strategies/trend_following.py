"""tradesim.backtest.strategies.trend_following

Dual SMA crossover:
- buy when the fast SMA crosses above the slow SMA
- sell when it crosses below
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from tradesim.backtest.indicators import sma
from tradesim.backtest.signals import SignalSet, crossover
from tradesim.backtest.strategies.base import MIN_WARMUP, SignalStrategy


@dataclass(frozen=True, slots=True)
class TrendFollowing(SignalStrategy):
    name: str = "trend_following"
    fast_period: int = 10
    slow_period: int = 30

    @property
    def warmup(self) -> int:
        return max(MIN_WARMUP, self.slow_period)

    def generate(self, *, close: np.ndarray) -> SignalSet:
        fast = sma(close, self.fast_period)
        slow = sma(close, self.slow_period)
        return crossover(fast, slow, start=self.warmup)
