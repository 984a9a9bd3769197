"""tradesim.backtest.strategies.momentum

Generic RSI momentum, used for every archetype without dedicated logic:
- buy while RSI < oversold
- sell while RSI > overbought
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from tradesim.backtest.indicators import rsi
from tradesim.backtest.signals import SignalSet, threshold
from tradesim.backtest.strategies.base import MIN_WARMUP, SignalStrategy


@dataclass(frozen=True, slots=True)
class Momentum(SignalStrategy):
    name: str = "momentum"
    rsi_period: int = 14
    oversold: float = 35.0
    overbought: float = 65.0

    @property
    def warmup(self) -> int:
        return max(MIN_WARMUP, self.rsi_period)

    def generate(self, *, close: np.ndarray) -> SignalSet:
        r = rsi(close, self.rsi_period)
        return threshold(r, oversold=self.oversold, overbought=self.overbought, start=self.warmup)
