"""tradesim.backtest.strategies.mean_reversion

Bollinger + RSI reversion. Both conditions must hold on the same bar:
- buy: close below the lower band and RSI oversold
- sell: close above the upper band and RSI overbought
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from tradesim.backtest.indicators import bollinger, rsi
from tradesim.backtest.signals import SignalSet, band_reversion
from tradesim.backtest.strategies.base import MIN_WARMUP, SignalStrategy


@dataclass(frozen=True, slots=True)
class MeanReversion(SignalStrategy):
    name: str = "mean_reversion"
    rsi_period: int = 14
    oversold: float = 35.0
    overbought: float = 65.0
    bb_period: int = 20
    bb_std_dev: float = 2.0

    @property
    def warmup(self) -> int:
        return max(MIN_WARMUP, self.bb_period, self.rsi_period)

    def generate(self, *, close: np.ndarray) -> SignalSet:
        bands = bollinger(close, self.bb_period, self.bb_std_dev)
        r = rsi(close, self.rsi_period)
        return band_reversion(
            close,
            bands.upper,
            bands.lower,
            r,
            oversold=self.oversold,
            overbought=self.overbought,
            start=self.warmup,
        )
