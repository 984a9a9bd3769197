"""tradesim.backtest.strategies.base

Strategy archetype contract.

An archetype is a pure function over a close series. It outputs aligned
buy/sell flags per bar; the engine turns flags into orders.
"""

from __future__ import annotations

import numpy as np

from tradesim.backtest.signals import SignalSet

MIN_WARMUP = 50


class SignalStrategy:
    name: str = "strategy"

    @property
    def warmup(self) -> int:
        return MIN_WARMUP

    def generate(self, *, close: np.ndarray) -> SignalSet:
        raise NotImplementedError
