"""tradesim: strategy backtesting and execution simulation.

Candles in, ``BacktestResult`` out. Everything in between is a pure,
synchronous fold over the candle sequence.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "1.0.0"
