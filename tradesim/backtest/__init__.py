"""tradesim.backtest

Backtest engine.

Indicators and signals are vectorized over the whole close series; the
trade loop that turns signals into orders, fills and trades is sequential.
"""

from tradesim.backtest.engine import BacktestEngine, run_backtest
from tradesim.backtest.fills import FillModel, SeededRNG
from tradesim.backtest.ledger import Ledger
from tradesim.backtest.orderbook import OrderBookSynthesizer
from tradesim.backtest.validation import compute_metrics

__all__ = [
    "BacktestEngine",
    "FillModel",
    "Ledger",
    "OrderBookSynthesizer",
    "SeededRNG",
    "compute_metrics",
    "run_backtest",
]
