"""tradesim.backtest.validation

Performance metrics.

A pure reduction over the trade log plus the capital endpoints. Only EXIT
trades carry realized P&L, so only they count toward trade statistics.

Some fields are deliberate simplifications kept for output compatibility
with existing consumers, not statistics:
- sortino = sharpe * 1.2
- var95 = max_drawdown * 0.8
- beta = 1, alpha = total_return - 5
- annualized = total_return * 365 / 30 (assumes ~one month of data)
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from tradesim.core.types import BacktestPeriod, BacktestResult, EntryExit, RiskMetrics, Trade

TRADING_DAYS = 252
ASSUMED_MARKET_RETURN = 5.0


@dataclass(frozen=True, slots=True)
class Metrics:
    total_return: float
    annualized_return: float
    sharpe: float
    max_drawdown: float
    win_rate: float
    profit_factor: float
    total_trades: int
    risk: RiskMetrics


def exit_trades(trades: Sequence[Trade]) -> list[Trade]:
    return [t for t in trades if t.entry_exit is EntryExit.EXIT]


def max_drawdown(exit_pnls: Sequence[float], *, initial_capital: float) -> float:
    """Largest peak-to-trough decline of cumulative capital, in percent of the peak."""

    peak = float(initial_capital)
    running = float(initial_capital)
    worst = 0.0
    for pnl in exit_pnls:
        running += float(pnl)
        peak = max(peak, running)
        if peak > 0:
            worst = max(worst, (peak - running) / peak * 100.0)
    return worst


def sharpe(returns: np.ndarray, *, periods_per_year: int = TRADING_DAYS) -> float:
    r = np.asarray(returns, dtype=np.float64)
    mu = float(np.mean(r)) if r.size else 0.0
    # fewer than two observations: unit std keeps the ratio finite and ~0
    sd = float(np.std(r)) if r.size > 1 else 1.0
    if sd <= 0.0:
        return 0.0
    return mu / sd * math.sqrt(periods_per_year)


def profit_factor(exit_pnls: Sequence[float]) -> float:
    wins = sum(p for p in exit_pnls if p > 0)
    losses = abs(sum(p for p in exit_pnls if p < 0))
    if losses > 0:
        return wins / losses
    return math.inf if wins > 0 else 0.0


def compute_metrics(*, trades: Sequence[Trade], initial_capital: float, final_capital: float) -> Metrics:
    exits = exit_trades(trades)
    pnls = [t.pnl for t in exits]
    initial = float(initial_capital)

    total_return = (float(final_capital) - initial) / initial * 100.0
    wins = sum(1 for p in pnls if p > 0)
    win_rate = wins / len(pnls) * 100.0 if pnls else 0.0
    dd = max_drawdown(pnls, initial_capital=initial)
    sr = sharpe(np.array([p / initial for p in pnls], dtype=np.float64))

    risk = RiskMetrics(
        calmar_ratio=total_return / dd if dd > 0 else 0.0,
        sortino_ratio=sr * 1.2,
        var95=dd * 0.8,
        beta=1.0,
        alpha=total_return - ASSUMED_MARKET_RETURN,
    )
    return Metrics(
        total_return=total_return,
        annualized_return=total_return * (365.0 / 30.0),
        sharpe=sr,
        max_drawdown=dd,
        win_rate=win_rate,
        profit_factor=profit_factor(pnls),
        total_trades=len(exits),
        risk=risk,
    )


def build_result(
    *,
    strategy_id: str,
    period: BacktestPeriod,
    trades: Sequence[Trade],
    initial_capital: float,
    final_capital: float,
) -> BacktestResult:
    m = compute_metrics(trades=trades, initial_capital=initial_capital, final_capital=final_capital)
    return BacktestResult(
        strategy_id=strategy_id,
        period=period,
        initial_capital=float(initial_capital),
        final_capital=float(final_capital),
        total_return=m.total_return,
        annualized_return=m.annualized_return,
        sharpe_ratio=m.sharpe,
        max_drawdown=m.max_drawdown,
        win_rate=m.win_rate,
        profit_factor=m.profit_factor,
        total_trades=m.total_trades,
        trades=tuple(trades),
        metrics=m.risk,
    )
