"""tradesim.backtest.analysis

Post-run assessment.

Turns a ``BacktestResult`` into extended performance figures, a tiered
verdict against thresholds, run-to-run comparisons and a plain-text report.
Nothing here feeds back into the simulation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import StrEnum

from tradesim.backtest.validation import exit_trades
from tradesim.core.config import AnalysisConfig
from tradesim.core.types import BacktestResult, Strategy

logger = logging.getLogger(__name__)


class PerformanceTier(StrEnum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    ACCEPTABLE = "ACCEPTABLE"
    POOR = "POOR"
    REJECTED = "REJECTED"


@dataclass(frozen=True, slots=True)
class Thresholds:
    min_sharpe: float = 1.5
    min_win_rate: float = 55.0
    max_drawdown: float = 20.0
    min_profit_factor: float = 1.3
    min_total_trades: int = 10

    @classmethod
    def from_config(cls, cfg: AnalysisConfig) -> Thresholds:
        return cls(
            min_sharpe=cfg.min_sharpe,
            min_win_rate=cfg.min_win_rate,
            max_drawdown=cfg.max_drawdown,
            min_profit_factor=cfg.min_profit_factor,
            min_total_trades=cfg.min_total_trades,
        )


@dataclass(frozen=True, slots=True)
class PerformanceMetrics:
    sharpe_ratio: float
    win_rate: float
    max_drawdown: float
    total_return: float
    annualized_return: float
    total_trades: int
    profit_factor: float
    calmar_ratio: float
    sortino_ratio: float
    average_win: float
    average_loss: float
    expectancy: float
    risk_adjusted_return: float
    consistency_score: float


@dataclass(frozen=True, slots=True)
class Assessment:
    strategy_id: str
    is_viable: bool
    tier: PerformanceTier
    should_activate: bool
    metrics: PerformanceMetrics
    thresholds: Thresholds
    reasons: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class MetricChange:
    current: float
    previous: float
    change: float  # percent of |previous|


@dataclass(frozen=True, slots=True)
class Comparison:
    improved: bool
    changes: dict[str, MetricChange]


def performance_metrics(result: BacktestResult) -> PerformanceMetrics:
    exits = exit_trades(result.trades)
    wins = [t.pnl for t in exits if t.pnl > 0]
    losses = [t.pnl for t in exits if t.pnl < 0]

    total_wins = sum(wins)
    total_losses = abs(sum(losses))
    if total_losses > 0:
        pf = total_wins / total_losses
    else:
        pf = math.inf if total_wins > 0 else 0.0

    dd = result.max_drawdown
    total = result.total_return
    n = result.total_trades

    if dd > 0:
        calmar = total / dd
        sortino = result.annualized_return / dd * math.sqrt(12)
        risk_adjusted = total / dd
    else:
        calmar = math.inf if total > 0 else 0.0
        sortino = 0.0
        risk_adjusted = total

    # 50 points for a coin-flip win rate, 50 for 30+ trades
    consistency = min(result.win_rate / 50.0, 1.0) * 50.0 + min(n / 30.0, 1.0) * 50.0

    return PerformanceMetrics(
        sharpe_ratio=result.sharpe_ratio,
        win_rate=result.win_rate,
        max_drawdown=dd,
        total_return=total,
        annualized_return=result.annualized_return,
        total_trades=n,
        profit_factor=pf,
        calmar_ratio=calmar,
        sortino_ratio=sortino,
        average_win=total_wins / len(wins) if wins else 0.0,
        average_loss=total_losses / len(losses) if losses else 0.0,
        expectancy=(result.final_capital - result.initial_capital) / n if n > 0 else 0.0,
        risk_adjusted_return=risk_adjusted,
        consistency_score=consistency,
    )


def _tier(score: int) -> PerformanceTier:
    if score >= 6:
        return PerformanceTier.EXCELLENT
    if score >= 5:
        return PerformanceTier.GOOD
    if score >= 4:
        return PerformanceTier.ACCEPTABLE
    if score >= 2:
        return PerformanceTier.POOR
    return PerformanceTier.REJECTED


def assess_strategy(result: BacktestResult, strategy: Strategy, thresholds: Thresholds | None = None) -> Assessment:
    """Grade a run against ``thresholds``.

    Score: sharpe 2, win rate 2, drawdown 1, profit factor 1, sample size 1.
    Viable needs sharpe, win rate and drawdown; activation additionally needs
    the sample size.
    """

    th = thresholds or Thresholds()
    m = performance_metrics(result)
    reasons: list[str] = []
    recs: list[str] = []

    sharpe_ok = m.sharpe_ratio >= th.min_sharpe
    win_ok = m.win_rate >= th.min_win_rate
    dd_ok = m.max_drawdown <= th.max_drawdown
    pf_ok = m.profit_factor >= th.min_profit_factor
    n_ok = m.total_trades >= th.min_total_trades

    if sharpe_ok:
        reasons.append(f"Sharpe ratio {m.sharpe_ratio:.2f} meets threshold ({th.min_sharpe})")
    else:
        reasons.append(f"Sharpe ratio {m.sharpe_ratio:.2f} below threshold ({th.min_sharpe})")
        recs.append("Reduce return volatility or increase profit per trade")

    if win_ok:
        reasons.append(f"Win rate {m.win_rate:.1f}% meets threshold ({th.min_win_rate}%)")
    else:
        reasons.append(f"Win rate {m.win_rate:.1f}% below threshold ({th.min_win_rate}%)")
        recs.append("Improve entry signal quality or tighten stop-loss criteria")

    if dd_ok:
        reasons.append(f"Max drawdown {m.max_drawdown:.1f}% within limit ({th.max_drawdown}%)")
    else:
        reasons.append(f"Max drawdown {m.max_drawdown:.1f}% exceeds limit ({th.max_drawdown}%)")
        recs.append("Tighten risk controls or reduce position sizing")

    if pf_ok:
        reasons.append(f"Profit factor {m.profit_factor:.2f} meets threshold ({th.min_profit_factor})")
    else:
        reasons.append(f"Profit factor {m.profit_factor:.2f} below threshold ({th.min_profit_factor})")
        recs.append("Increase average win size or reduce average loss size")

    if n_ok:
        reasons.append(f"Sample size {m.total_trades} trades sufficient ({th.min_total_trades}+)")
    else:
        reasons.append(f"Sample size {m.total_trades} trades insufficient ({th.min_total_trades}+)")
        recs.append("Backtest over more history or a finer timeframe")

    score = 2 * sharpe_ok + 2 * win_ok + int(dd_ok) + int(pf_ok) + int(n_ok)
    viable = sharpe_ok and win_ok and dd_ok
    out = Assessment(
        strategy_id=strategy.id,
        is_viable=viable,
        tier=_tier(score),
        should_activate=viable and n_ok,
        metrics=m,
        thresholds=th,
        reasons=reasons,
        recommendations=recs,
    )
    logger.info(
        "strategy_assessed",
        extra={
            "strategy_id": strategy.id,
            "tier": str(out.tier),
            "viable": out.is_viable,
            "activate": out.should_activate,
        },
    )
    return out


_COMPARED = ("sharpe_ratio", "win_rate", "total_return", "max_drawdown", "profit_factor")


def compare_results(current: BacktestResult, previous: BacktestResult) -> Comparison:
    """Relative change per headline metric. Improved means sharpe and win rate both rose."""

    cur = performance_metrics(current)
    prev = performance_metrics(previous)

    changes: dict[str, MetricChange] = {}
    for key in _COMPARED:
        c = float(getattr(cur, key))
        p = float(getattr(prev, key))
        if p != 0:
            change = (c - p) / abs(p) * 100.0
        else:
            change = 100.0 if c > 0 else 0.0
        changes[key] = MetricChange(current=c, previous=p, change=change)

    improved = changes["sharpe_ratio"].change > 0 and changes["win_rate"].change > 0
    return Comparison(improved=improved, changes=changes)


def render_report(assessment: Assessment, strategy: Strategy) -> str:
    m = assessment.metrics
    th = assessment.thresholds

    def yn(flag: bool) -> str:
        return "yes" if flag else "no"

    lines = [
        f"backtest results: {strategy.name or strategy.id}",
        f"  tier:              {assessment.tier}",
        f"  viable:            {yn(assessment.is_viable)}",
        f"  activate:          {yn(assessment.should_activate)}",
        "",
        "core",
        f"  total return:      {m.total_return:10.2f}%",
        f"  annualized return: {m.annualized_return:10.2f}%",
        f"  sharpe ratio:      {m.sharpe_ratio:10.2f}",
        f"  win rate:          {m.win_rate:10.1f}%",
        f"  max drawdown:      {m.max_drawdown:10.2f}%",
        f"  total trades:      {m.total_trades:10d}",
        "",
        "extended",
        f"  profit factor:     {m.profit_factor:10.2f}",
        f"  calmar ratio:      {m.calmar_ratio:10.2f}",
        f"  sortino ratio:     {m.sortino_ratio:10.2f}",
        f"  average win:       {m.average_win:10.2f}",
        f"  average loss:      {m.average_loss:10.2f}",
        f"  expectancy:        {m.expectancy:10.2f}",
        "",
        "thresholds",
        f"  min sharpe:        {th.min_sharpe:10}",
        f"  min win rate:      {th.min_win_rate:10}%",
        f"  max drawdown:      {th.max_drawdown:10}%",
    ]
    if assessment.recommendations:
        lines.append("")
        lines.append("recommendations")
        lines.extend(f"  - {r}" for r in assessment.recommendations)
    return "\n".join(lines)
