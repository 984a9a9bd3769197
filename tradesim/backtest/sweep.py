"""tradesim.backtest.sweep

Parameter sweep harness.

Runs are independent: each gets its own engine (clock, book, ledger, RNG),
so they can be farmed out to worker processes without coordination. If the
pool cannot be used the batch runs in-process instead.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, TypeVar

from tradesim.backtest.engine import run_backtest
from tradesim.core.config import BacktestConfig
from tradesim.core.types import BacktestResult, Candle, Strategy

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class SweepResult:
    items: list[BacktestResult]

    @property
    def best(self) -> BacktestResult | None:
        return self.items[0] if self.items else None


def split_into_batches(items: Sequence[T], n: int) -> list[list[T]]:
    """Deal ``items`` round-robin into ``n`` batches; empty batches are dropped."""

    n = max(1, int(n))
    batches: list[list[T]] = [[] for _ in range(n)]
    for i, item in enumerate(items):
        batches[i % n].append(item)
    return [b for b in batches if b]


def _run_many(strategies: list[Strategy], candles: list[Candle], config: BacktestConfig | None) -> list[BacktestResult]:
    return [run_backtest(s, candles, config) for s in strategies]


def _by_sharpe(results: list[BacktestResult]) -> list[BacktestResult]:
    return sorted(results, key=lambda r: r.sharpe_ratio, reverse=True)


def run_batch(
    strategies: Sequence[Strategy],
    candles: Sequence[Candle],
    config: BacktestConfig | None = None,
    *,
    max_workers: int = 2,
) -> list[BacktestResult]:
    """Backtest every strategy on the same candles. Results sorted by Sharpe, best first."""

    items = list(strategies)
    bars = list(candles)
    if not items:
        return []

    if max_workers <= 1 or len(items) == 1:
        return _by_sharpe(_run_many(items, bars, config))

    batches = split_into_batches(items, max_workers)
    try:
        with ProcessPoolExecutor(max_workers=len(batches)) as pool:
            futures = [pool.submit(_run_many, b, bars, config) for b in batches]
            results = [r for f in futures for r in f.result()]
    except (OSError, RuntimeError) as e:
        # BrokenProcessPool is a RuntimeError
        logger.warning("sweep_pool_failed", extra={"error": str(e), "strategies": len(items)})
        results = _run_many(items, bars, config)

    logger.info("sweep_completed", extra={"strategies": len(items), "batches": len(batches)})
    return _by_sharpe(results)


def expand_grid(grid: Mapping[str, Sequence[Any]]) -> list[dict[str, Any]]:
    """Cartesian product of a parameter grid, in key order."""

    if not grid:
        return [{}]
    keys = list(grid)
    return [dict(zip(keys, combo, strict=True)) for combo in itertools.product(*(grid[k] for k in keys))]


def run_sweep(
    base: Strategy,
    grid: Mapping[str, Sequence[Any]],
    candles: Sequence[Candle],
    config: BacktestConfig | None = None,
    *,
    max_workers: int = 2,
) -> SweepResult:
    """One run per grid point, each a copy of ``base`` with the point's parameters merged in."""

    strategies: list[Strategy] = []
    for i, point in enumerate(expand_grid(grid), start=1):
        params = {**base.parameters, **point}
        strategies.append(replace(base, id=f"{base.id}-{i}", parameters=params))
    return SweepResult(items=run_batch(strategies, candles, config, max_workers=max_workers))
