from __future__ import annotations

from tests._candles import flat_then_trend, make_candles
from tradesim.backtest.sweep import expand_grid, run_batch, run_sweep, split_into_batches
from tradesim.core.config import BacktestConfig
from tradesim.core.types import Strategy


def test_split_into_batches_round_robin() -> None:
    assert split_into_batches([1, 2, 3, 4, 5], 2) == [[1, 3, 5], [2, 4]]
    assert split_into_batches([1, 2], 4) == [[1], [2]]
    assert split_into_batches([], 3) == []
    assert split_into_batches([1, 2], 0) == [[1, 2]]


def test_expand_grid() -> None:
    assert expand_grid({}) == [{}]
    assert expand_grid({"a": [1, 2], "b": ["x"]}) == [{"a": 1, "b": "x"}, {"a": 2, "b": "x"}]


def test_run_batch_sorts_by_sharpe() -> None:
    candles = make_candles(flat_then_trend())
    cfg = BacktestConfig(random_seed=1)
    strategies = [
        Strategy(id="flat-mom", type="MOMENTUM"),
        Strategy(id="trend", type="TREND_FOLLOWING"),
        Strategy(id="mr", type="MEAN_REVERSION"),
    ]
    results = run_batch(strategies, candles, cfg, max_workers=1)
    assert sorted(r.strategy_id for r in results) == ["flat-mom", "mr", "trend"]
    sharpes = [r.sharpe_ratio for r in results]
    assert sharpes == sorted(sharpes, reverse=True)


def test_run_batch_pool_matches_sequential() -> None:
    candles = make_candles(flat_then_trend())
    cfg = BacktestConfig(random_seed=5, entry_order_type="LIMIT")
    strategies = [Strategy(id=f"s{i}", type="TREND_FOLLOWING", parameters={"fastPeriod": 5 + i}) for i in range(4)]

    seq = {r.strategy_id: r.to_dict() for r in run_batch(strategies, candles, cfg, max_workers=1)}
    par = {r.strategy_id: r.to_dict() for r in run_batch(strategies, candles, cfg, max_workers=2)}
    assert seq == par


def test_run_batch_empty() -> None:
    assert run_batch([], make_candles([100.0] * 10)) == []


def test_run_sweep_expands_grid() -> None:
    candles = make_candles(flat_then_trend())
    base = Strategy(id="tf", type="TREND_FOLLOWING", parameters={"slowPeriod": 30})
    out = run_sweep(base, {"fastPeriod": [5, 10, 15]}, candles, BacktestConfig(random_seed=2), max_workers=1)

    assert sorted(r.strategy_id for r in out.items) == ["tf-1", "tf-2", "tf-3"]
    assert out.best is out.items[0]
