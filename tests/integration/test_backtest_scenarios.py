from __future__ import annotations

import math
from datetime import timedelta

import numpy as np
import pytest

from tests._candles import START, flat_then_trend, make_candles
from tradesim.backtest.engine import BacktestEngine, run_backtest
from tradesim.backtest.strategies import resolve, trade_start
from tradesim.core.config import BacktestConfig
from tradesim.core.exceptions import CandleOrderError, ConfigError, InputContractError
from tradesim.core.time import datetime_to_ms
from tradesim.core.types import (
    BacktestResult,
    EntryExit,
    ExitReason,
    RiskParameters,
    Side,
    Strategy,
)

LOOSE_RISK = RiskParameters(max_position_size=0.1, stop_loss=0.5, take_profit=10.0)


def _noisy_closes(n: int = 400, seed: int = 21) -> list[float]:
    rng = np.random.default_rng(seed)
    steps = rng.normal(0.0, 0.02, n) + 0.01 * np.sin(np.arange(n) / 9.0)
    return (100.0 * np.exp(np.cumsum(steps))).tolist()


def _assert_conserved(res: BacktestResult) -> None:
    expected = res.initial_capital + sum(t.pnl for t in res.trades) - sum(t.fee for t in res.trades)
    assert res.final_capital == pytest.approx(expected, rel=1e-12, abs=1e-9)


def _expected_capture(closes: list[float], buy_i: int, sell_i: int, *, rate: float = 0.0005) -> float:
    """Percent return of long buy_i->sell_i then short sell_i->end, at closes, minus commissions."""

    capital = 10_000.0
    c = closes
    q0 = capital * 0.1 / c[buy_i]
    cap1 = capital + q0 * (c[sell_i] - c[buy_i]) - rate * q0 * (c[buy_i] + c[sell_i])
    q1 = cap1 * 0.1 / c[sell_i]
    cap2 = cap1 + q1 * (c[sell_i] - c[-1]) - rate * q1 * (c[sell_i] + c[-1])
    return (cap2 - capital) / capital * 100.0


# ---------------------------------------------------------------------------
# scenarios
# ---------------------------------------------------------------------------


def test_trend_following_captures_the_trend() -> None:
    closes = flat_then_trend()
    strategy = Strategy(id="tf", type="TREND_FOLLOWING", parameters={"fastPeriod": 10, "slowPeriod": 30}, risk=LOOSE_RISK)

    signals = resolve(strategy).generate(close=np.array(closes))
    buys = np.flatnonzero(signals.buy).tolist()
    sells = np.flatnonzero(signals.sell).tolist()
    assert buys == [60]
    assert len(sells) == 1 and sells[0] > 129  # after the peak

    res = run_backtest(strategy, make_candles(closes), BacktestConfig(random_seed=42))

    kinds = [(t.side, t.entry_exit, t.reason) for t in res.trades]
    assert kinds == [
        (Side.BUY, EntryExit.ENTRY, None),
        (Side.SELL, EntryExit.EXIT, ExitReason.SIGNAL),
        (Side.SELL, EntryExit.ENTRY, None),
        (Side.BUY, EntryExit.EXIT, ExitReason.END_OF_BACKTEST),
    ]
    assert res.total_trades == 2
    assert res.win_rate == 100.0
    assert res.total_return == pytest.approx(_expected_capture(closes, buys[0], sells[0]), abs=0.25)
    _assert_conserved(res)


def test_rise_then_fall_from_bar_zero_only_sells_after_peak() -> None:
    closes = flat_then_trend(flat=0, up=100, down=100)
    strategy = Strategy(id="tf", type="TREND_FOLLOWING", parameters={"fastPeriod": 10, "slowPeriod": 30}, risk=LOOSE_RISK)

    signals = resolve(strategy).generate(close=np.array(closes))
    # fast is already above slow when the warm-up ends: ordering alone is not a cross
    assert not signals.buy.any()
    sells = np.flatnonzero(signals.sell).tolist()
    assert len(sells) == 1 and sells[0] > 99

    res = run_backtest(strategy, make_candles(closes), BacktestConfig(random_seed=1))
    assert res.total_trades == 1
    (exit_trade,) = [t for t in res.trades if t.entry_exit is EntryExit.EXIT]
    assert exit_trade.reason is ExitReason.END_OF_BACKTEST
    assert exit_trade.pnl > 0


@pytest.mark.parametrize("stype", ["MOMENTUM", "MEAN_REVERSION"])
def test_slow_period_delays_the_first_trade_for_every_type(stype: str) -> None:
    closes = flat_then_trend(flat=52, up=0, down=60)
    candles = make_candles(closes)
    cfg = BacktestConfig(random_seed=5)

    early = run_backtest(Strategy(id="early", type=stype), candles, cfg)
    assert early.trades and early.trades[0].timestamp < candles[53].timestamp

    assert trade_start(Strategy(id="late", type=stype, parameters={"slowPeriod": 80})) == 80
    late = run_backtest(Strategy(id="late", type=stype, parameters={"slowPeriod": 80}), candles, cfg)
    assert all(t.timestamp >= candles[80].timestamp for t in late.trades)
    if stype == "MOMENTUM":
        assert late.trades[0].entry_exit is EntryExit.ENTRY
        assert late.trades[0].timestamp < candles[81].timestamp


@pytest.mark.parametrize("stype", ["TREND_FOLLOWING", "MEAN_REVERSION", "MOMENTUM", "AI_PREDICTION"])
def test_flat_series_produces_nothing(stype: str) -> None:
    res = run_backtest(Strategy(id="flat", type=stype), make_candles([100.0] * 150), BacktestConfig(random_seed=3))
    assert res.trades == ()
    assert res.total_trades == 0
    assert res.total_return == 0.0
    assert res.sharpe_ratio == 0.0
    assert res.final_capital == res.initial_capital


def test_stop_loss_exit() -> None:
    rising = [100.0 * 1.01**j for j in range(1, 6)]
    closes = [100.0] * 60 + rising + [99.5]
    risk = RiskParameters(max_position_size=0.1, stop_loss=0.01, take_profit=0.5)
    res = run_backtest(Strategy(id="sl", type="TREND_FOLLOWING", risk=risk), make_candles(closes), BacktestConfig(random_seed=8))

    entry, exit_trade = res.trades
    assert entry.entry_exit is EntryExit.ENTRY
    assert exit_trade.reason is ExitReason.STOP_LOSS
    assert exit_trade.price == 99.5
    assert exit_trade.pnl < 0
    assert res.win_rate == 0.0
    _assert_conserved(res)


def test_take_profit_exit() -> None:
    closes = flat_then_trend(flat=60, up=10, down=0)
    candles = make_candles(closes)
    risk = RiskParameters(max_position_size=0.1, stop_loss=0.5, take_profit=0.03)
    res = run_backtest(Strategy(id="tp", type="TREND_FOLLOWING", risk=risk), candles, BacktestConfig(random_seed=8))

    entry, exit_trade = res.trades
    assert exit_trade.reason is ExitReason.TAKE_PROFIT
    assert exit_trade.timestamp <= candles[64].timestamp
    assert exit_trade.pnl > 0
    assert res.win_rate == 100.0


def test_disabled_exits_hold_until_the_end() -> None:
    closes = flat_then_trend(flat=60, up=30, down=0)
    risk = RiskParameters(max_position_size=0.1, stop_loss=0.0, take_profit=0.0)
    res = run_backtest(Strategy(id="hold", type="TREND_FOLLOWING", risk=risk), make_candles(closes))
    assert [t.reason for t in res.trades] == [None, ExitReason.END_OF_BACKTEST]


# ---------------------------------------------------------------------------
# invariants
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("stype", ["TREND_FOLLOWING", "MEAN_REVERSION", "MOMENTUM"])
@pytest.mark.parametrize("entry", ["MARKET", "LIMIT"])
def test_run_invariants(stype: str, entry: str) -> None:
    candles = make_candles(_noisy_closes())
    strategy = Strategy(id="inv", type=stype, parameters={"oversold": 40, "overbought": 60})
    engine = BacktestEngine(BacktestConfig(random_seed=11, entry_order_type=entry))
    res = engine.run(strategy, candles)

    # flat at the end
    assert engine.ledger.open_symbols() == []
    _assert_conserved(res)
    assert res.final_capital == pytest.approx(engine.ledger.capital)
    assert res.total_trades == sum(1 for t in res.trades if t.entry_exit is EntryExit.EXIT)

    # trade log ordered, nothing before warm-up
    stamps = [t.timestamp for t in res.trades]
    assert stamps == sorted(stamps)
    warmup = trade_start(strategy)
    assert all(ts >= candles[warmup].timestamp for ts in stamps)

    # ids deterministic and unique
    assert len({t.id for t in res.trades}) == len(res.trades)
    assert all(t.id.startswith("inv-t") for t in res.trades)
    assert all(math.isfinite(t.price) and t.size > 0 for t in res.trades)


def test_same_seed_same_result() -> None:
    candles = make_candles(_noisy_closes(seed=4))
    strategy = Strategy(id="det", type="MOMENTUM")
    cfg = BacktestConfig(random_seed=7, entry_order_type="LIMIT")

    a = run_backtest(strategy, candles, cfg)
    b = run_backtest(strategy, candles, cfg)
    assert a.to_dict() == b.to_dict()

    # an engine is reusable: every run starts from a fresh ledger, book and clock
    engine = BacktestEngine(cfg)
    assert engine.run(strategy, candles).to_dict() == engine.run(strategy, candles).to_dict() == a.to_dict()


def test_clock_tracks_candles() -> None:
    candles = make_candles(_noisy_closes(n=80))
    engine = BacktestEngine(BacktestConfig(random_seed=1))
    engine.run(Strategy(id="c", type="MOMENTUM"), candles)
    assert engine.clock.timestamp_ms() == datetime_to_ms(candles[-1].timestamp)


def test_insufficient_data_is_not_an_error() -> None:
    res = run_backtest(Strategy(id="short", type="TREND_FOLLOWING"), make_candles(_noisy_closes(n=30)))
    assert res.total_trades == 0
    assert res.final_capital == res.initial_capital


def test_empty_candles() -> None:
    res = run_backtest(Strategy(id="none", type="MOMENTUM"), [])
    assert res.trades == ()
    assert res.total_return == 0.0
    assert res.period.start is None and res.period.end is None


def test_duplicate_timestamps_are_allowed() -> None:
    candles = make_candles(_noisy_closes(n=120), step=timedelta(0))
    res = run_backtest(Strategy(id="dup", type="MOMENTUM"), candles, BacktestConfig(random_seed=2))
    _assert_conserved(res)


# ---------------------------------------------------------------------------
# contract violations
# ---------------------------------------------------------------------------


def test_out_of_order_candles_raise() -> None:
    candles = make_candles(_noisy_closes(n=60))
    candles[10], candles[11] = candles[11], candles[10]
    with pytest.raises(CandleOrderError):
        run_backtest(Strategy(id="x", type="MOMENTUM"), candles)


def test_mixed_symbols_raise() -> None:
    candles = make_candles([100.0] * 5) + make_candles([100.0] * 5, symbol="ETH-USD", start=START + timedelta(days=1))
    with pytest.raises(CandleOrderError):
        run_backtest(Strategy(id="x", type="MOMENTUM"), candles)


def test_candles_before_start_time_raise() -> None:
    candles = make_candles([100.0] * 5)
    start = datetime_to_ms(candles[2].timestamp)
    with pytest.raises(CandleOrderError):
        run_backtest(Strategy(id="x", type="MOMENTUM"), candles, BacktestConfig(start_time=start))


def test_non_finite_prices_raise() -> None:
    candles = make_candles([100.0, float("nan"), 100.0])
    with pytest.raises(InputContractError):
        run_backtest(Strategy(id="x", type="MOMENTUM"), candles)


def test_realtime_clock_is_rejected() -> None:
    with pytest.raises(ConfigError):
        run_backtest(Strategy(id="x", type="MOMENTUM"), make_candles([100.0]), BacktestConfig(clock_mode="REALTIME"))


def test_fill_preset_and_explicit_overrides() -> None:
    assert BacktestEngine(BacktestConfig(fill_model="AGGRESSIVE")).fill_model.config.avg_slippage_bps == 10.0
    assert BacktestEngine(BacktestConfig(fill_model="AGGRESSIVE", slippage_bps=1)).fill_model.config.avg_slippage_bps == 1.0
    assert BacktestEngine(BacktestConfig(fill_model="CONSERVATIVE")).fill_model.latency.base_latency_ms == 5.0
    assert BacktestEngine(BacktestConfig(commission_rate=0.001)).fill_model.config.commission_rate == 0.001
