"""tradesim.backtest.engine

Backtest entry point.

One run is a strictly sequential fold over the candles:

    INIT
      per candle: advance clock -> update book -> read signals
                  -> submit orders -> apply fills -> stop-loss / take-profit
    close remaining positions -> metrics -> DONE

Signals on bar i act on bar i's book. Indicators are causal, so computing
them up front is the same as computing them bar by bar. No archetype trades
before the shared trade start: the longest configured lookback, at least 50
bars.

The engine raises only for caller contract violations (unordered candles,
mixed symbols, non-finite prices). Thin data yields a zero-trade result.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from tradesim.backtest.clock import TestClock
from tradesim.backtest.fills import FillModel
from tradesim.backtest.ledger import Ledger
from tradesim.backtest.orderbook import OrderBookSynthesizer
from tradesim.backtest.strategies import resolve, trade_start
from tradesim.backtest.validation import build_result
from tradesim.core.config import BacktestConfig
from tradesim.core.exceptions import CandleOrderError, ConfigError, InputContractError
from tradesim.core.time import datetime_to_ms, ms_to_ns
from tradesim.core.types import (
    BacktestPeriod,
    BacktestResult,
    Candle,
    ExitReason,
    OrderBook,
    OrderType,
    RiskParameters,
    Side,
    SimulatedOrder,
    Strategy,
)

logger = logging.getLogger(__name__)


def validate_candles(candles: Sequence[Candle], *, start_time_ms: int | None = None) -> None:
    """Reject inputs that break the candle source contract."""

    if not candles:
        return

    symbol = candles[0].symbol
    prev_ms: int | None = None
    for i, c in enumerate(candles):
        if c.symbol != symbol:
            raise CandleOrderError(f"candle {i} is for {c.symbol!r}; this run is for {symbol!r}")
        if not all(math.isfinite(float(v)) for v in (c.open, c.high, c.low, c.close)) or c.close <= 0:
            raise InputContractError(f"candle {i} has non-finite or non-positive prices")
        ts = datetime_to_ms(c.timestamp)
        if prev_ms is not None and ts < prev_ms:
            raise CandleOrderError(
                f"candles must be sorted by timestamp: candle {i} ({c.timestamp.isoformat()}) precedes candle {i - 1}"
            )
        prev_ms = ts

    if start_time_ms is not None and datetime_to_ms(candles[0].timestamp) < start_time_ms:
        raise CandleOrderError("first candle precedes the configured start_time")


class BacktestEngine:
    """Single-run simulator. Owns its clock, book and ledger for the duration of ``run``."""

    def __init__(self, config: BacktestConfig | None = None, *, fill_model: FillModel | None = None) -> None:
        self.config = config or BacktestConfig()
        if self.config.clock_mode != "SIMULATION":
            raise ConfigError("backtests require clock_mode=SIMULATION")

        cfg = self.config
        self.fill_model = fill_model or FillModel.from_preset(
            cfg.fill_model,
            seed=cfg.random_seed,
            commission_rate=cfg.commission_rate,
            avg_slippage_bps=cfg.slippage_bps if cfg.explicit("slippage_bps") else None,
            base_latency_ms=cfg.latency_ms if cfg.explicit("latency_ms") else None,
        )
        self.books = OrderBookSynthesizer(depth=cfg.book_depth, spread_bps=cfg.book_spread_bps)
        self.clock = TestClock(cfg.start_time)
        self.ledger = Ledger(initial_capital=cfg.initial_capital, commission_rate=cfg.commission_rate)
        self._order_seq = 0
        self._prefix = "bt"

    # ------------------------------------------------------------------

    def run(self, strategy: Strategy, candles: Sequence[Candle]) -> BacktestResult:
        bars = list(candles)
        cfg = self.config
        validate_candles(bars, start_time_ms=cfg.start_time)
        self._reset(strategy, bars)

        if not bars:
            logger.info("backtest_no_candles", extra={"strategy_id": strategy.id})
            return self._result(strategy, bars)

        variant = resolve(strategy)
        close = np.fromiter((c.close for c in bars), dtype=np.float64, count=len(bars))
        signals = variant.generate(close=close)
        symbol = bars[0].symbol
        start = trade_start(strategy)

        if len(bars) <= start:
            logger.info(
                "backtest_insufficient_data",
                extra={"strategy_id": strategy.id, "candles": len(bars), "warmup": start},
            )
        logger.info(
            "backtest_started",
            extra={"strategy_id": strategy.id, "variant": variant.name, "symbol": symbol, "candles": len(bars)},
        )

        for i, candle in enumerate(bars):
            self.clock.set_time(ms_to_ns(datetime_to_ms(candle.timestamp)))
            book = self.books.on_candle(candle)
            now_ms = int(self.clock.timestamp_ms())

            if i >= start:
                if signals.buy[i]:
                    self._on_signal(Side.BUY, candle, book, now_ms, strategy.risk)
                elif signals.sell[i]:
                    self._on_signal(Side.SELL, candle, book, now_ms, strategy.risk)

            self._check_exits(candle, now_ms, strategy.risk)

        last = bars[-1]
        for sym in self.ledger.open_symbols():
            self.ledger.force_close(
                sym,
                price=float(last.close),
                timestamp_ms=datetime_to_ms(last.timestamp),
                reason=ExitReason.END_OF_BACKTEST,
            )

        result = self._result(strategy, bars)
        logger.info(
            "backtest_completed",
            extra={
                "strategy_id": strategy.id,
                "total_trades": result.total_trades,
                "total_return": round(result.total_return, 4),
                "sharpe": round(result.sharpe_ratio, 4),
            },
        )
        return result

    # ------------------------------------------------------------------

    def _reset(self, strategy: Strategy, bars: list[Candle]) -> None:
        cfg = self.config
        self._prefix = strategy.id
        self._order_seq = 0
        self.books.reset()
        self.ledger = Ledger(
            initial_capital=cfg.initial_capital,
            commission_rate=cfg.commission_rate,
            id_prefix=f"{strategy.id}-t",
        )
        start_ms = cfg.start_time
        if start_ms is None and bars:
            start_ms = datetime_to_ms(bars[0].timestamp)
        self.clock = TestClock(start_ms)
        if cfg.random_seed is not None:
            self.fill_model.set_seed(cfg.random_seed)

    def _next_order_id(self) -> str:
        self._order_seq += 1
        return f"{self._prefix}-o{self._order_seq}"

    def _on_signal(self, side: Side, candle: Candle, book: OrderBook, now_ms: int, risk: RiskParameters) -> None:
        pos = self.ledger.position(candle.symbol)
        if pos.qty * side.sign > 0:
            return  # already positioned this way

        if pos.qty != 0:
            order = SimulatedOrder(
                order_id=self._next_order_id(),
                symbol=candle.symbol,
                side=side,
                type=OrderType.MARKET,
                quantity=abs(pos.qty),
                timestamp_ms=now_ms,
                reduce_only=True,
            )
            for fill in self.fill_model.simulate_fill(order, book, candle=candle):
                self.ledger.apply_fill(fill, reason=ExitReason.SIGNAL)
            if self.ledger.position(candle.symbol).qty != 0:
                return

        self._open(side, candle, book, now_ms, risk)

    def _open(self, side: Side, candle: Candle, book: OrderBook, now_ms: int, risk: RiskParameters) -> None:
        capital = self.ledger.capital
        if capital <= 0:
            return
        qty = capital * float(risk.max_position_size) / float(candle.close)
        if not qty > 0:
            return

        limit = self.config.entry_order_type == "LIMIT"
        order = SimulatedOrder(
            order_id=self._next_order_id(),
            symbol=candle.symbol,
            side=side,
            type=OrderType.LIMIT if limit else OrderType.MARKET,
            quantity=qty,
            price=float(candle.close) if limit else None,
            timestamp_ms=now_ms,
        )
        fills = self.fill_model.simulate_fill(order, book, candle=candle)
        if not fills:
            logger.debug("entry_unfilled", extra={"order_id": order.order_id, "side": str(side)})
        for fill in fills:
            self.ledger.apply_fill(fill)

    def _check_exits(self, candle: Candle, now_ms: int, risk: RiskParameters) -> None:
        for sym in self.ledger.open_symbols():
            r = self.ledger.unrealized_return(sym, candle.close)
            if r is None:
                continue
            if risk.stop_loss > 0 and r <= -risk.stop_loss:
                self.ledger.force_close(sym, price=float(candle.close), timestamp_ms=now_ms, reason=ExitReason.STOP_LOSS)
            elif risk.take_profit > 0 and r >= risk.take_profit:
                self.ledger.force_close(sym, price=float(candle.close), timestamp_ms=now_ms, reason=ExitReason.TAKE_PROFIT)

    def _result(self, strategy: Strategy, bars: list[Candle]) -> BacktestResult:
        period = BacktestPeriod(
            start=bars[0].timestamp if bars else None,
            end=bars[-1].timestamp if bars else None,
        )
        return build_result(
            strategy_id=strategy.id,
            period=period,
            trades=self.ledger.trades,
            initial_capital=self.config.initial_capital,
            final_capital=self.ledger.capital,
        )


def run_backtest(strategy: Strategy, candles: Sequence[Candle], config: BacktestConfig | None = None) -> BacktestResult:
    return BacktestEngine(config).run(strategy, candles)
