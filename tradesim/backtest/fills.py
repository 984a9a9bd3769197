"""tradesim.backtest.fills

Fill simulation.

Decides, for one order against one synthetic book, whether it fills, how
much, at what price, after what latency and at what commission.

- market / stop-market: full quantity, one aggregate TAKER fill at the book
  VWAP plus sampled slippage
- limit / stop-limit: marketable orders fill at the touch, resting ones fill
  with ``limit_fill_probability``; MAKER, discounted commission
- stops: trigger on the candle's high/low crossing ``stop_price``

All randomness comes from an injected ``SeededRNG``. Same seed, same draws,
same fills.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

import numpy as np

from tradesim.core.types import (
    Candle,
    LiquiditySide,
    OrderBook,
    OrderType,
    Side,
    SimulatedFill,
    SimulatedOrder,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FillModelConfig:
    limit_fill_probability: float = 0.5
    slippage_probability: float = 0.3
    avg_slippage_bps: float = 5.0
    commission_rate: float = 0.0005
    maker_discount: float = 0.0002


@dataclass(frozen=True, slots=True)
class LatencyModelConfig:
    base_latency_ms: float = 10.0
    latency_variance_ms: float = 5.0
    size_latency_factor: float = 0.001


@dataclass(frozen=True, slots=True)
class FillPreset:
    fill: FillModelConfig
    latency: LatencyModelConfig


PRESETS: dict[str, FillPreset] = {
    "CONSERVATIVE": FillPreset(
        fill=FillModelConfig(limit_fill_probability=0.7, slippage_probability=0.2, avg_slippage_bps=2.0),
        latency=LatencyModelConfig(base_latency_ms=5.0, latency_variance_ms=2.0),
    ),
    "STANDARD": FillPreset(
        fill=FillModelConfig(limit_fill_probability=0.5, slippage_probability=0.3, avg_slippage_bps=5.0),
        latency=LatencyModelConfig(base_latency_ms=10.0, latency_variance_ms=5.0),
    ),
    "AGGRESSIVE": FillPreset(
        fill=FillModelConfig(limit_fill_probability=0.3, slippage_probability=0.5, avg_slippage_bps=10.0),
        latency=LatencyModelConfig(base_latency_ms=20.0, latency_variance_ms=10.0),
    ),
}


class SeededRNG:
    """Explicit random state. One per fill model, never process-global."""

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self._gen = np.random.default_rng(seed)

    def next(self) -> float:
        return float(self._gen.random())

    def next_gaussian(self) -> float:
        return float(self._gen.standard_normal())

    def reseed(self, seed: int | None) -> None:
        self.seed = seed
        self._gen = np.random.default_rng(seed)


class FillModel:
    def __init__(
        self,
        fill_config: FillModelConfig | None = None,
        latency_config: LatencyModelConfig | None = None,
        *,
        rng: SeededRNG | None = None,
    ) -> None:
        self.config = fill_config or FillModelConfig()
        self.latency = latency_config or LatencyModelConfig()
        self.rng = rng or SeededRNG()

    @classmethod
    def from_preset(
        cls,
        name: str,
        *,
        seed: int | None = None,
        commission_rate: float | None = None,
        avg_slippage_bps: float | None = None,
        base_latency_ms: float | None = None,
    ) -> FillModel:
        preset = PRESETS.get(str(name).upper())
        if preset is None:
            raise ValueError(f"unknown fill model preset: {name}")
        fill = preset.fill
        if commission_rate is not None:
            fill = replace(fill, commission_rate=float(commission_rate))
        if avg_slippage_bps is not None:
            fill = replace(fill, avg_slippage_bps=float(avg_slippage_bps))
        latency = preset.latency
        if base_latency_ms is not None:
            latency = replace(latency, base_latency_ms=float(base_latency_ms))
        return cls(fill, latency, rng=SeededRNG(seed))

    def set_seed(self, seed: int | None) -> None:
        self.rng.reseed(seed)

    # ------------------------------------------------------------------
    # entry point
    # ------------------------------------------------------------------

    def simulate_fill(
        self,
        order: SimulatedOrder,
        book: OrderBook | None,
        *,
        candle: Candle | None = None,
    ) -> list[SimulatedFill]:
        if book is None or book.symbol != order.symbol:
            logger.debug("fill_skipped_no_book", extra={"order_id": order.order_id, "symbol": order.symbol})
            return []
        if order.quantity <= 0:
            return []

        if order.type in (OrderType.STOP_MARKET, OrderType.STOP_LIMIT):
            if not self.stop_triggered(order, book, candle=candle):
                return []

        if order.type in (OrderType.MARKET, OrderType.STOP_MARKET):
            return self._market(order, book)
        return self._limit(order, book)

    # ------------------------------------------------------------------

    def stop_triggered(self, order: SimulatedOrder, book: OrderBook, *, candle: Candle | None = None) -> bool:
        if order.stop_price is None:
            return False
        stop = float(order.stop_price)

        if candle is not None:
            if order.side is Side.BUY:
                return float(candle.high) >= stop
            return float(candle.low) <= stop

        if order.side is Side.BUY:
            best_ask = book.best_ask
            return best_ask is not None and best_ask >= stop
        best_bid = book.best_bid
        return best_bid is not None and best_bid <= stop

    def _market(self, order: SimulatedOrder, book: OrderBook) -> list[SimulatedFill]:
        levels = book.asks if order.side is Side.BUY else book.bids
        qty = float(order.quantity)

        remaining = qty
        notional = 0.0
        last_px = book.mid_price
        for level in levels:
            if remaining <= 0:
                break
            take = min(remaining, level.size)
            notional += take * level.price
            remaining -= take
            last_px = level.price
        if remaining > 0:
            # past the synthetic depth: the rest fills at the worst level seen
            notional += remaining * last_px

        avg_px = notional / qty
        slip = self._slippage(avg_px, order.side)
        px = avg_px + slip

        return [
            SimulatedFill(
                fill_id=f"{order.order_id}-f1",
                order_id=order.order_id,
                symbol=order.symbol,
                side=order.side,
                quantity=qty,
                price=px,
                commission=self.commission(px, qty, LiquiditySide.TAKER),
                timestamp_ms=order.timestamp_ms + self._latency(qty),
                liquidity_side=LiquiditySide.TAKER,
                slippage=slip,
            )
        ]

    def _limit(self, order: SimulatedOrder, book: OrderBook) -> list[SimulatedFill]:
        if order.price is None or order.price <= 0:
            return []
        limit_px = float(order.price)
        qty = float(order.quantity)

        if order.side is Side.BUY:
            touch = book.best_ask
            marketable = touch is not None and limit_px >= touch
        else:
            touch = book.best_bid
            marketable = touch is not None and limit_px <= touch

        if not (marketable or self.rng.next() < self.config.limit_fill_probability):
            return []

        if marketable and touch is not None:
            slip = self._slippage(touch, order.side)
            # slippage never pushes a limit order through its own price
            px = min(touch + slip, limit_px) if order.side is Side.BUY else max(touch + slip, limit_px)
            slip = px - touch
        else:
            slip = 0.0
            px = limit_px

        return [
            SimulatedFill(
                fill_id=f"{order.order_id}-f1",
                order_id=order.order_id,
                symbol=order.symbol,
                side=order.side,
                quantity=qty,
                price=px,
                commission=self.commission(px, qty, LiquiditySide.MAKER),
                timestamp_ms=order.timestamp_ms + self._latency(qty),
                liquidity_side=LiquiditySide.MAKER,
                slippage=slip,
            )
        ]

    # ------------------------------------------------------------------
    # cost components
    # ------------------------------------------------------------------

    def _slippage(self, price: float, side: Side) -> float:
        if self.rng.next() > self.config.slippage_probability:
            return 0.0
        bps = self.config.avg_slippage_bps * (0.5 + abs(self.rng.next_gaussian()))
        return float(price) * (bps / 10_000.0) * side.sign

    def commission(self, price: float, quantity: float, liquidity: LiquiditySide) -> float:
        rate = self.config.commission_rate
        if liquidity is LiquiditySide.MAKER:
            rate -= self.config.maker_discount
        return float(price) * float(quantity) * max(0.0, rate)

    def _latency(self, quantity: float) -> float:
        cfg = self.latency
        offset = (self.rng.next() - 0.5) * 2.0 * cfg.latency_variance_ms
        return max(0.0, cfg.base_latency_ms + float(quantity) * cfg.size_latency_factor + offset)
