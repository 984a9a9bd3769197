"""tradesim.backtest.orderbook

Synthetic order book.

The book is built once from the first candle and then rides the close price:
every later candle translates all levels by ``close - mid`` and keeps their
sizes, so liquidity never jumps discontinuously between bars.

This is not market depth. It is a deterministic stand-in the fill model can
walk.
"""

from __future__ import annotations

import math

from tradesim.core.time import datetime_to_ms
from tradesim.core.types import BookLevel, Candle, OrderBook

DEFAULT_DEPTH = 20
DEFAULT_SPREAD_BPS = 1.0
DEFAULT_BASE_SIZE = 10_000.0
DEFAULT_SIZE_DECAY = 0.3


def build_book(
    candle: Candle,
    *,
    depth: int = DEFAULT_DEPTH,
    spread_bps: float = DEFAULT_SPREAD_BPS,
    base_size: float = DEFAULT_BASE_SIZE,
    size_decay: float = DEFAULT_SIZE_DECAY,
) -> OrderBook:
    mid = float(candle.close)
    spread = mid * (float(spread_bps) / 10_000.0)

    bids: list[BookLevel] = []
    asks: list[BookLevel] = []
    for i in range(int(depth)):
        offset = spread / 2.0 + i * spread * 0.5
        size = float(base_size) * math.exp(-i * float(size_decay))
        bid_px = mid - offset
        if bid_px > 0:
            bids.append(BookLevel(price=bid_px, size=size))
        asks.append(BookLevel(price=mid + offset, size=size))

    return OrderBook(
        symbol=candle.symbol,
        bids=bids,
        asks=asks,
        mid_price=mid,
        spread=spread,
        last_update=datetime_to_ms(candle.timestamp),
    )


def shift_book(book: OrderBook, delta: float, *, mid_price: float, ts_ms: int) -> OrderBook:
    """Translate every level by ``delta`` in place. Bids that would go non-positive are dropped."""

    d = float(delta)
    book.bids = [BookLevel(price=lv.price + d, size=lv.size) for lv in book.bids if lv.price + d > 0]
    book.asks = [BookLevel(price=lv.price + d, size=lv.size) for lv in book.asks]
    book.mid_price = float(mid_price)
    book.last_update = int(ts_ms)
    return book


class OrderBookSynthesizer:
    """Owns the single book of one backtest run. Never share across runs."""

    def __init__(
        self,
        *,
        depth: int = DEFAULT_DEPTH,
        spread_bps: float = DEFAULT_SPREAD_BPS,
        base_size: float = DEFAULT_BASE_SIZE,
        size_decay: float = DEFAULT_SIZE_DECAY,
    ) -> None:
        self.depth = int(depth)
        self.spread_bps = float(spread_bps)
        self.base_size = float(base_size)
        self.size_decay = float(size_decay)
        self.book: OrderBook | None = None

    def on_candle(self, candle: Candle) -> OrderBook:
        if self.book is None:
            self.book = build_book(
                candle,
                depth=self.depth,
                spread_bps=self.spread_bps,
                base_size=self.base_size,
                size_decay=self.size_decay,
            )
            return self.book

        close = float(candle.close)
        return shift_book(
            self.book,
            close - self.book.mid_price,
            mid_price=close,
            ts_ms=datetime_to_ms(candle.timestamp),
        )

    def reset(self) -> None:
        self.book = None
