"""tradesim.backtest.ledger

Position + capital ledger.

Invariants:
- position quantity is signed; ``side`` follows its sign (LONG when flat)
- capital moves only by realized P&L minus fees
- trades are append-only and never go back in time

A fill that exactly flattens records an EXIT and leaves ``qty == 0`` before
anything else in the same step looks at the position. A fill that flips the
position is split: an EXIT for the closed quantity and an ENTRY for the rest.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from tradesim.core.time import ms_to_datetime
from tradesim.core.types import (
    EntryExit,
    ExitReason,
    Position,
    PositionSide,
    Side,
    SimulatedFill,
    Trade,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PositionUpdate:
    qty: float
    avg_px: float
    realized_pnl: float


def fill_delta(fill: SimulatedFill) -> float:
    return float(fill.quantity) * fill.side.sign


def crosses_zero(current_qty: float, fill: SimulatedFill) -> bool:
    """True when ``fill`` takes the position from one side of zero to the other."""

    new_qty = current_qty + fill_delta(fill)
    return (current_qty > 0 and new_qty < 0) or (current_qty < 0 and new_qty > 0)


def apply_fills(current_qty: float, current_avg_px: float, fills: Iterable[SimulatedFill]) -> PositionUpdate:
    qty = float(current_qty)
    avg_px = float(current_avg_px)
    realized = 0.0

    for fill in fills:
        delta = fill_delta(fill)
        new_qty = qty + delta
        px = float(fill.price)

        if qty == 0 or (qty > 0) == (delta > 0):
            # opening or adding: size-weighted average
            avg_px = px if qty == 0 else (avg_px * abs(qty) + px * abs(delta)) / abs(new_qty)
        else:
            direction = 1.0 if qty > 0 else -1.0
            overlap = min(abs(qty), abs(delta))
            realized += (px - avg_px) * direction * overlap
            if new_qty == 0:
                avg_px = 0.0
            elif (new_qty > 0) != (qty > 0):
                avg_px = px

        qty = new_qty

    return PositionUpdate(qty=qty, avg_px=avg_px, realized_pnl=realized)


class Ledger:
    """Positions, capital and the trade log of one run. Never shared across runs."""

    def __init__(self, *, initial_capital: float, commission_rate: float = 0.0005, id_prefix: str = "t") -> None:
        self.initial_capital = float(initial_capital)
        self.capital = float(initial_capital)
        self.commission_rate = float(commission_rate)
        self.positions: dict[str, Position] = {}
        self.trades: list[Trade] = []
        self._id_prefix = id_prefix
        self._last_ts_ms = float("-inf")

    def position(self, symbol: str) -> Position:
        return self.positions.setdefault(symbol, Position())

    def open_symbols(self) -> list[str]:
        return [s for s, p in self.positions.items() if p.qty != 0]

    def apply_fill(self, fill: SimulatedFill, *, reason: ExitReason | None = None) -> list[Trade]:
        pos = self.position(fill.symbol)
        qty_before = pos.qty
        update = apply_fills(pos.qty, pos.avg_px, [fill])
        self._set_position(pos, update)

        delta = fill_delta(fill)
        if qty_before == 0 or (qty_before > 0) == (delta > 0):
            return [self._record(fill, fill.quantity, fill.commission, 0.0, EntryExit.ENTRY, None)]

        if not crosses_zero(qty_before, fill):
            return [self._record(fill, fill.quantity, fill.commission, update.realized_pnl, EntryExit.EXIT, reason or ExitReason.SIGNAL)]

        closed = abs(qty_before)

        # flip: split the fee pro rata between the closing and the opening part
        exit_fee = fill.commission * closed / fill.quantity
        out = [self._record(fill, closed, exit_fee, update.realized_pnl, EntryExit.EXIT, reason or ExitReason.SIGNAL)]
        out.append(self._record(fill, fill.quantity - closed, fill.commission - exit_fee, 0.0, EntryExit.ENTRY, None))
        return out

    def force_close(self, symbol: str, *, price: float, timestamp_ms: float, reason: ExitReason) -> Trade | None:
        """Close the whole position at ``price`` with a taker commission."""

        pos = self.positions.get(symbol)
        if pos is None or pos.qty == 0:
            return None

        size = abs(pos.qty)
        side = Side.SELL if pos.qty > 0 else Side.BUY
        direction = 1.0 if pos.qty > 0 else -1.0
        pnl = (float(price) - pos.avg_px) * direction * size
        fee = float(price) * size * self.commission_rate

        pos.qty = 0.0
        pos.avg_px = 0.0
        pos.side = PositionSide.LONG
        trade = self._append(
            symbol=symbol,
            side=side,
            size=size,
            price=float(price),
            fee=fee,
            pnl=pnl,
            ts_ms=timestamp_ms,
            entry_exit=EntryExit.EXIT,
            reason=reason,
        )
        logger.debug("position_closed", extra={"symbol": symbol, "reason": str(reason), "pnl": round(pnl, 2)})
        return trade

    def unrealized_return(self, symbol: str, mark_price: float) -> float | None:
        """Fractional unrealized return on entry cost, or None when flat."""

        pos = self.positions.get(symbol)
        if pos is None or pos.qty == 0 or pos.avg_px <= 0:
            return None
        direction = 1.0 if pos.qty > 0 else -1.0
        return (float(mark_price) - pos.avg_px) * direction / pos.avg_px

    # ------------------------------------------------------------------

    @staticmethod
    def _set_position(pos: Position, update: PositionUpdate) -> None:
        pos.qty = update.qty
        pos.avg_px = update.avg_px
        if update.qty > 0:
            pos.side = PositionSide.LONG
        elif update.qty < 0:
            pos.side = PositionSide.SHORT
        else:
            pos.side = PositionSide.LONG

    def _record(
        self,
        fill: SimulatedFill,
        size: float,
        fee: float,
        pnl: float,
        entry_exit: EntryExit,
        reason: ExitReason | None,
    ) -> Trade:
        return self._append(
            symbol=fill.symbol,
            side=fill.side,
            size=float(size),
            price=float(fill.price),
            fee=float(fee),
            pnl=float(pnl),
            ts_ms=fill.timestamp_ms,
            entry_exit=entry_exit,
            reason=reason,
        )

    def _append(
        self,
        *,
        symbol: str,
        side: Side,
        size: float,
        price: float,
        fee: float,
        pnl: float,
        ts_ms: float,
        entry_exit: EntryExit,
        reason: ExitReason | None,
    ) -> Trade:
        # latency can put a fill past the next bar's open; the log stays ordered
        ts = max(float(ts_ms), self._last_ts_ms)
        self._last_ts_ms = ts

        self.capital += pnl - fee
        trade = Trade(
            id=f"{self._id_prefix}{len(self.trades) + 1}",
            symbol=symbol,
            side=side,
            size=size,
            price=price,
            fee=fee,
            pnl=pnl,
            timestamp=ms_to_datetime(ts),
            entry_exit=entry_exit,
            reason=reason,
        )
        self.trades.append(trade)
        return trade
