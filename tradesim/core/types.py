"""tradesim.core.types

Lightweight dataclasses for hot-path objects.

Pydantic models own IO boundaries; dataclasses keep the simulation loop lean.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from tradesim.core.exceptions import ParameterError


class StrategyType(StrEnum):
    TREND_FOLLOWING = "TREND_FOLLOWING"
    MEAN_REVERSION = "MEAN_REVERSION"
    AI_PREDICTION = "AI_PREDICTION"
    MOMENTUM = "MOMENTUM"


class Side(StrEnum):
    BUY = "BUY"
    SELL = "SELL"

    @property
    def sign(self) -> int:
        return 1 if self is Side.BUY else -1


class PositionSide(StrEnum):
    LONG = "LONG"
    SHORT = "SHORT"


class OrderType(StrEnum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"
    STOP_MARKET = "STOP_MARKET"
    STOP_LIMIT = "STOP_LIMIT"


class TimeInForce(StrEnum):
    GTC = "GTC"
    IOC = "IOC"
    FOK = "FOK"
    ALO = "ALO"


class LiquiditySide(StrEnum):
    MAKER = "MAKER"
    TAKER = "TAKER"


class EntryExit(StrEnum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"


class ExitReason(StrEnum):
    SIGNAL = "SIGNAL"
    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"
    END_OF_BACKTEST = "END_OF_BACKTEST"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Candle:
    symbol: str
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    vwap: float | None = None


@dataclass(frozen=True, slots=True)
class RiskParameters:
    max_position_size: float = 0.1  # fraction of capital
    stop_loss: float = 0.05  # fractional loss; 0 disables
    take_profit: float = 0.10  # fractional gain; 0 disables
    max_leverage: float = 1.0

    def __post_init__(self) -> None:
        for name in ("max_position_size", "stop_loss", "take_profit", "max_leverage"):
            v = float(getattr(self, name))
            if not math.isfinite(v) or v < 0:
                raise ParameterError(f"risk parameter {name} must be a finite non-negative number, got {v!r}")


@dataclass(frozen=True, slots=True)
class Strategy:
    """Read-only strategy description handed in by the caller."""

    id: str
    type: str
    symbols: tuple[str, ...] = ()
    parameters: dict[str, Any] = field(default_factory=dict)
    risk: RiskParameters = field(default_factory=RiskParameters)
    name: str = ""

    @property
    def strategy_type(self) -> StrategyType | None:
        try:
            return StrategyType(str(self.type).upper())
        except ValueError:
            return None


StrategyIdea = Strategy


# ---------------------------------------------------------------------------
# Simulation state
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BookLevel:
    price: float
    size: float


@dataclass(slots=True)
class OrderBook:
    """Synthetic leveled book. Mutated in place by the synthesizer."""

    symbol: str
    bids: list[BookLevel]  # descending
    asks: list[BookLevel]  # ascending
    mid_price: float
    spread: float
    last_update: int  # epoch ms

    @property
    def best_bid(self) -> float | None:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> float | None:
        return self.asks[0].price if self.asks else None


@dataclass(frozen=True, slots=True)
class SimulatedOrder:
    order_id: str
    symbol: str
    side: Side
    type: OrderType
    quantity: float
    timestamp_ms: int
    price: float | None = None
    stop_price: float | None = None
    time_in_force: TimeInForce | None = None
    reduce_only: bool = False


@dataclass(frozen=True, slots=True)
class SimulatedFill:
    fill_id: str
    order_id: str
    symbol: str
    side: Side
    quantity: float
    price: float
    commission: float
    timestamp_ms: float
    liquidity_side: LiquiditySide
    slippage: float


@dataclass(slots=True)
class Position:
    qty: float = 0.0  # signed: >0 long, <0 short
    avg_px: float = 0.0
    side: PositionSide = PositionSide.LONG

    @property
    def is_flat(self) -> bool:
        return self.qty == 0.0


@dataclass(frozen=True, slots=True)
class Trade:
    id: str
    symbol: str
    side: Side
    size: float
    price: float
    fee: float
    pnl: float
    timestamp: datetime
    entry_exit: EntryExit
    reason: ExitReason | None = None


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BacktestPeriod:
    start: datetime | None
    end: datetime | None


@dataclass(frozen=True, slots=True)
class RiskMetrics:
    calmar_ratio: float
    sortino_ratio: float
    var95: float
    beta: float
    alpha: float


@dataclass(frozen=True, slots=True)
class BacktestResult:
    strategy_id: str
    period: BacktestPeriod
    initial_capital: float
    final_capital: float
    total_return: float  # percent
    annualized_return: float  # percent
    sharpe_ratio: float
    max_drawdown: float  # percent
    win_rate: float  # percent
    profit_factor: float
    total_trades: int  # exits only
    trades: tuple[Trade, ...]
    metrics: RiskMetrics

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly dict. Datetimes become ISO strings."""

        def _clean(v: Any) -> Any:
            if isinstance(v, datetime):
                return v.isoformat()
            if isinstance(v, dict):
                return {k: _clean(x) for k, x in v.items()}
            if isinstance(v, (list, tuple)):
                return [_clean(x) for x in v]
            return v

        return _clean(asdict(self))
