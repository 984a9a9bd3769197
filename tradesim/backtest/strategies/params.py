"""tradesim.backtest.strategies.params

Parameter sanitization.

Upstream strategy ideas use whatever key names they like. Each knob accepts a
few aliases, falls back to a default when the value is missing or not a finite
number, and is clamped into a numerically safe range.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _finite(raw: Any) -> float | None:
    if isinstance(raw, bool) or raw is None:
        return None
    try:
        v = float(raw)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def get_param(
    params: Mapping[str, Any],
    keys: Sequence[str],
    default: float,
    lo: float,
    hi: float,
    *,
    integer: bool = True,
) -> float:
    value = default
    for key in keys:
        v = _finite(params.get(key))
        if v is not None:
            value = v
            break
    clamped = min(max(value, lo), hi)
    return float(_round_half_up(clamped)) if integer else clamped


@dataclass(frozen=True, slots=True)
class StrategyParams:
    rsi_period: int
    oversold: float
    overbought: float
    bb_period: int
    bb_std_dev: float
    fast_period: int
    slow_period: int


def sanitize(params: Mapping[str, Any] | None) -> StrategyParams:
    p = params or {}
    rsi_period = int(get_param(p, ("rsiPeriod", "rsi_length", "rsiLength"), 14, 5, 40))
    oversold = get_param(p, ("oversold", "rsiOversold", "rsiLow"), 35, 10, 50, integer=False)
    overbought = get_param(p, ("overbought", "rsiOverbought", "rsiHigh"), 65, 50, 90, integer=False)
    bb_period = int(get_param(p, ("bbPeriod", "bollingerPeriod"), 20, 10, 50))
    bb_std_dev = get_param(p, ("bbStdDev", "bollingerStdDev"), 2, 1.5, 3.5, integer=False)
    fast_period = int(get_param(p, ("fastPeriod", "smaFast", "fast"), 10, 5, 30))
    slow_period = int(get_param(p, ("slowPeriod", "smaSlow", "slow"), 30, 10, 80))

    if slow_period <= fast_period:
        slow_period = min(fast_period + 5, 80)
    if oversold >= overbought:
        oversold = max(10.0, overbought - 20.0)

    return StrategyParams(
        rsi_period=rsi_period,
        oversold=oversold,
        overbought=overbought,
        bb_period=bb_period,
        bb_std_dev=bb_std_dev,
        fast_period=fast_period,
        slow_period=slow_period,
    )
