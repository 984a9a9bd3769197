"""tradesim.backtest.signals

Signal kernels: indicator arrays in, aligned boolean buy/sell arrays out.

Every kernel leaves indices before ``start`` false. Pure and deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True)
class SignalSet:
    buy: np.ndarray  # bool, shape (T,)
    sell: np.ndarray  # bool, shape (T,)

    @classmethod
    def empty(cls, t_len: int) -> SignalSet:
        return cls(buy=np.zeros(t_len, dtype=bool), sell=np.zeros(t_len, dtype=bool))

    def __len__(self) -> int:
        return int(self.buy.shape[0])


def crossover(fast: np.ndarray, slow: np.ndarray, *, start: int) -> SignalSet:
    """Flag true crossings of ``fast`` over / under ``slow``.

    Buy at ``i`` when fast[i-1] <= slow[i-1] and fast[i] > slow[i]; sell is the
    mirror. Ordering alone never fires.
    """

    f = np.asarray(fast, dtype=np.float64)
    s = np.asarray(slow, dtype=np.float64)
    if f.shape != s.shape:
        raise ValueError("fast and slow must have the same shape")

    out = SignalSet.empty(f.shape[0])
    for i in range(max(1, int(start)), f.shape[0]):
        if f[i] > s[i] and f[i - 1] <= s[i - 1]:
            out.buy[i] = True
        if f[i] < s[i] and f[i - 1] >= s[i - 1]:
            out.sell[i] = True
    return out


def band_reversion(
    close: np.ndarray,
    upper: np.ndarray,
    lower: np.ndarray,
    rsi: np.ndarray,
    *,
    oversold: float,
    overbought: float,
    start: int,
) -> SignalSet:
    """Buy below the lower band AND oversold; sell above the upper band AND overbought."""

    c = np.asarray(close, dtype=np.float64)
    out = SignalSet.empty(c.shape[0])
    for i in range(max(0, int(start)), c.shape[0]):
        if c[i] < lower[i] and rsi[i] < oversold:
            out.buy[i] = True
        if c[i] > upper[i] and rsi[i] > overbought:
            out.sell[i] = True
    return out


def threshold(rsi: np.ndarray, *, oversold: float, overbought: float, start: int) -> SignalSet:
    """Per-bar RSI thresholds, no crossing logic."""

    r = np.asarray(rsi, dtype=np.float64)
    out = SignalSet.empty(r.shape[0])
    lo = max(0, int(start))
    out.buy[lo:] = r[lo:] < oversold
    out.sell[lo:] = r[lo:] > overbought
    return out
