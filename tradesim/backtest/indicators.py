"""tradesim.backtest.indicators

Single-pass indicators over a dense close series.

Every function returns an array the same length as its input, front-padded
with a neutral value before warm-up:
- SMA / Bollinger: 0.0
- RSI: 50.0

Degenerate inputs (empty series, non-positive period) return the all-default
array rather than raising. Callers branch on index, not on value.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

RSI_NEUTRAL = 50.0


def _as_series(close: np.ndarray) -> np.ndarray:
    return np.asarray(close, dtype=np.float64)


def sma(close: np.ndarray, period: int) -> np.ndarray:
    x = _as_series(close)
    n = int(period)
    out = np.zeros(x.shape[0], dtype=np.float64)
    if x.size == 0 or n <= 0:
        return out

    total = 0.0
    for i in range(x.shape[0]):
        total += float(x[i])
        if i >= n:
            total -= float(x[i - n])
        if i >= n - 1:
            out[i] = total / n
    return out


def rsi(close: np.ndarray, period: int) -> np.ndarray:
    """Wilder RSI.

    Seeds the average gain/loss from the first ``period`` deltas, writes the
    first value at index ``period`` and smooths from there on. A window with
    losses but no gains reads 0, gains but no losses reads 100, and no movement
    at all stays neutral.
    """

    x = _as_series(close)
    n = int(period)
    out = np.full(x.shape[0], RSI_NEUTRAL, dtype=np.float64)
    if n <= 0 or x.shape[0] <= n:
        return out

    gains = 0.0
    losses = 0.0
    for i in range(1, n + 1):
        change = float(x[i] - x[i - 1])
        if change > 0:
            gains += change
        else:
            losses -= change

    avg_gain = gains / n
    avg_loss = losses / n
    out[n] = _rsi_value(avg_gain, avg_loss)

    for i in range(n + 1, x.shape[0]):
        change = float(x[i] - x[i - 1])
        gain = change if change > 0 else 0.0
        loss = -change if change < 0 else 0.0
        avg_gain = (avg_gain * (n - 1) + gain) / n
        avg_loss = (avg_loss * (n - 1) + loss) / n
        out[i] = _rsi_value(avg_gain, avg_loss)
    return out


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    """No losses reads 100, except a window with no movement at all, which stays
    at the neutral 50 so a flat series is neither overbought nor oversold.
    """

    if avg_loss == 0.0:
        return RSI_NEUTRAL if avg_gain == 0.0 else 100.0
    return 100.0 - (100.0 / (1.0 + avg_gain / avg_loss))


@dataclass(frozen=True, slots=True)
class Bands:
    upper: np.ndarray
    middle: np.ndarray
    lower: np.ndarray


def bollinger(close: np.ndarray, period: int, std_dev: float) -> Bands:
    x = _as_series(close)
    n = int(period)
    t_len = x.shape[0]
    upper = np.zeros(t_len, dtype=np.float64)
    middle = np.zeros(t_len, dtype=np.float64)
    lower = np.zeros(t_len, dtype=np.float64)
    if t_len == 0 or n <= 0:
        return Bands(upper=upper, middle=middle, lower=lower)

    k = float(std_dev)
    total = 0.0
    total_sq = 0.0
    for i in range(t_len):
        px = float(x[i])
        total += px
        total_sq += px * px
        if i >= n:
            removed = float(x[i - n])
            total -= removed
            total_sq -= removed * removed
        if i >= n - 1:
            mean = total / n
            # floating-point cancellation can push this below zero
            variance = max(0.0, total_sq / n - mean * mean)
            sd = float(np.sqrt(variance))
            middle[i] = mean
            upper[i] = mean + sd * k
            lower[i] = mean - sd * k
    return Bands(upper=upper, middle=middle, lower=lower)
