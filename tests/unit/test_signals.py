from __future__ import annotations

import numpy as np
import pytest

from tradesim.backtest.signals import SignalSet, band_reversion, crossover, threshold


def test_crossover_fires_exactly_once_at_crossing_bar() -> None:
    fast = np.array([1.0, 1.0, 1.0, 2.0, 3.0, 4.0])
    slow = np.array([2.0, 2.0, 2.0, 2.5, 2.5, 2.5])
    s = crossover(fast, slow, start=1)
    assert np.flatnonzero(s.buy).tolist() == [4]
    assert not s.sell.any()


def test_crossover_requires_an_actual_cross() -> None:
    fast = np.full(10, 2.0)
    slow = np.full(10, 1.0)
    s = crossover(fast, slow, start=0)
    assert not s.buy.any()
    assert not s.sell.any()


def test_crossover_from_equality_counts() -> None:
    fast = np.array([1.0, 1.0, 0.5])
    slow = np.array([1.0, 1.0, 1.0])
    s = crossover(fast, slow, start=0)
    assert np.flatnonzero(s.sell).tolist() == [2]


def test_crossover_ignores_bars_before_start() -> None:
    fast = np.array([0.0, 2.0, 0.0, 2.0])
    slow = np.ones(4)
    s = crossover(fast, slow, start=2)
    assert np.flatnonzero(s.buy).tolist() == [3]
    assert np.flatnonzero(s.sell).tolist() == [2]


def test_crossover_shape_mismatch() -> None:
    with pytest.raises(ValueError):
        crossover(np.zeros(3), np.zeros(4), start=0)


def test_band_reversion_needs_both_conditions() -> None:
    close = np.array([90.0, 90.0, 110.0, 110.0])
    upper = np.full(4, 105.0)
    lower = np.full(4, 95.0)
    r = np.array([20.0, 50.0, 80.0, 50.0])
    s = band_reversion(close, upper, lower, r, oversold=35, overbought=65, start=0)
    assert s.buy.tolist() == [True, False, False, False]
    assert s.sell.tolist() == [False, False, True, False]


def test_threshold_is_strict_and_respects_start() -> None:
    r = np.array([10.0, 35.0, 65.0, 90.0, 10.0])
    s = threshold(r, oversold=35, overbought=65, start=1)
    assert s.buy.tolist() == [False, False, False, False, True]
    assert s.sell.tolist() == [False, False, False, True, False]


def test_signal_set_empty() -> None:
    s = SignalSet.empty(5)
    assert len(s) == 5
    assert s.buy.dtype == bool
    assert not s.buy.any() and not s.sell.any()
