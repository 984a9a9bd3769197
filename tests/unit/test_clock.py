from __future__ import annotations

from datetime import UTC, datetime

from tradesim.backtest.clock import RealtimeClock, TestClock, TimeEvent, create_clock
from tradesim.core.time import ms_to_datetime, ms_to_ns


def test_test_clock_starts_at_initial_time() -> None:
    clock = TestClock(1_000)
    assert clock.timestamp() == ms_to_ns(1_000)
    assert clock.timestamp_ms() == 1_000
    assert clock.utc_now() == ms_to_datetime(1_000)


def test_test_clock_never_moves_backwards() -> None:
    clock = TestClock(1_000)
    assert clock.set_time(ms_to_ns(500)) == []
    assert clock.timestamp_ms() == 1_000
    clock.advance_by(250)
    assert clock.timestamp_ms() == 1_250


def test_timers_fire_for_every_interval_crossed() -> None:
    seen: list[TimeEvent] = []
    clock = TestClock(0)
    clock.set_timer("bar", 100, seen.append)

    events = clock.advance_time(ms_to_ns(350))

    assert [e.ts_event for e in events] == [ms_to_ns(100), ms_to_ns(200), ms_to_ns(300)]
    assert all(e.ts_init == ms_to_ns(350) for e in events)
    assert seen == events
    assert [t.name for t in clock.pending_timers()] == ["bar"]


def test_alert_fires_once() -> None:
    clock = TestClock(0)
    clock.set_time_alert("close", ms_to_datetime(250))
    assert [e.name for e in clock.advance_time(ms_to_ns(300))] == ["close"]
    assert clock.advance_time(ms_to_ns(400)) == []
    assert clock.pending_alerts() == []


def test_triggered_events_drains() -> None:
    clock = TestClock(0)
    clock.set_timer("t", 10)
    clock.advance_by(25)
    assert len(clock.triggered_events()) == 2
    assert clock.triggered_events() == []


def test_cancel_and_reset() -> None:
    clock = TestClock(0)
    clock.set_timer("t", 10)
    clock.cancel_timer("t")
    assert clock.advance_by(100) == []

    clock.set_timer("u", 10)
    clock.reset()
    assert clock.timestamp() == 0
    assert clock.pending_timers() == []


def test_create_clock_by_mode() -> None:
    assert isinstance(create_clock("SIMULATION", initial_time_ms=5), TestClock)
    assert isinstance(create_clock("REALTIME"), RealtimeClock)


def test_realtime_clock_processes_due_alerts() -> None:
    clock = RealtimeClock()
    clock.set_time_alert("past", datetime(2000, 1, 1, tzinfo=UTC))
    assert [e.name for e in clock.process_timers()] == ["past"]
    assert clock.process_timers() == []
    assert clock.utc_now().year >= 2024
