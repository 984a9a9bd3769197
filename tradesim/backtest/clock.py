"""tradesim.backtest.clock

Clocks.

``TestClock`` is the backtest clock: integer nanoseconds, moved only by the
driver, never backwards. Timers and one-shot alerts fire as time is advanced
over them. ``RealtimeClock`` exposes the same surface over the wall clock for
callers that share code with live trading.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Protocol

from tradesim.core.time import NANOS_PER_MS, datetime_to_ms, ms_to_ns, ns_to_datetime

ClockMode = Literal["REALTIME", "SIMULATION"]


@dataclass(frozen=True, slots=True)
class TimeEvent:
    name: str
    event_id: str
    ts_event: int  # ns
    ts_init: int  # ns


TimeCallback = Callable[[TimeEvent], None]


@dataclass(slots=True)
class Timer:
    name: str
    interval_ns: int
    next_trigger_ns: int
    callback: TimeCallback | None = None


@dataclass(slots=True)
class TimeAlert:
    name: str
    trigger_time_ns: int
    callback: TimeCallback | None = None


class Clock(Protocol):
    mode: ClockMode

    def timestamp(self) -> int: ...

    def timestamp_ms(self) -> float: ...

    def utc_now(self) -> datetime: ...

    def set_timer(self, name: str, interval_ms: float, callback: TimeCallback | None = None) -> None: ...

    def set_time_alert(self, name: str, alert_time: datetime, callback: TimeCallback | None = None) -> None: ...

    def cancel_timer(self, name: str) -> None: ...


class _TimerBook:
    def __init__(self) -> None:
        self.timers: dict[str, Timer] = {}
        self.alerts: dict[str, TimeAlert] = {}

    def set_timer(self, now_ns: int, name: str, interval_ms: float, callback: TimeCallback | None) -> None:
        interval_ns = ms_to_ns(interval_ms)
        if interval_ns <= 0:
            raise ValueError("timer interval must be > 0")
        self.timers[name] = Timer(name=name, interval_ns=interval_ns, next_trigger_ns=now_ns + interval_ns, callback=callback)

    def set_time_alert(self, name: str, alert_time: datetime, callback: TimeCallback | None) -> None:
        self.alerts[name] = TimeAlert(name=name, trigger_time_ns=ms_to_ns(datetime_to_ms(alert_time)), callback=callback)

    def cancel(self, name: str) -> None:
        self.timers.pop(name, None)
        self.alerts.pop(name, None)

    def clear(self) -> None:
        self.timers.clear()
        self.alerts.clear()


class TestClock:
    """Manually advanced simulation clock."""

    __test__ = False  # not a pytest test class

    mode: ClockMode = "SIMULATION"

    def __init__(self, initial_time_ms: float | None = None) -> None:
        self._initial_ms = initial_time_ms
        self._now_ns = self._start_ns()
        self._book = _TimerBook()
        self._triggered: list[TimeEvent] = []

    def _start_ns(self) -> int:
        if self._initial_ms is None:
            return time.time_ns()
        return ms_to_ns(self._initial_ms)

    def timestamp(self) -> int:
        return self._now_ns

    def timestamp_ms(self) -> float:
        return self._now_ns / NANOS_PER_MS

    def utc_now(self) -> datetime:
        return ns_to_datetime(self._now_ns)

    def advance_time(self, to_time_ns: int) -> list[TimeEvent]:
        """Move to ``to_time_ns`` and return the events fired on the way.

        Moving to the current time or earlier is a no-op.
        """

        target = int(to_time_ns)
        if target <= self._now_ns:
            return []
        self._now_ns = target

        events: list[TimeEvent] = []
        for name, timer in self._book.timers.items():
            while timer.next_trigger_ns <= self._now_ns:
                ev = TimeEvent(
                    name=timer.name,
                    event_id=f"{name}-{timer.next_trigger_ns}",
                    ts_event=timer.next_trigger_ns,
                    ts_init=self._now_ns,
                )
                events.append(ev)
                if timer.callback is not None:
                    timer.callback(ev)
                timer.next_trigger_ns += timer.interval_ns

        for name, alert in list(self._book.alerts.items()):
            if alert.trigger_time_ns <= self._now_ns:
                ev = TimeEvent(
                    name=alert.name,
                    event_id=f"{name}-{alert.trigger_time_ns}",
                    ts_event=alert.trigger_time_ns,
                    ts_init=self._now_ns,
                )
                events.append(ev)
                if alert.callback is not None:
                    alert.callback(ev)
                del self._book.alerts[name]

        self._triggered.extend(events)
        return events

    def advance_by(self, duration_ms: float) -> list[TimeEvent]:
        return self.advance_time(self._now_ns + ms_to_ns(duration_ms))

    def set_time(self, time_ns: int) -> list[TimeEvent]:
        return self.advance_time(time_ns)

    def set_date(self, dt: datetime) -> list[TimeEvent]:
        return self.set_time(ms_to_ns(datetime_to_ms(dt)))

    def set_timer(self, name: str, interval_ms: float, callback: TimeCallback | None = None) -> None:
        self._book.set_timer(self._now_ns, name, interval_ms, callback)

    def set_time_alert(self, name: str, alert_time: datetime, callback: TimeCallback | None = None) -> None:
        self._book.set_time_alert(name, alert_time, callback)

    def cancel_timer(self, name: str) -> None:
        self._book.cancel(name)

    def triggered_events(self) -> list[TimeEvent]:
        """Events fired since the last call. Drains the log."""

        out, self._triggered = self._triggered, []
        return out

    def pending_timers(self) -> list[Timer]:
        return [t for t in self._book.timers.values() if t.next_trigger_ns > self._now_ns]

    def pending_alerts(self) -> list[TimeAlert]:
        return [a for a in self._book.alerts.values() if a.trigger_time_ns > self._now_ns]

    def reset(self) -> None:
        self._now_ns = self._start_ns()
        self._book.clear()
        self._triggered = []


class RealtimeClock:
    """Wall clock. Timers fire only when ``process_timers`` is called."""

    mode: ClockMode = "REALTIME"

    def __init__(self) -> None:
        self._book = _TimerBook()

    def timestamp(self) -> int:
        return time.time_ns()

    def timestamp_ms(self) -> float:
        return self.timestamp() / NANOS_PER_MS

    def utc_now(self) -> datetime:
        return ns_to_datetime(self.timestamp())

    def set_timer(self, name: str, interval_ms: float, callback: TimeCallback | None = None) -> None:
        self._book.set_timer(self.timestamp(), name, interval_ms, callback)

    def set_time_alert(self, name: str, alert_time: datetime, callback: TimeCallback | None = None) -> None:
        self._book.set_time_alert(name, alert_time, callback)

    def cancel_timer(self, name: str) -> None:
        self._book.cancel(name)

    def process_timers(self) -> list[TimeEvent]:
        now = self.timestamp()
        events: list[TimeEvent] = []
        for name, timer in self._book.timers.items():
            if now >= timer.next_trigger_ns:
                ev = TimeEvent(name=timer.name, event_id=f"{name}-{now}", ts_event=timer.next_trigger_ns, ts_init=now)
                events.append(ev)
                if timer.callback is not None:
                    timer.callback(ev)
                timer.next_trigger_ns = now + timer.interval_ns

        for name, alert in list(self._book.alerts.items()):
            if now >= alert.trigger_time_ns:
                ev = TimeEvent(name=alert.name, event_id=f"{name}-{now}", ts_event=alert.trigger_time_ns, ts_init=now)
                events.append(ev)
                if alert.callback is not None:
                    alert.callback(ev)
                del self._book.alerts[name]
        return events


def create_clock(mode: ClockMode = "REALTIME", *, initial_time_ms: float | None = None) -> TestClock | RealtimeClock:
    if mode == "SIMULATION":
        return TestClock(initial_time_ms)
    return RealtimeClock()
