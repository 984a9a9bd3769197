"""tradesim.core.time

The only time helper surface in the codebase.

Candles carry aware datetimes. The simulation runs on integer epoch
milliseconds (fills) and nanoseconds (clock).
"""

from __future__ import annotations

from datetime import UTC, datetime

NANOS_PER_MS = 1_000_000


def utc_now() -> datetime:
    """Return an aware UTC datetime."""

    return datetime.now(tz=UTC)


def parse_dt(value: str) -> datetime:
    """Parse an ISO-8601 datetime string into an aware UTC datetime.

    Accepts:
    - `Z` suffix
    - explicit offsets
    - naive timestamps (assumed UTC)
    - bare epoch milliseconds

    Raises:
        ValueError: if parsing fails.
    """

    v = value.strip()
    if v.isdigit():
        return ms_to_datetime(int(v))
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"

    dt = datetime.fromisoformat(v)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def datetime_to_ms(dt: datetime) -> int:
    return int(round(ensure_utc(dt).timestamp() * 1000))


def ms_to_datetime(ms: float) -> datetime:
    return datetime.fromtimestamp(float(ms) / 1000.0, tz=UTC)


def ms_to_ns(ms: float) -> int:
    if isinstance(ms, int):
        return ms * NANOS_PER_MS
    return int(round(float(ms) * NANOS_PER_MS))


def ns_to_ms(ns: int) -> float:
    return ns / NANOS_PER_MS


def ns_to_datetime(ns: int) -> datetime:
    return ms_to_datetime(ns_to_ms(ns))


def format_nanos(ns: int) -> str:
    """ISO-8601 rendering of a nanosecond timestamp (millisecond precision)."""

    return ns_to_datetime(ns).isoformat(timespec="milliseconds")
