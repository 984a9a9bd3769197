"""tradesim.backtest.io

Lightweight IO helpers for backtesting.

CSV schema:
- required: timestamp, close
- optional: symbol, open, high, low, volume, vwap

``timestamp`` is ISO-8601 or epoch milliseconds. Missing open/high/low fall
back to close. Rows are validated through ``CandleModel``.
"""

from __future__ import annotations

import csv
from pathlib import Path

from pydantic import ValidationError

from tradesim.core.exceptions import InputContractError
from tradesim.core.models import CandleModel
from tradesim.core.time import parse_dt
from tradesim.core.types import Candle

DEFAULT_SYMBOL = "UNKNOWN"


def load_candles_csv(path: str | Path, symbol: str | None = None) -> list[Candle]:
    p = Path(path)
    rows: list[dict[str, str]] = []
    with p.open("r", encoding="utf-8") as f:
        r = csv.DictReader(f)
        for row in r:
            rows.append({k.strip().lower(): (v.strip() if isinstance(v, str) else "") for k, v in row.items() if k is not None})

    if not rows:
        return []
    for required in ("timestamp", "close"):
        if required not in rows[0]:
            raise ValueError(f"CSV missing required column: {required}")

    out: list[Candle] = []
    for n, row in enumerate(rows, start=2):  # header is line 1
        close = row["close"]

        def col(name: str, default: str | None = None) -> str | None:
            v = row.get(name, "")
            return v if v else default

        try:
            model = CandleModel(
                symbol=symbol or col("symbol", DEFAULT_SYMBOL),
                timestamp=parse_dt(row["timestamp"]),
                open=col("open", close),
                high=col("high", close),
                low=col("low", close),
                close=close,
                volume=col("volume", "0"),
                vwap=col("vwap"),
            )
        except (ValidationError, ValueError) as e:
            raise InputContractError(f"{p}:{n}: bad candle row: {e}") from e
        out.append(model.to_candle())
    return out
