"""snowball.backtest.io

Lightweight IO helpers for backtesting.

CSV schema:
- required: time (ISO date), open, high, low, close
- optional: volume

Rows must be in ascending, unique date order. The engine never reorders.

Serialization turns a result into plain JSON types. Infinite ratios become
null; JSON has no infinity.
"""

from __future__ import annotations

import csv
import math
from dataclasses import asdict
from datetime import date
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from snowball.backtest.models import PriceBar
from snowball.core.exceptions import DataFormatError

REQUIRED_COLUMNS = ("time", "open", "high", "low", "close")


@runtime_checkable
class PriceHistorySource(Protocol):
    """Market-data fetcher contract. Implementations live outside the core."""

    def history(self, symbol: str, *, start: date | None = None, end: date | None = None) -> list[PriceBar]: ...


def _number(row: dict[str, str], name: str, line: int) -> float:
    raw = row.get(name, "")
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise DataFormatError(f"line {line}: column {name!r} is not a number: {raw!r}") from e
    if not math.isfinite(value):
        raise DataFormatError(f"line {line}: column {name!r} is not finite: {raw!r}")
    return value


def _date(raw: str, line: int) -> date:
    try:
        return date.fromisoformat(raw[:10])
    except ValueError as e:
        raise DataFormatError(f"line {line}: bad date: {raw!r}") from e


def load_bars_csv(path: str | Path) -> list[PriceBar]:
    p = Path(path)
    if not p.exists():
        raise DataFormatError(f"price file not found: {p}")

    bars: list[PriceBar] = []
    with p.open("r", encoding="utf-8", newline="") as f:
        r = csv.DictReader(f)
        header = [h.strip().lower() for h in (r.fieldnames or [])]
        missing = [c for c in REQUIRED_COLUMNS if c not in header]
        if missing:
            raise DataFormatError(f"CSV missing required column(s): {', '.join(missing)}")
        r.fieldnames = header
        has_volume = "volume" in header

        for line, row in enumerate(r, start=2):
            row = {k: (v.strip() if isinstance(v, str) else "") for k, v in row.items() if k is not None}
            volume_raw = row.get("volume", "") if has_volume else ""
            bar = PriceBar(
                time=_date(row.get("time", ""), line),
                open=_number(row, "open", line),
                high=_number(row, "high", line),
                low=_number(row, "low", line),
                close=_number(row, "close", line),
                volume=_number(row, "volume", line) if volume_raw else None,
            )
            if bars and bar.time <= bars[-1].time:
                raise DataFormatError(
                    f"line {line}: dates must be ascending and unique, {bar.time} after {bars[-1].time}"
                )
            bars.append(bar)

    return bars


def load_dividends_csv(path: str | Path) -> dict[date, float]:
    """Read `time,amount` rows: ex-dividend date and cash per share."""

    p = Path(path)
    if not p.exists():
        raise DataFormatError(f"dividend file not found: {p}")

    out: dict[date, float] = {}
    with p.open("r", encoding="utf-8", newline="") as f:
        r = csv.DictReader(f)
        header = [h.strip().lower() for h in (r.fieldnames or [])]
        missing = [c for c in ("time", "amount") if c not in header]
        if missing:
            raise DataFormatError(f"CSV missing required column(s): {', '.join(missing)}")
        r.fieldnames = header

        for line, row in enumerate(r, start=2):
            row = {k: (v.strip() if isinstance(v, str) else "") for k, v in row.items() if k is not None}
            when = _date(row.get("time", ""), line)
            amount = _number(row, "amount", line)
            if amount < 0:
                raise DataFormatError(f"line {line}: dividend must be >= 0, got {amount}")
            out[when] = out.get(when, 0.0) + amount

    return out


def _jsonable(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    return value


def result_to_dict(result: Any) -> dict[str, Any]:
    """Any result dataclass (backtest, periodic, projection) as JSON-ready types."""

    return _jsonable(asdict(result))
