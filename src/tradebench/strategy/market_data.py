"""Market data adapters for backtests and replayed sessions."""

from __future__ import annotations

import csv
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from tradebench.errors import DataError
from tradebench.simulator.models import PriceBar

REQUIRED_COLUMNS = ("time", "open", "high", "low", "close")


def parse_bar_time(value: str) -> datetime:
    """ISO-8601 timestamps; naive values are taken as UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def bars_from_rows(rows: Iterable[dict[str, str]], symbol: Optional[str] = None) -> list[PriceBar]:
    bars: list[PriceBar] = []
    for line, row in enumerate(rows, start=2):
        missing = [column for column in REQUIRED_COLUMNS if not row.get(column)]
        if missing:
            raise DataError(f"row {line}: missing {', '.join(missing)}")
        try:
            bars.append(
                PriceBar(
                    time=parse_bar_time(row["time"]),
                    open=float(row["open"]),
                    high=float(row["high"]),
                    low=float(row["low"]),
                    close=float(row["close"]),
                    volume=float(row.get("volume") or 0.0),
                    symbol=row.get("symbol") or symbol,
                )
            )
        except ValueError as exc:
            raise DataError(f"row {line}: {exc}") from exc
    bars.sort(key=lambda bar: bar.time)
    return bars


def read_bars_csv(path: str | Path, symbol: Optional[str] = None) -> list[PriceBar]:
    path = Path(path)
    with path.open(newline="", encoding="utf-8") as handle:
        return bars_from_rows(csv.DictReader(handle), symbol=symbol)


def group_by_symbol(bars: Iterable[PriceBar], default_symbol: str) -> dict[str, list[PriceBar]]:
    grouped: dict[str, list[PriceBar]] = {}
    for bar in bars:
        grouped.setdefault(bar.symbol or default_symbol, []).append(bar)
    return grouped
