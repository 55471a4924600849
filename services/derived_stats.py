"""Latest value and period-over-period change for the dashboard cards."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Union

RELATIVE = "relative"  # counts and amounts: percent change
POINTS = "points"  # measures that already are percentages: simple difference

MONTH_NAMES = [
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
]


@dataclass(frozen=True)
class TimeSeriesPoint:
    period: Union[int, str]
    year: int
    value: float


class DerivedStat(NamedTuple):
    latest: float
    percent_change: float


def month_number(value: Any) -> Optional[int]:
    """Return 1..12 for ``3``, ``"3"``, ``"Mar"`` or ``"March"``; ``None`` otherwise."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        number = int(value)
        return number if number == value and 1 <= number <= 12 else None

    text = str(value).strip().lower()
    if not text:
        return None
    if text.isascii() and text.isdigit():
        number = int(text)
        return number if 1 <= number <= 12 else None
    for idx, name in enumerate(MONTH_NAMES, start=1):
        if len(text) >= 3 and name.startswith(text):
            return idx
    return None


def _point_value(point: Any) -> float:
    if isinstance(point, TimeSeriesPoint):
        return float(point.value)
    if isinstance(point, Mapping):
        return float(point.get("value") or 0)
    return float(point)


def latest_and_change(series: Sequence[Any], *, mode: str = RELATIVE) -> DerivedStat:
    """Return the last value and its change against the one before it.

    ``series`` must already be ordered oldest to newest. In ``RELATIVE`` mode
    the change is ``(last - prev) / prev * 100`` and a zero ``prev`` yields
    ``0``; in ``POINTS`` mode it is ``last - prev``.
    """

    if mode not in (RELATIVE, POINTS):
        raise ValueError(f"Unsupported mode {mode!r}; expected {RELATIVE!r} or {POINTS!r}")

    if not series:
        return DerivedStat(0, 0)

    latest = _point_value(series[-1])
    if len(series) < 2:
        return DerivedStat(latest, 0)

    previous = _point_value(series[-2])
    if mode == POINTS:
        change = latest - previous
    elif previous == 0:
        change = 0
    else:
        change = (latest - previous) / previous * 100

    if not math.isfinite(change):
        change = 0
    return DerivedStat(latest, change)


def format_change(stat: DerivedStat, mode: str = RELATIVE) -> str:
    """``+12.5%`` for relative changes, ``-2.0 pts`` for percentage points."""

    sign = "+" if stat.percent_change >= 0 else "-"
    magnitude = abs(stat.percent_change)
    if mode == POINTS:
        return f"{sign}{magnitude:.1f} pts"
    return f"{sign}{magnitude:.1f}%"


def _card(title: str, stat: DerivedStat, mode: str) -> Dict[str, Any]:
    return {
        "title": title,
        "latest": stat.latest,
        "percent_change": round(stat.percent_change, 2),
        "change": format_change(stat, mode),
        "positive": stat.percent_change >= 0,
    }


def _daily_counts(flight_dates: Iterable[date]) -> List[int]:
    counts: Dict[date, int] = {}
    for day in flight_dates:
        counts[day] = counts.get(day, 0) + 1
    return [counts[day] for day in sorted(counts)]


def dashboard_summary(
    visitor_rows: Sequence[Mapping[str, Any]],
    occupancy_rows: Sequence[Mapping[str, Any]],
    spending_rows: Sequence[Mapping[str, Any]],
    flight_dates: Iterable[date],
) -> List[Dict[str, Any]]:
    """Build the four stat cards from rows already ordered by (year, month)."""

    visitors = [
        (row.get("domestic_visitors") or 0) + (row.get("international_visitors") or 0)
        for row in visitor_rows
    ]
    occupancy = [row.get("rate") or 0 for row in occupancy_rows]
    spending = [row.get("amount") or 0 for row in spending_rows]
    arrivals = _daily_counts(flight_dates)

    return [
        _card("Monthly Visitors", latest_and_change(visitors), RELATIVE),
        _card("Occupancy Rate", latest_and_change(occupancy, mode=POINTS), POINTS),
        _card("Average Spend", latest_and_change(spending), RELATIVE),
        _card("Flight Arrivals", latest_and_change(arrivals), RELATIVE),
    ]


__all__ = [
    "DerivedStat",
    "POINTS",
    "RELATIVE",
    "TimeSeriesPoint",
    "dashboard_summary",
    "format_change",
    "latest_and_change",
    "month_number",
]
