"""
Rolling-year activity grid.

aggregate() turns sparse per-day habit entries into exactly WINDOW_DAYS
day buckets ending at a reference date, chunks them into week rows of 7
(counted from the window start, not aligned to weekdays), and records
where each month starts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, NamedTuple

from .models import Habit

WINDOW_DAYS = 365
WEEK_LEN = 7
MAX_LEVEL = 9

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# one glyph per intensity level, 0..9
RAMP = " .:-=+*#%@"


@dataclass(frozen=True)
class DayBucket:
    date: str
    count: int = 0
    habit_names: tuple[str, ...] = ()


class MonthLabel(NamedTuple):
    label: str
    index: int


@dataclass(frozen=True)
class AggregationResult:
    days: list[DayBucket]
    weeks: list[list[DayBucket]]
    month_labels: list[MonthLabel]

    @property
    def total(self) -> int:
        return sum(d.count for d in self.days)

    @property
    def active_days(self) -> int:
        return sum(1 for d in self.days if d.count > 0)


def intensity(count: int) -> int:
    """Colour level for a day's count: 0..8 map to themselves, 9 and up to 9."""
    if count <= 0:
        return 0
    return min(count, MAX_LEVEL)


def group_by_day(habits: Iterable[Habit]) -> dict[str, tuple[int, list[str]]]:
    by_day: dict[str, tuple[int, list[str]]] = {}
    for h in habits:
        for e in h.entries:
            total, names = by_day.get(e.day, (0, []))
            if h.name not in names:
                names.append(h.name)
            by_day[e.day] = (total + e.count, names)
    return by_day


def window(reference_date: date, days: int = WINDOW_DAYS) -> list[date]:
    if isinstance(reference_date, datetime):
        reference_date = reference_date.date()
    start = reference_date - timedelta(days=days - 1)
    return [start + timedelta(days=i) for i in range(days)]


def partition_weeks(days: list[DayBucket], size: int = WEEK_LEN) -> list[list[DayBucket]]:
    weeks: list[list[DayBucket]] = []
    current: list[DayBucket] = []
    for d in days:
        current.append(d)
        if len(current) == size:
            weeks.append(current)
            current = []
    if current:
        weeks.append(current)
    return weeks


def month_labels(days: list[DayBucket]) -> list[MonthLabel]:
    labels: list[MonthLabel] = []
    prev = None
    for i, d in enumerate(days):
        month = d.date[5:7]
        if month != prev:
            labels.append(MonthLabel(MONTH_ABBR[int(month) - 1], i))
            prev = month
    return labels


def aggregate(habits: Iterable[Habit], reference_date: date) -> AggregationResult:
    by_day = group_by_day(habits)

    buckets: list[DayBucket] = []
    for d in window(reference_date):
        key = d.isoformat()
        total, names = by_day.get(key, (0, []))
        buckets.append(DayBucket(date=key, count=total, habit_names=tuple(names)))

    return AggregationResult(
        days=buckets,
        weeks=partition_weeks(buckets),
        month_labels=month_labels(buckets),
    )


# -------------------------
# Text rendering
# -------------------------

def render(result: AggregationResult) -> str:
    """
    Heat map with one column per week row and one text line per position
    inside the week. Month labels sit above the column where they start.
    """
    ncols = len(result.weeks)
    header = [" "] * (ncols + 3)
    for label, index in result.month_labels:
        col = index // WEEK_LEN
        # skip labels that would overwrite the previous one
        if all(ch == " " for ch in header[col:col + len(label)]):
            header[col:col + len(label)] = list(label)

    lines = ["".join(header).rstrip()]
    for pos in range(WEEK_LEN):
        row = []
        for week in result.weeks:
            row.append(RAMP[intensity(week[pos].count)] if pos < len(week) else " ")
        lines.append("".join(row).rstrip())
    return "\n".join(lines)
