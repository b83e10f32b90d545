"""
Flat CSV interchange format for habits.

One table holds three record kinds, told apart by the `type` column:

    type,id,name,createdAt,entryDate,count,reminderId,reminderTime,reminderDays,reminderEnabled

- habit:    a habit with no entries and no reminders (placeholder, count=0)
- entry:    one HabitEntry of the habit
- reminder: one HabitReminder; days are joined with "|"

Values are written verbatim. There is no quoting, so a value containing
",", "|" or a line break does not survive a round trip.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Iterable, Union

from .models import WEEKDAYS, Habit, HabitEntry, HabitReminder, is_valid_time

logger = logging.getLogger(__name__)

FIELDS = [
    "type",
    "id",
    "name",
    "createdAt",
    "entryDate",
    "count",
    "reminderId",
    "reminderTime",
    "reminderDays",
    "reminderEnabled",
]
HEADER = ",".join(FIELDS)

DAY_SEP = "|"
_UNSAFE = (",", DAY_SEP, "\n", "\r")
_LEADING_INT = re.compile(r"\s*\+?(\d+)")


# -------------------------
# Errors
# -------------------------

class DecodeError(Exception):
    """An import could not produce a habit list."""


class EmptyInput(DecodeError):
    def __init__(self, message: str = "CSV file is empty or has only headers") -> None:
        super().__init__(message)


class UnreadableSource(DecodeError):
    pass


@dataclass(frozen=True)
class MalformedRow:
    line: int
    reason: str

    def __str__(self) -> str:
        return f"line {self.line}: {self.reason}"


@dataclass
class DecodeReport:
    habits: list[Habit]
    problems: list[MalformedRow] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.problems


# -------------------------
# Encode
# -------------------------

def _row(*values: str) -> str:
    return ",".join(values)


def _warn_unsafe(habit: Habit) -> None:
    values = {"id": habit.id, "name": habit.name, "createdAt": habit.created_at}
    for i, e in enumerate(habit.entries):
        values[f"entries[{i}].date"] = e.date
    for i, r in enumerate(habit.reminders):
        values[f"reminders[{i}].id"] = r.id
        values[f"reminders[{i}].time"] = r.time
        for j, d in enumerate(r.days):
            values[f"reminders[{i}].days[{j}]"] = d
    for name, value in values.items():
        if any(ch in value for ch in _UNSAFE):
            logger.warning("habit %r: %s contains a separator and will not round-trip: %r", habit.id, name, value)


def encode(habits: Iterable[Habit]) -> str:
    lines = [HEADER]
    for h in habits:
        _warn_unsafe(h)
        head = (h.id, h.name, h.created_at)

        if not h.entries and not h.reminders:
            lines.append(_row("habit", *head, "", "0", "", "", "", ""))
            continue

        for e in h.entries:
            lines.append(_row("entry", *head, e.date, str(e.count), "", "", "", ""))
        for r in h.reminders:
            lines.append(
                _row(
                    "reminder",
                    *head,
                    "",
                    "",
                    r.id,
                    r.time,
                    DAY_SEP.join(r.days),
                    "true" if r.enabled else "false",
                )
            )
    return "\n".join(lines)


# -------------------------
# Row parsing
# -------------------------

@dataclass(frozen=True)
class HabitRow:
    line: int
    id: str
    name: str
    created_at: str


@dataclass(frozen=True)
class EntryRow(HabitRow):
    entry_date: str = ""
    count: str = ""


@dataclass(frozen=True)
class ReminderRow(HabitRow):
    reminder_id: str = ""
    reminder_time: str = ""
    reminder_days: str = ""
    reminder_enabled: str = ""


@dataclass(frozen=True)
class UnknownRow(HabitRow):
    type: str = ""


Row = Union[HabitRow, EntryRow, ReminderRow, UnknownRow]


def parse_count(raw: str) -> int | None:
    """Leading decimal digits of `raw` as an int, or None if there are none."""
    m = _LEADING_INT.match(raw)
    return int(m.group(1)) if m else None


def parse_days(raw: str) -> tuple[str, ...]:
    if not raw.strip():
        return ()
    return tuple(raw.split(DAY_SEP))


def parse_row(line_no: int, line: str) -> tuple[Row, list[MalformedRow]]:
    """Split one data line into its row variant plus any problems found."""
    problems: list[MalformedRow] = []
    parts = line.split(",")
    if len(parts) != len(FIELDS):
        problems.append(MalformedRow(line_no, f"expected {len(FIELDS)} fields, got {len(parts)}"))
        parts = (parts + [""] * len(FIELDS))[: len(FIELDS)]

    kind, hid, name, created, entry_date, count, rid, rtime, rdays, renabled = parts
    if not hid:
        problems.append(MalformedRow(line_no, "missing habit id"))

    if kind == "habit":
        return HabitRow(line_no, hid, name, created), problems

    if kind == "entry":
        if entry_date and parse_count(count) is None:
            problems.append(MalformedRow(line_no, f"count is not a number: {count!r}"))
        return EntryRow(line_no, hid, name, created, entry_date, count), problems

    if kind == "reminder":
        if rid:
            if not is_valid_time(rtime):
                problems.append(MalformedRow(line_no, f"reminder time is not HH:MM: {rtime!r}"))
            bad_days = [d for d in parse_days(rdays) if d not in WEEKDAYS]
            if bad_days:
                problems.append(MalformedRow(line_no, f"unknown weekday(s): {', '.join(bad_days)}"))
            if renabled not in ("true", "false"):
                problems.append(MalformedRow(line_no, f"reminderEnabled must be true/false: {renabled!r}"))
        return ReminderRow(line_no, hid, name, created, rid, rtime, rdays, renabled), problems

    problems.append(MalformedRow(line_no, f"unknown row type {kind!r}"))
    return UnknownRow(line_no, hid, name, created, kind), problems


# -------------------------
# Decode
# -------------------------

def _fold(habits: dict[str, Habit], row: Row) -> None:
    h = habits.get(row.id)
    if h is None:
        h = Habit(id=row.id, name=row.name, created_at=row.created_at)
        habits[row.id] = h

    if isinstance(row, EntryRow):
        if row.entry_date:
            entry = HabitEntry(date=row.entry_date, count=parse_count(row.count) or 0)
            habits[row.id] = replace(h, entries=(*h.entries, entry))
    elif isinstance(row, ReminderRow):
        if row.reminder_id:
            reminder = HabitReminder(
                id=row.reminder_id,
                time=row.reminder_time,
                days=parse_days(row.reminder_days),
                enabled=row.reminder_enabled == "true",
            )
            habits[row.id] = replace(h, reminders=(*h.reminders, reminder))
    # HabitRow / UnknownRow: shell only


def decode_report(text: str) -> DecodeReport:
    """
    Decode CSV text and report every malformed row by line number.
    Malformed rows are still folded in leniently. Raises EmptyInput when
    no non-blank line follows the header.
    """
    # only "\n" separates rows, matching encode(); "\r" left by CRLF files is dropped
    lines = [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]
    data = [(n, line) for n, line in enumerate(lines[1:], start=2) if line.strip()]
    if not data:
        raise EmptyInput()

    habits: dict[str, Habit] = {}
    problems: list[MalformedRow] = []

    for line_no, line in data:
        row, row_problems = parse_row(line_no, line)
        for p in row_problems:
            logger.debug("malformed row: %s", p)
        problems.extend(row_problems)
        _fold(habits, row)

    logger.debug("decoded %d habits (%d problems)", len(habits), len(problems))
    return DecodeReport(habits=list(habits.values()), problems=problems)


def decode(text: str) -> list[Habit]:
    return decode_report(text).habits


# -------------------------
# File helpers
# -------------------------

def export_filename(today: date) -> str:
    return f"habits_export_{today.isoformat()}.csv"


def write_export(out_path: Path, habits: Iterable[Habit]) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", newline="", encoding="utf-8") as f:
        f.write(encode(habits))
    return out_path


def read_import(path: Path) -> str:
    """Read an import file; any read failure becomes UnreadableSource."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise UnreadableSource(f"Error reading file {str(path)!r}: {e}") from e
