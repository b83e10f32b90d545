"""Habit, entry and reminder values plus the pure helpers that update them."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

_HHMM = re.compile(r"([01]\d|2[0-3]):[0-5]\d")


def day_of(ts: str) -> str:
    """Calendar-day key (YYYY-MM-DD) of an ISO date-time string."""
    return ts[:10]


def is_valid_time(value: str) -> bool:
    return bool(_HHMM.fullmatch(value))


@dataclass(frozen=True)
class HabitEntry:
    date: str
    count: int = 0

    @property
    def day(self) -> str:
        return day_of(self.date)


@dataclass(frozen=True)
class HabitReminder:
    id: str
    time: str
    days: tuple[str, ...] = ()
    enabled: bool = True


@dataclass(frozen=True)
class Habit:
    id: str
    name: str
    created_at: str
    entries: tuple[HabitEntry, ...] = field(default_factory=tuple)
    reminders: tuple[HabitReminder, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return sum(e.count for e in self.entries)

    def entry_for(self, day: str) -> HabitEntry | None:
        for e in self.entries:
            if e.day == day:
                return e
        return None


# -------------------------
# Validation / factories
# -------------------------

def new_reminder(reminder_id: str, time: str, days: Iterable[str], enabled: bool = True) -> HabitReminder:
    """
    Build a reminder from user input.
    Raises ValueError on a bad HH:MM time, an unknown weekday, or no days at all.
    Days are lower-cased, de-duplicated and kept in Monday..Sunday order.
    """
    if not is_valid_time(time):
        raise ValueError(f"reminder time must be HH:MM (got {time!r})")

    wanted = {d.strip().lower() for d in days if d.strip()}
    unknown = sorted(wanted - set(WEEKDAYS))
    if unknown:
        raise ValueError(f"unknown weekday(s): {', '.join(unknown)}")
    if not wanted:
        raise ValueError("select at least one day of the week")

    ordered = tuple(d for d in WEEKDAYS if d in wanted)
    return HabitReminder(id=reminder_id, time=time, days=ordered, enabled=enabled)


def find_habit(habits: Iterable[Habit], name: str) -> Habit | None:
    key = name.strip().lower()
    for h in habits:
        if h.name.lower() == key:
            return h
    return None


def add_habit(habits: list[Habit], habit: Habit) -> list[Habit]:
    """Append a habit, rejecting blank names and case-insensitive duplicates."""
    if not habit.name.strip():
        raise ValueError("habit name cannot be empty")
    if find_habit(habits, habit.name) is not None:
        raise ValueError(f"a habit named {habit.name!r} already exists")
    return [*habits, habit]


def remove_habit(habits: list[Habit], habit_id: str) -> list[Habit]:
    return [h for h in habits if h.id != habit_id]


def replace_habit(habits: list[Habit], updated: Habit) -> list[Habit]:
    return [updated if h.id == updated.id else h for h in habits]


# -------------------------
# Pure updates
# -------------------------

def track(habit: Habit, ts: str, amount: int = 1) -> Habit:
    """
    Record `amount` actions at timestamp `ts`.
    Same calendar day accumulates into the existing entry; otherwise a new
    entry is appended.
    """
    if amount < 0:
        raise ValueError("amount must be non-negative")

    day = day_of(ts)
    if habit.entry_for(day) is None:
        return replace(habit, entries=(*habit.entries, HabitEntry(date=ts, count=amount)))

    entries = tuple(
        replace(e, count=e.count + amount) if e.day == day else e
        for e in habit.entries
    )
    return replace(habit, entries=entries)


def add_reminder(habit: Habit, reminder: HabitReminder) -> Habit:
    return replace(habit, reminders=(*habit.reminders, reminder))


def toggle_reminder(habit: Habit, reminder_id: str) -> Habit:
    if not any(r.id == reminder_id for r in habit.reminders):
        raise KeyError(reminder_id)
    reminders = tuple(
        replace(r, enabled=not r.enabled) if r.id == reminder_id else r
        for r in habit.reminders
    )
    return replace(habit, reminders=reminders)


def remove_reminder(habit: Habit, reminder_id: str) -> Habit:
    if not any(r.id == reminder_id for r in habit.reminders):
        raise KeyError(reminder_id)
    return replace(habit, reminders=tuple(r for r in habit.reminders if r.id != reminder_id))


# -------------------------
# JSON conversion
# -------------------------

def habit_to_dict(habit: Habit) -> dict[str, Any]:
    return {
        "id": habit.id,
        "name": habit.name,
        "createdAt": habit.created_at,
        "entries": [{"date": e.date, "count": e.count} for e in habit.entries],
        "reminders": [
            {"id": r.id, "time": r.time, "days": list(r.days), "enabled": r.enabled}
            for r in habit.reminders
        ],
    }


def habit_from_dict(raw: dict[str, Any]) -> Habit:
    # older saves have no "reminders" key
    entries = tuple(
        HabitEntry(date=str(e.get("date", "")), count=int(e.get("count", 0) or 0))
        for e in raw.get("entries", []) or []
    )
    reminders = tuple(
        HabitReminder(
            id=str(r.get("id", "")),
            time=str(r.get("time", "")),
            days=tuple(str(d) for d in r.get("days", []) or []),
            enabled=bool(r.get("enabled", True)),
        )
        for r in raw.get("reminders", []) or []
    )
    return Habit(
        id=str(raw.get("id", "")),
        name=str(raw.get("name", "")),
        created_at=str(raw.get("createdAt", "")),
        entries=entries,
        reminders=reminders,
    )
