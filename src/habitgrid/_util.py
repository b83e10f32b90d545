"""Shared low-level time helpers used by cli.py."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable


def _today() -> date:
    # calendar days are UTC, matching the date part of stored timestamps
    return datetime.now(timezone.utc).date()


def _now_utc_iso() -> str:
    # same shape as JavaScript's Date.toISOString(): 2024-01-01T08:30:00.000Z
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _new_id(taken: Iterable[str] = ()) -> str:
    # milliseconds since epoch, like Date.now(); bumped past ids already in use
    taken = set(taken)
    n = int(datetime.now(timezone.utc).timestamp() * 1000)
    while str(n) in taken:
        n += 1
    return str(n)


def _parse_day(value: str | None) -> date:
    """YYYY-MM-DD -> date; None -> today (UTC). SystemExit on bad input."""
    if not value:
        return _today()
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise SystemExit(f"Could not parse date {value!r}. Use YYYY-MM-DD, e.g. 2026-02-25.") from e


def _ts_for_day(day: date) -> str:
    """Timestamp to store for an action logged on `day`."""
    if day == _today():
        return _now_utc_iso()
    return f"{day.isoformat()}T12:00:00.000Z"
