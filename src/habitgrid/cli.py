from __future__ import annotations

import argparse
import logging
import os
import stat
import sys
from pathlib import Path

from . import models
from ._util import _new_id, _now_utc_iso, _parse_day, _today, _ts_for_day
from .activity import aggregate, render
from .csvcodec import DecodeError, decode_report, export_filename, read_import, write_export
from .models import Habit
from .paths import data_path_reason, resolve_data_path
from .safety import assert_safe_data_path
from .storage import HabitRepository, load_json

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(verbose: bool) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("habitgrid")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


# -------------------------
# Helpers
# -------------------------

def _repo(args: argparse.Namespace) -> HabitRepository:
    return HabitRepository(args.data_path)


def _require_habit(habits: list[Habit], name: str) -> Habit:
    h = models.find_habit(habits, name)
    if h is None:
        raise SystemExit(f"No habit named {name!r}. See `hg habit list`.")
    return h


def _parse_days(raw: str) -> list[str]:
    return [d for d in raw.replace(",", " ").split() if d]


def _print_reminder(r: models.HabitReminder) -> None:
    state = "🔔 on " if r.enabled else "🔕 off"
    days = ", ".join(d[:3].title() for d in r.days) or "(no days)"
    print(f"- [{r.id}] {state} {r.time} — {days}")


# -------------------------
# HABIT commands
# -------------------------

def cmd_habit_add(args: argparse.Namespace) -> None:
    repo = _repo(args)
    habits = repo.load()
    habit = Habit(id=_new_id(h.id for h in habits), name=args.name.strip(), created_at=_now_utc_iso())
    try:
        habits = models.add_habit(habits, habit)
    except ValueError as e:
        raise SystemExit(f"Error: {e}")
    repo.save(habits)
    print(f"✅ Added habit: {habit.name}")


def cmd_habit_list(args: argparse.Namespace) -> None:
    habits = _repo(args).load()
    if not habits:
        print("No habits yet. Add one with `hg habit add NAME`.")
        return

    today = _today().isoformat()
    print("=== Habits ===")
    for h in habits:
        todays = h.entry_for(today)
        line = f"- {h.name}: today {todays.count if todays else 0}, total {h.total}"
        if h.reminders:
            line += f", reminders {sum(1 for r in h.reminders if r.enabled)}/{len(h.reminders)}"
        print(line)


def cmd_habit_delete(args: argparse.Namespace) -> None:
    repo = _repo(args)
    habits = repo.load()
    h = _require_habit(habits, args.name)
    repo.save(models.remove_habit(habits, h.id))
    print(f"🗑️ Deleted habit: {h.name}")


def cmd_track(args: argparse.Namespace) -> None:
    if args.count < 1:
        raise SystemExit("--count must be at least 1")

    repo = _repo(args)
    habits = repo.load()
    h = _require_habit(habits, args.name)

    day = _parse_day(args.date)
    updated = models.track(h, _ts_for_day(day), args.count)
    repo.save(models.replace_habit(habits, updated))

    entry = updated.entry_for(day.isoformat())
    print(f"📈 {updated.name}: {entry.count if entry else 0} on {day.isoformat()}")


# -------------------------
# REMINDER commands
# -------------------------

def cmd_reminder_add(args: argparse.Namespace) -> None:
    repo = _repo(args)
    habits = repo.load()
    h = _require_habit(habits, args.name)
    try:
        reminder = models.new_reminder(_new_id(r.id for r in h.reminders), args.time, _parse_days(args.days))
    except ValueError as e:
        raise SystemExit(f"Error: {e}")
    repo.save(models.replace_habit(habits, models.add_reminder(h, reminder)))
    print(f"⏰ Reminder added for {h.name}:")
    _print_reminder(reminder)


def cmd_reminder_list(args: argparse.Namespace) -> None:
    h = _require_habit(_repo(args).load(), args.name)
    if not h.reminders:
        print(f"No reminders for {h.name}.")
        return
    print(f"=== Reminders: {h.name} ===")
    for r in h.reminders:
        _print_reminder(r)


def _update_reminder(args: argparse.Namespace, op) -> Habit:
    repo = _repo(args)
    habits = repo.load()
    h = _require_habit(habits, args.name)
    try:
        updated = op(h, args.reminder_id)
    except KeyError:
        raise SystemExit(f"No reminder {args.reminder_id!r} on {h.name}.")
    repo.save(models.replace_habit(habits, updated))
    return updated


def cmd_reminder_toggle(args: argparse.Namespace) -> None:
    updated = _update_reminder(args, models.toggle_reminder)
    for r in updated.reminders:
        if r.id == args.reminder_id:
            _print_reminder(r)


def cmd_reminder_delete(args: argparse.Namespace) -> None:
    updated = _update_reminder(args, models.remove_reminder)
    print(f"🗑️ Reminder {args.reminder_id} removed from {updated.name}.")


# -------------------------
# CSV commands
# -------------------------

def cmd_export(args: argparse.Namespace) -> None:
    habits = _repo(args).load()
    if args.csv:
        out_path = Path(args.csv).expanduser().resolve()
    else:
        out_path = Path.cwd() / export_filename(_today())
    write_export(out_path, habits)
    print(f"📄 Exported {len(habits)} habits → {out_path}")


def cmd_import(args: argparse.Namespace) -> None:
    path = Path(args.path).expanduser()
    try:
        report = decode_report(read_import(path))
    except DecodeError as e:
        raise SystemExit(f"Failed to import habits from CSV: {e}")

    if report.problems:
        print(f"⚠️ {len(report.problems)} malformed row(s):", file=sys.stderr)
        for p in report.problems:
            print(f"   {p}", file=sys.stderr)
        if args.strict:
            raise SystemExit("Import aborted (--strict); data file left unchanged.")

    _repo(args).save(report.habits)
    print(f"📥 Imported {len(report.habits)} habits from {path}")


# -------------------------
# GRAPH
# -------------------------

def cmd_graph(args: argparse.Namespace) -> None:
    habits = _repo(args).load()
    reference = _parse_day(args.date)
    result = aggregate(habits, reference)

    first, last = result.days[0].date, result.days[-1].date
    print(f"=== Activity {first} … {last} ===")
    print(render(result))
    print(f"\n- total actions: {result.total}")
    print(f"- active days: {result.active_days}/{len(result.days)}")

    busiest = max(result.days, key=lambda d: d.count)
    if busiest.count:
        print(f"- busiest day: {busiest.date} = {busiest.count} ({', '.join(busiest.habit_names)})")


# -------------------------
# Core commands
# -------------------------

def cmd_init(args: argparse.Namespace) -> None:
    repo = _repo(args)
    repo.save(repo.load())
    print(f"✅ Initialized data file: {args.data_path}")


def cmd_where(args: argparse.Namespace) -> None:
    print(args.data_path)
    print(f"↳ using {data_path_reason(args.data_arg, args.profile)}")


def cmd_doctor(args: argparse.Namespace) -> None:
    print("=== habitgrid doctor ===")
    print("✅ Data path safety guard: OK")

    data = load_json(args.data_path)
    print(f"✅ JSON readable: OK ({len(data.get('habits', []))} habits)")

    try:
        perms = stat.S_IMODE(os.stat(args.data_path).st_mode)
        print(f"🔐 File permissions: {oct(perms)} (target 0o600)")
    except FileNotFoundError:
        print("⚠️ Data file missing (run `hg init`)")
    print("=== Done ===")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="hg", description="habitgrid: daily habit counter + activity grid")
    p.add_argument("--data", default=None, help="Path to data JSON (overrides env/default)")
    p.add_argument("--profile", default=None, help="Profile name (e.g. dev/test)")
    p.add_argument("--allow-repo-data-path", action="store_true", help="Override safety guard (not recommended)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")

    sub = p.add_subparsers(dest="cmd", required=True)
    sub.add_parser("init", help="Initialize data store safely").set_defaults(func=cmd_init)
    sub.add_parser("where", help="Show which data file is active and why").set_defaults(func=cmd_where)
    sub.add_parser("doctor", help="Run safety + health checks").set_defaults(func=cmd_doctor)

    # ---- habit ----
    habit = sub.add_parser("habit", help="Create, list and delete habits")
    habit_sub = habit.add_subparsers(dest="habit_cmd", required=True)

    habit_add = habit_sub.add_parser("add", help="Add a habit (names are unique, case-insensitive)")
    habit_add.add_argument("name")
    habit_add.set_defaults(func=cmd_habit_add)

    habit_sub.add_parser("list", help="List habits with today's count").set_defaults(func=cmd_habit_list)

    habit_delete = habit_sub.add_parser("delete", help="Delete a habit and its history")
    habit_delete.add_argument("name")
    habit_delete.set_defaults(func=cmd_habit_delete)

    # ---- track ----
    track = sub.add_parser("track", help="Count one more action for a habit today (or --date)")
    track.add_argument("name")
    track.add_argument("--date", default=None, help="Calendar day YYYY-MM-DD (default today)")
    track.add_argument("--count", type=int, default=1, help="How many actions to add (default 1)")
    track.set_defaults(func=cmd_track)

    # ---- reminder ----
    reminder = sub.add_parser("reminder", help="Weekly reminders for a habit")
    reminder_sub = reminder.add_subparsers(dest="reminder_cmd", required=True)

    reminder_add = reminder_sub.add_parser("add", help="Add a reminder")
    reminder_add.add_argument("name")
    reminder_add.add_argument("--time", default="08:00", help="HH:MM (default 08:00)")
    reminder_add.add_argument("--days", default="monday,wednesday,friday",
                              help="Comma or space-separated weekdays (default monday,wednesday,friday)")
    reminder_add.set_defaults(func=cmd_reminder_add)

    reminder_list = reminder_sub.add_parser("list", help="List a habit's reminders")
    reminder_list.add_argument("name")
    reminder_list.set_defaults(func=cmd_reminder_list)

    reminder_toggle = reminder_sub.add_parser("toggle", help="Enable/disable a reminder")
    reminder_toggle.add_argument("name")
    reminder_toggle.add_argument("reminder_id")
    reminder_toggle.set_defaults(func=cmd_reminder_toggle)

    reminder_delete = reminder_sub.add_parser("delete", help="Delete a reminder")
    reminder_delete.add_argument("name")
    reminder_delete.add_argument("reminder_id")
    reminder_delete.set_defaults(func=cmd_reminder_delete)

    # ---- csv ----
    export = sub.add_parser("export", help="Export all habits to CSV")
    export.add_argument("--csv", default=None, help="Output path (default ./habits_export_<today>.csv)")
    export.set_defaults(func=cmd_export)

    imp = sub.add_parser("import", help="Replace all habits with the contents of a CSV export")
    imp.add_argument("path")
    imp.add_argument("--strict", action="store_true", help="Refuse the import if any row is malformed")
    imp.set_defaults(func=cmd_import)

    # ---- graph ----
    graph = sub.add_parser("graph", help="Activity heat map for the last 365 days")
    graph.add_argument("--date", default=None, help="Last day of the window YYYY-MM-DD (default today)")
    graph.set_defaults(func=cmd_graph)

    return p


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    args.data_arg = args.data
    args.data_path = resolve_data_path(args.data, args.profile)
    assert_safe_data_path(args.data_path, args.allow_repo_data_path)

    args.func(args)


if __name__ == "__main__":
    main()
