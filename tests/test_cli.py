"""End-to-end tests for the hg command line."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from habitgrid import cli
from habitgrid.csvcodec import HEADER
from habitgrid.storage import HabitRepository


@pytest.fixture()
def data(tmp_path: Path) -> Path:
    return tmp_path / "data.json"


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logging.getLogger("habitgrid").handlers.clear()


def run(data: Path, *argv: str) -> None:
    cli.main(["--data", str(data), *argv])


# ---- habits ----


def test_habit_add_and_list(data, capsys):
    run(data, "habit", "add", "Run")
    run(data, "habit", "list")
    out = capsys.readouterr().out
    assert "Added habit: Run" in out
    assert "- Run: today 0, total 0" in out


def test_habit_add_duplicate_fails(data):
    run(data, "habit", "add", "Run")
    with pytest.raises(SystemExit):
        run(data, "habit", "add", "run")
    assert len(HabitRepository(data).load()) == 1


def test_habit_delete(data):
    run(data, "habit", "add", "Run")
    run(data, "habit", "delete", "RUN")
    assert HabitRepository(data).load() == []


# ---- track ----


def test_track_accumulates_same_day(data):
    run(data, "habit", "add", "Run")
    run(data, "track", "Run", "--date", "2024-01-01")
    run(data, "track", "run", "--date", "2024-01-01", "--count", "2")
    run(data, "track", "Run", "--date", "2024-01-02")
    (h,) = HabitRepository(data).load()
    assert [(e.day, e.count) for e in h.entries] == [("2024-01-01", 3), ("2024-01-02", 1)]


def test_track_today(data, capsys):
    run(data, "habit", "add", "Run")
    run(data, "track", "Run")
    run(data, "track", "Run")
    (h,) = HabitRepository(data).load()
    assert len(h.entries) == 1
    assert h.entries[0].count == 2


def test_track_unknown_habit(data):
    with pytest.raises(SystemExit):
        run(data, "track", "Nope")


def test_track_bad_date(data):
    run(data, "habit", "add", "Run")
    with pytest.raises(SystemExit):
        run(data, "track", "Run", "--date", "yesterday")


# ---- reminders ----


def test_reminder_add_toggle_delete(data, capsys):
    run(data, "habit", "add", "Run")
    run(data, "reminder", "add", "Run", "--time", "07:15", "--days", "friday,monday")
    (h,) = HabitRepository(data).load()
    r = h.reminders[0]
    assert r.days == ("monday", "friday")
    assert r.enabled

    run(data, "reminder", "toggle", "Run", r.id)
    assert HabitRepository(data).load()[0].reminders[0].enabled is False

    run(data, "reminder", "list", "Run")
    assert "07:15" in capsys.readouterr().out

    run(data, "reminder", "delete", "Run", r.id)
    assert HabitRepository(data).load()[0].reminders == ()


def test_reminder_requires_days(data):
    run(data, "habit", "add", "Run")
    with pytest.raises(SystemExit):
        run(data, "reminder", "add", "Run", "--days", "")


def test_reminder_toggle_unknown_id(data):
    run(data, "habit", "add", "Run")
    with pytest.raises(SystemExit):
        run(data, "reminder", "toggle", "Run", "123")


# ---- export / import ----


def test_export_then_import_roundtrip(data, tmp_path, capsys):
    run(data, "habit", "add", "Run")
    run(data, "habit", "add", "Read")
    run(data, "track", "Run", "--date", "2024-01-01")
    run(data, "reminder", "add", "Read", "--days", "sunday")
    before = HabitRepository(data).load()

    out = tmp_path / "export.csv"
    run(data, "export", "--csv", str(out))
    assert out.read_text(encoding="utf-8").startswith(HEADER + "\n")

    other = tmp_path / "other.json"
    run(other, "import", str(out))
    assert HabitRepository(other).load() == before


def test_export_default_filename(data, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    run(data, "habit", "add", "Run")
    run(data, "export")
    (f,) = tmp_path.glob("habits_export_*.csv")
    assert len(f.stem) == len("habits_export_2024-01-01")


def test_import_empty_keeps_existing(data, tmp_path):
    run(data, "habit", "add", "Run")
    csv_file = tmp_path / "empty.csv"
    csv_file.write_text(HEADER + "\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        run(data, "import", str(csv_file))
    assert [h.name for h in HabitRepository(data).load()] == ["Run"]


def test_import_blank_rows_only_keeps_existing(data, tmp_path):
    run(data, "habit", "add", "Run")
    csv_file = tmp_path / "blank.csv"
    csv_file.write_text(HEADER + "\n\n\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        run(data, "import", str(csv_file))
    assert [h.name for h in HabitRepository(data).load()] == ["Run"]


def test_import_missing_file_keeps_existing(data, tmp_path):
    run(data, "habit", "add", "Run")
    with pytest.raises(SystemExit):
        run(data, "import", str(tmp_path / "missing.csv"))
    assert len(HabitRepository(data).load()) == 1


def test_import_strict_refuses_malformed(data, tmp_path, capsys):
    run(data, "habit", "add", "Run")
    csv_file = tmp_path / "bad.csv"
    csv_file.write_text(HEADER + "\nentry,9,Walk,c,2024-01-01,lots,,,,\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        run(data, "import", "--strict", str(csv_file))
    assert "line 2" in capsys.readouterr().err
    assert [h.name for h in HabitRepository(data).load()] == ["Run"]


def test_import_lenient_accepts_malformed(data, tmp_path):
    csv_file = tmp_path / "bad.csv"
    csv_file.write_text(HEADER + "\nentry,9,Walk,c,2024-01-01,lots,,,,\n", encoding="utf-8")
    run(data, "import", str(csv_file))
    (h,) = HabitRepository(data).load()
    assert h.entries[0].count == 0


# ---- graph / misc ----


def test_graph(data, capsys):
    run(data, "habit", "add", "Run")
    run(data, "track", "Run", "--date", "2024-06-30", "--count", "4")
    run(data, "graph", "--date", "2024-06-30")
    out = capsys.readouterr().out
    assert "=== Activity 2023-07-02 … 2024-06-30 ===" in out
    assert "- total actions: 4" in out
    assert "- active days: 1/365" in out
    assert "busiest day: 2024-06-30 = 4 (Run)" in out


def test_init_and_where(data, capsys):
    run(data, "init")
    run(data, "where")
    out = capsys.readouterr().out
    assert str(data.resolve()) in out
    assert "because you passed --data" in out
    assert data.exists()


def test_doctor(data, capsys):
    run(data, "init")
    run(data, "doctor")
    assert "JSON readable: OK (0 habits)" in capsys.readouterr().out
