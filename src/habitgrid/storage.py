from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any

from .models import Habit, habit_from_dict, habit_to_dict

logger = logging.getLogger(__name__)


def _quarantine(path: Path, raw: str) -> Path:
    """Keep an unreadable habit file next to the original as <stem>.corrupt-<unix>.json."""
    backup = path.with_suffix(f".corrupt-{int(time.time())}.json")
    backup.write_text(raw, encoding="utf-8")
    return backup


def load_json(path: Path) -> dict[str, Any]:
    """
    The habit data document, e.g. {"habits": [...]} plus any other top-level
    keys. A first run (no file, or a blank one) starts from {}. Text that is
    not a JSON object never blocks tracking: it is quarantined and the
    document starts over empty.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    raw = path.read_text(encoding="utf-8").strip() if path.exists() else ""
    if not raw:
        save_json(path, {})
        return {}

    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as e:
        backup = _quarantine(path, raw)
        logger.warning("habit data %s is not valid JSON (%s); moved aside to %s", path, e, backup)
        save_json(path, {})
        return {}
    if not isinstance(doc, dict):
        logger.warning("habit data %s holds %s, not an object; ignoring it", path, type(doc).__name__)
        return {}
    return doc


def save_json(path: Path, doc: Any) -> None:
    """
    Replace the habit data document in one step so a crash mid-write leaves
    the previous history intact. The file is personal data: mode 0600 where
    the platform allows it.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    staging = path.with_name(path.name + ".tmp")

    with open(staging, "w", encoding="utf-8") as f:
        json.dump(doc, f, indent=2, sort_keys=True, ensure_ascii=False)
        f.write("\n")
        f.flush()
        os.fsync(f.fileno())
    os.replace(staging, path)

    try:
        os.chmod(path, 0o600)
    except OSError:
        pass
    logger.debug("saved habit data to %s", path)


class HabitRepository:
    """Keeps the current habit list in the JSON data file under "habits"."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> list[Habit]:
        data = load_json(self.path)
        return [habit_from_dict(h) for h in data.get("habits", []) if isinstance(h, dict)]

    def save(self, habits: list[Habit]) -> None:
        data = load_json(self.path)
        data["habits"] = [habit_to_dict(h) for h in habits]
        save_json(self.path, data)
