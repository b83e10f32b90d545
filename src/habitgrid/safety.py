from __future__ import annotations

import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def find_git_root(start: Path) -> Path | None:
    for cur in (start, *start.parents):
        if (cur / ".git").exists():
            return cur
    return None


def assert_safe_data_path(data_path: Path, allow_repo_data_path: bool) -> None:
    # habit history is personal; keep it out of git work trees
    git_root = find_git_root(data_path.parent)
    if git_root is None:
        return
    if allow_repo_data_path:
        logger.warning("data file %s is inside git repo %s (override active)", data_path, git_root)
        return
    print("🚫 Refusing to keep habit data inside a git repo.", file=sys.stderr)
    print(f"   data_path: {data_path}", file=sys.stderr)
    print(f"   repo_root: {git_root}", file=sys.stderr)
    print("   Fix: use ~/.config/habitgrid/*.json or pass --allow-repo-data-path", file=sys.stderr)
    raise SystemExit(2)
