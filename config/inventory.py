from __future__ import annotations

"""Locate the inventory database and read project-level settings."""

import json
import os
from pathlib import Path
from typing import Any

__all__ = [
    "DB_FILENAME",
    "DB_PATH_ENV",
    "PROJECT_ROOT",
    "SETTINGS_FILE_NAME",
    "get_db_path",
    "load_settings",
]

DB_FILENAME = "inventory.sqlite"
DB_PATH_ENV = "STOCKROOM_DB_PATH"
SETTINGS_FILE_NAME = "inventory.json"

# Repository root used for the project-level settings file.
PROJECT_ROOT = Path(__file__).resolve().parent.parent


def load_settings(project_root: Path | None = None) -> dict[str, Any]:
    """Return the parsed ``inventory.json`` mapping, or ``{}`` if unusable."""

    root = project_root or PROJECT_ROOT
    data = _read_json(root / SETTINGS_FILE_NAME)
    return data if data is not None else {}


def get_db_path(project_root: Path | None = None) -> Path:
    """Return the SQLite path, creating its parent directory.

    Resolution order: the ``STOCKROOM_DB_PATH`` environment variable, the
    ``db_path`` key of ``inventory.json``, then ``~/.stockroom/inventory.sqlite``.
    """

    override = os.environ.get(DB_PATH_ENV, "").strip()
    if override:
        path = Path(override).expanduser()
    else:
        configured = str(load_settings(project_root).get("db_path") or "").strip()
        if configured:
            path = Path(configured).expanduser()
            if not path.is_absolute():
                path = (project_root or PROJECT_ROOT) / path
        else:
            path = Path.home() / ".stockroom" / DB_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _read_json(path: Path) -> dict[str, Any] | None:
    """Safely read ``path`` as JSON, returning ``None`` on failure."""

    if not path.exists():
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return None
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    if isinstance(data, dict):
        return data
    return None
