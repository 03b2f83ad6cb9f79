"""Storage helpers for settings and application state."""

from __future__ import annotations

import json
import os
from pathlib import Path


def default_config_dir() -> Path:
    base = os.getenv("XDG_CONFIG_HOME")
    return (Path(base) if base else Path.home() / ".config") / "anygpt"


def default_state_dir() -> Path:
    base = os.getenv("XDG_STATE_HOME")
    return (Path(base) if base else Path.home() / ".local" / "state") / "anygpt"


def read_json(path: Path) -> dict | None:
    """Return the JSON object stored at ``path``, or None if absent or unreadable."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    return data


def write_json(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)
    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    tmp_path.write_text(f"{data}\n", encoding="utf-8")
    tmp_path.replace(path)
