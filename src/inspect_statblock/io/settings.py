"""Settings file I/O for inspect-statblock.

Manages a JSON settings file at XDG_CONFIG_HOME/inspect-statblock/settings.json.
The settings store (app.settings_store) is its only writer.

This module is a STABLE BOUNDARY, not hot-reloadable.
Import as: import inspect_statblock.io.settings
"""

import json
import os
import tempfile
from pathlib import Path


def get_config_path() -> Path:
    """Return path to settings file.

    Uses XDG_CONFIG_HOME (default ~/.config) / inspect-statblock / settings.json.
    """
    config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(config_home) / "inspect-statblock" / "settings.json"


def load_settings() -> dict:
    """Settings on disk; {} when the file is missing, unreadable or not an object."""
    path = get_config_path()
    # [LAW:dataflow-not-control-flow] Always attempt read; empty dict is the "no data" value.
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def save_settings(data: dict) -> None:
    """Write the whole settings dict: temp file in the same directory, then rename."""
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
            f.write("\n")
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def merge_settings(changes: dict) -> dict:
    """Merge changes over what is on disk and write the result back.

    Keys this version does not know about are carried through untouched.
    """
    merged = load_settings()
    merged.update(changes)
    save_settings(merged)
    return merged
