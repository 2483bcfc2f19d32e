"""Configuration file management for streak-guard.

Reads and writes ~/.streak-guard/config.json for settings that don't belong in
the DB (Pro entitlement, shield cap).
"""
from __future__ import annotations

import json
from pathlib import Path

from streak_guard.protection import DEFAULT_MAX_SHIELDS

DEFAULT_CONFIG_PATH: Path = Path.home() / ".streak-guard" / "config.json"


def load_config(config_path: Path | None = None) -> dict:
    """Load config from JSON file. Returns {} if file missing or invalid."""
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict, config_path: Path | None = None) -> None:
    """Write config dict to JSON file. Creates parent dirs if needed."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def get_is_pro(config_path: Path | None = None) -> bool:
    """Return whether the Pro entitlement is switched on (default off)."""
    return load_config(config_path).get("is_pro") is True


def get_max_shields(config_path: Path | None = None) -> int:
    """Return the shield cap, falling back to the default for bad values."""
    raw = load_config(config_path).get("max_shields")
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
        return DEFAULT_MAX_SHIELDS
    return raw


def set_pro(enabled: bool, config_path: Path | None = None) -> None:
    """Persist the Pro entitlement flag."""
    config = load_config(config_path)
    config["is_pro"] = bool(enabled)
    save_config(config, config_path)


def set_max_shields(max_shields: int, config_path: Path | None = None) -> None:
    """Persist the shield cap."""
    if max_shields < 0:
        raise ValueError(f"max_shields must be >= 0, got {max_shields}")
    config = load_config(config_path)
    config["max_shields"] = max_shields
    save_config(config, config_path)
