"""Application service for runtime watcher settings.

Reads/writes the polling interval and active schema to a JSON file so they
persist across restarts without editing the environment.
"""

import json
import logging
from pathlib import Path
from typing import Any

from recordsync.config import get_settings

logger = logging.getLogger(__name__)

SETTINGS_FILE = Path("data/settings.json")

RUNTIME_KEYS = [
    "watcher_poll_interval_seconds",
    "db_schema",
]


def _read_overrides() -> dict[str, Any]:
    """Read the JSON overrides file, returning {} if missing or corrupt."""
    if not SETTINGS_FILE.exists():
        return {}
    try:
        return json.loads(SETTINGS_FILE.read_text("utf-8"))
    except Exception:
        logger.warning("Could not read %s — using defaults", SETTINGS_FILE)
        return {}


def _write_overrides(data: dict[str, Any]) -> None:
    """Persist overrides to the JSON file."""
    SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    SETTINGS_FILE.write_text(json.dumps(data, indent=2), encoding="utf-8")


def get_runtime_settings() -> dict[str, Any]:
    """Return the effective runtime settings (.env defaults merged with overrides)."""
    defaults = get_settings()
    overrides = _read_overrides()
    return {
        key: overrides.get(key, getattr(defaults, key))
        for key in RUNTIME_KEYS
    }


def update_runtime_settings(updates: dict[str, Any]) -> dict[str, Any]:
    """Persist runtime overrides and return the new effective values.

    Only keys in RUNTIME_KEYS are accepted; unknown keys are ignored.
    The Settings LRU cache is cleared afterwards so the next
    get_settings() call sees the new values.
    """
    overrides = _read_overrides()
    for key in RUNTIME_KEYS:
        if key in updates:
            overrides[key] = updates[key]
    _write_overrides(overrides)

    get_settings.cache_clear()

    logger.info("Runtime settings updated: %s", {k: overrides.get(k) for k in RUNTIME_KEYS})
    return get_runtime_settings()
