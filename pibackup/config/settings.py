"""Settings file holding site-wide defaults for backup runs."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from pibackup.domain.models import (
    DEFAULT_DRIVE,
    DEFAULT_GROUP,
    DEFAULT_ROTATION_COUNT,
    DEFAULT_TMP_DIR,
    DEFAULT_USER,
)


SETTINGS_PATH = Path.home() / ".config" / "pibackup" / "settings.json"

DEFAULT_SSH_COMMAND = "ssh"

DEFAULT_SETTINGS: dict[str, Any] = {
    "drive": DEFAULT_DRIVE,
    "group": DEFAULT_GROUP,
    "user": DEFAULT_USER,
    "rotation_count": DEFAULT_ROTATION_COUNT,
    "tmp_dir": str(DEFAULT_TMP_DIR),
    "log_dir": None,
    "ssh_command": DEFAULT_SSH_COMMAND,
}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore(values=dict(DEFAULT_SETTINGS))


def _is_valid(key: str, value: Any) -> bool:
    """A value must have the type of its default; log_dir may also be null."""
    default = DEFAULT_SETTINGS[key]
    if default is None:
        return value is None or (isinstance(value, str) and bool(value.strip()))
    if isinstance(default, int):
        return isinstance(value, int) and not isinstance(value, bool) and value >= 1
    return isinstance(value, str) and bool(value.strip())


def load_settings(path: Optional[Path] = None) -> dict[str, Any]:
    settings_store.values = dict(DEFAULT_SETTINGS)
    path = path or SETTINGS_PATH
    if not path.exists():
        return settings_store.values
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return settings_store.values
    if isinstance(data, dict):
        settings_store.values.update(
            {
                key: value
                for key, value in data.items()
                if key in DEFAULT_SETTINGS and _is_valid(key, value)
            }
        )
    return settings_store.values


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)
