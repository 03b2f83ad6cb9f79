"""File-backed settings store."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from anygpt.config import ClientConfig, Settings, coerce_setting
from anygpt.storage import default_config_dir, read_json, write_json

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "ANYGPT_MODEL": "model",
    "ANYGPT_BASE_URL": "base_url",
}


def default_settings_path() -> Path:
    override = os.getenv("ANYGPT_SETTINGS_PATH")
    if override:
        return Path(override)
    return default_config_dir() / "settings.json"


class SettingsStore:
    """Reads preferences from disk on every access so edits apply to the next call."""

    def __init__(self, path: Path | None = None, *, overrides: dict[str, Any] | None = None) -> None:
        self.path = path or default_settings_path()
        self.overrides = {key: value for key, value in (overrides or {}).items() if value is not None}

    def load(self) -> Settings:
        raw = dict(read_json(self.path) or {})
        for env_var, key in ENV_OVERRIDES.items():
            value = os.getenv(env_var)
            if value:
                raw[key] = value
        raw.update(self.overrides)
        return Settings.from_dict(raw)

    def get(self, key: str) -> Any:
        settings = self.load()
        if not hasattr(settings, key):
            raise KeyError(key)
        return getattr(settings, key)

    def client_config(self) -> ClientConfig:
        return self.load().client_config()

    def set(self, key: str, value: Any) -> Any:
        coerced = coerce_setting(key, value)
        raw = read_json(self.path) or {}
        raw[key] = coerced
        write_json(self.path, raw)
        logger.info("Setting %s updated", key)
        return coerced

    def reset(self) -> None:
        write_json(self.path, Settings().to_dict())
