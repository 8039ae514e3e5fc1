# src/config/store.py - v1
"""Persisted chat configuration stored as a JSON file.

Holds the values a user sets once (API key, model, token limit, system
prompt). The file is written with the project's own JSON codec.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from occlaude.codec.json_codec import decode, encode
from occlaude.config.settings import DEFAULT_MODEL, DEFAULT_SYSTEM_PROMPT, Settings
from occlaude.core.errors import ParseError

logger = logging.getLogger(__name__)

STORED_KEYS = ("api_key", "model", "max_tokens", "system_prompt")

DEFAULT_CONFIG: dict[str, Any] = {
    "api_key": "",
    "model": DEFAULT_MODEL,
    "max_tokens": 4096,
    "system_prompt": DEFAULT_SYSTEM_PROMPT,
}


class ConfigStore:
    """Load/save the persisted config file."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any]:
        """Return stored values merged over defaults.

        A missing, unreadable or malformed file yields the defaults.
        """
        config = dict(DEFAULT_CONFIG)
        if not self._path.exists():
            return config
        try:
            data = decode(self._path.read_text(encoding="utf-8"))
        except (OSError, ParseError) as e:
            logger.warning("Ignoring unreadable config file %s: %s", self._path, e)
            return config
        if not isinstance(data, dict):
            logger.warning("Ignoring config file %s: not a JSON object", self._path)
            return config

        for key, value in data.items():
            if value is not None:
                config[key] = value
        return config

    def save(self, values: dict[str, Any]) -> None:
        """Write values to the config file, creating parent directories."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(encode(values), encoding="utf-8")
        logger.debug("Config saved to %s", self._path)

    def get(self, key: str) -> Any:
        return self.load().get(key)

    def set(self, key: str, value: Any) -> None:
        """Update a single key and persist the whole config."""
        config = self.load()
        config[key] = value
        self.save(config)

    def apply(self, settings: Settings) -> Settings:
        """Return a copy of settings with stored chat values applied.

        A non-empty api_key already present in settings (from the
        environment or .env) is kept over the stored one.
        """
        stored = self.load()
        update = {k: stored[k] for k in STORED_KEYS if k in stored}
        if settings.has_api_key:
            update.pop("api_key", None)
        return Settings.model_validate({**settings.model_dump(), **update})


def mask_key(key: str) -> str:
    """Show the first 10 characters of an API key."""
    if not key:
        return "(not set)"
    return key[:10] + "..."
