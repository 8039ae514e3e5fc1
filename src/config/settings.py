# src/config/settings.py - v2
"""Typed configuration loaded from .env via pydantic-settings.

Environment variables use the OCCLAUDE_ prefix (OCCLAUDE_API_KEY,
OCCLAUDE_MODEL, ...). Values stored in the JSON config file are layered on
top by config.store.ConfigStore.apply().
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_SYSTEM_PROMPT = (
    "You are Claude, an AI assistant running on a small, resource-constrained "
    "computer. Help the user with their tasks. Keep responses concise as "
    "screen space is limited."
)


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file and environment."""

    model_config = SettingsConfigDict(
        env_prefix="OCCLAUDE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Chat ===
    api_key: str = ""
    model: str = DEFAULT_MODEL
    max_tokens: int = 4096
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # === Endpoint ===
    api_host: str = "api.anthropic.com"
    api_port: int = 443
    api_path: str = "/v1/messages"
    api_version: str = "2023-06-01"

    # === Timeouts (seconds) ===
    connect_timeout_s: float = 30.0
    read_timeout_s: float = 120.0
    poll_interval_s: float = 0.1

    # === Persisted config ===
    config_file: Path = Path("~/.occlaude/config.json")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:  # noqa: N805
        if v <= 0:
            raise ValueError("max_tokens must be > 0")
        return v

    @field_validator("api_port")
    @classmethod
    def validate_api_port(cls, v: int) -> int:  # noqa: N805
        if not 0 < v < 65536:
            raise ValueError("api_port must be between 1 and 65535")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Cross-field timeout rules."""
        errors: list[str] = []

        if self.connect_timeout_s <= 0:
            errors.append("CONNECT_TIMEOUT_S must be > 0")
        if self.read_timeout_s <= 0:
            errors.append("READ_TIMEOUT_S must be > 0")
        if self.poll_interval_s <= 0:
            errors.append("POLL_INTERVAL_S must be > 0")
        elif self.poll_interval_s >= self.read_timeout_s:
            errors.append("POLL_INTERVAL_S must be < READ_TIMEOUT_S")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.strip())

    @property
    def config_path(self) -> Path:
        return Path(self.config_file).expanduser()


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
