# src/logging/handlers.py - v3
"""Size-based rotating file handler for exchange logs.

Log files live next to the config file under ``~/.occlaude`` unless a path
is given. The log directory is created owner-only (0700).
"""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_FILE = Path("~/.occlaude/logs/occlaude.log")

_UNITS = {"": 1, "B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}
_SIZE = re.compile(r"^(\d+)\s*([KMG]?B)?$", re.IGNORECASE)


def parse_size(size_str: str) -> int:
    """Parse '10MB', '512KB', '4096' or '4096B' into a byte count."""
    match = _SIZE.match(size_str.strip())
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    return int(match.group(1)) * _UNITS[(match.group(2) or "").upper()]


def resolve_log_file(log_file: str | Path | None = None) -> Path:
    """Expand ``~`` in log_file, falling back to DEFAULT_LOG_FILE."""
    return Path(log_file or DEFAULT_LOG_FILE).expanduser()


def create_rotating_handler(
    log_file: str | Path | None = None,
    rotation: str = "10MB",
    retention: int = 5,
) -> RotatingFileHandler:
    """Create a RotatingFileHandler, creating the log directory if needed.

    Args:
        log_file: Path to log file (``~`` is expanded). Defaults to
            DEFAULT_LOG_FILE.
        rotation: Max file size before rotation.
        retention: Number of rotated files to keep.

    Raises:
        ValueError: If rotation is not a valid size.
    """
    max_bytes = parse_size(rotation)
    path = resolve_log_file(log_file)
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    return RotatingFileHandler(
        filename=str(path),
        maxBytes=max_bytes,
        backupCount=retention,
        encoding="utf-8",
    )
