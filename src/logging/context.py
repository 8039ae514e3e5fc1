# src/logging/context.py - v2
"""Contextual logging support: attach exchange_id, host and phase to records.

One API exchange runs in one asyncio task, so context variables set at the
start of an exchange stay visible to every log call it makes.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_exchange_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "exchange_id", default=None
)
_host: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "host", default=None
)
_phase: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "phase", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    exchange_id: str | None = None
    host: str | None = None
    phase: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        exchange_id=_exchange_id.get(),
        host=_host.get(),
        phase=_phase.get(),
    )


def set_exchange_context(exchange_id: str, host: str) -> None:
    """Set exchange-level context (called once per API request)."""
    _exchange_id.set(exchange_id)
    _host.set(host)
    _phase.set(None)


def set_phase(phase: str | None) -> None:
    """Record the protocol step in progress (connect, tls, send, read, parse)."""
    _phase.set(phase)


def clear_context() -> None:
    """Reset all context variables."""
    _exchange_id.set(None)
    _host.set(None)
    _phase.set(None)
