# src/http/messages.py - v2
"""HTTP/1.1 request and response value types."""

from __future__ import annotations

from dataclasses import dataclass, field

from occlaude.http.builder import build_request


@dataclass(frozen=True)
class HttpRequest:
    """Outbound request. Serialized by http.builder."""

    method: str
    path: str
    host: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None

    def to_bytes(self) -> bytes:
        return build_request(self.method, self.path, self.host, self.headers, self.body)


@dataclass(frozen=True)
class HttpResponse:
    """Parsed response. Header names are lower-cased; body is de-chunked."""

    status_code: int
    status_message: str
    headers: dict[str, str]
    body: bytes

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    def header(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")
