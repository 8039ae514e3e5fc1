# src/http/builder.py - v1
"""Serialize an HTTP/1.1 request to wire bytes.

Bodies are always fully buffered; chunked request encoding is not used.
"""

from __future__ import annotations

from collections.abc import Mapping

# Computed by build_request; caller-supplied values are ignored.
_RESERVED_HEADERS = frozenset({"host", "content-length", "connection"})


def build_request(
    method: str,
    path: str,
    host: str,
    headers: Mapping[str, str] | None = None,
    body: bytes | str | None = None,
) -> bytes:
    """Build the request line, headers, blank line and body.

    Args:
        method: HTTP method (e.g. "POST").
        path: Request target (e.g. "/v1/messages").
        host: Value of the Host header.
        headers: Extra headers. Host, Content-Length and Connection are
            always computed here.
        body: Request body; str is UTF-8 encoded.

    Returns:
        Complete request bytes ready to write.
    """
    if isinstance(body, str):
        body = body.encode("utf-8")

    lines = [f"{method} {path} HTTP/1.1", f"Host: {host}"]
    for name, value in (headers or {}).items():
        if name.lower() in _RESERVED_HEADERS:
            continue
        lines.append(f"{name}: {value}")
    if body:
        lines.append(f"Content-Length: {len(body)}")
    lines.append("Connection: close")

    head = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")
    return head + (body or b"")
