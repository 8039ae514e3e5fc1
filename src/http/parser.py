# src/http/parser.py - v1
"""Parse raw HTTP/1.1 response bytes into an HttpResponse.

Lenient behaviour:
  - duplicate header names keep the last value;
  - a malformed chunk-size line ends chunked reassembly instead of failing,
    returning whatever chunks were decoded before it.
"""

from __future__ import annotations

import logging
import re

from occlaude.core.errors import ParseError
from occlaude.http.messages import HttpResponse

logger = logging.getLogger(__name__)

_SEPARATOR = b"\r\n\r\n"
_STATUS_LINE = re.compile(r"^(HTTP/\d\.\d)\s+(\d+)\s*(.*)$")


def parse_response(data: bytes) -> HttpResponse:
    """Split headers from body, parse the status line and headers.

    Raises:
        ParseError: If the separator is missing or the status line is invalid.
    """
    header_end = data.find(_SEPARATOR)
    if header_end < 0:
        raise ParseError("Invalid HTTP response: no header/body separator")

    header_section = data[:header_end].decode("latin-1")
    body = data[header_end + len(_SEPARATOR):]

    lines = header_section.split("\r\n")
    status_line = lines[0]
    match = _STATUS_LINE.match(status_line)
    if not match:
        raise ParseError(f"Invalid HTTP status line: {status_line!r}")

    headers: dict[str, str] = {}
    for line in lines[1:]:
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            continue
        headers[name.strip().lower()] = value.strip()

    if headers.get("transfer-encoding", "").lower() == "chunked":
        body = decode_chunked(body)

    return HttpResponse(
        status_code=int(match.group(2)),
        status_message=match.group(3).strip(),
        headers=headers,
        body=body,
    )


def decode_chunked(body: bytes) -> bytes:
    """Reassemble a chunked transfer-encoded body.

    Stops at the zero-size chunk. A size line that is missing its CRLF or is
    not hexadecimal truncates the result at that point.
    """
    decoded: list[bytes] = []
    pos = 0
    while pos < len(body):
        size_end = body.find(b"\r\n", pos)
        if size_end < 0:
            logger.warning("Chunked body truncated: size line without CRLF at byte %d", pos)
            break
        size_field = body[pos:size_end].split(b";", 1)[0].strip()
        try:
            size = int(size_field, 16)
            if size < 0:
                raise ValueError(size_field)
        except ValueError:
            logger.warning("Chunked body truncated: bad chunk size %r at byte %d", size_field, pos)
            break
        if size == 0:
            break

        start = size_end + 2
        decoded.append(body[start : start + size])
        pos = start + size + 2
    return b"".join(decoded)
