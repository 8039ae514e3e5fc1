# src/codec/json_codec.py - v2
"""Self-contained JSON encoder and recursive-descent decoder.

Encoding policy:
  - NaN becomes ``null``, +/-infinity becomes ``1e308`` / ``-1e308``.
  - A dict whose keys are exactly the integers 1..N is written as an array.
  - Any other dict keeps only its string keys; the rest are dropped.

Decoding runs a single pass over the text with the cursor owned by a
``_Parser`` instance. An escaped surrogate pair (``\\ud83d\\ude00``) is
combined into one code point; any other ``\\uXXXX`` maps one-to-one. Lone
surrogates are written back out as ``\\uXXXX`` so encoded text is always
valid UTF-8. Containers nest at most ``MAX_DEPTH`` levels.
"""

from __future__ import annotations

import math
import re
from typing import Any, NoReturn

from occlaude.core.errors import EncodeError, ParseError

_ESCAPES: dict[int, str] = {c: f"\\u{c:04x}" for c in range(0x20)}
_ESCAPES.update({
    ord("\\"): "\\\\",
    ord('"'): '\\"',
    ord("\b"): "\\b",
    ord("\f"): "\\f",
    ord("\n"): "\\n",
    ord("\r"): "\\r",
    ord("\t"): "\\t",
})

_UNESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

_WHITESPACE = re.compile(r"[ \t\n\r]*")
_STRING_CHUNK = re.compile(r'[^"\\]*')
_NUMBER = re.compile(r"-?[0-9]*(\.[0-9]*)?([eE][+-]?[0-9]*)?")
_HEX4 = re.compile(r"[0-9a-fA-F]{4}")
_SURROGATE = re.compile(r"[\ud800-\udfff]")

_SNIPPET_LEN = 20

MAX_DEPTH = 200


# --- Encoding ---


def encode(value: Any) -> str:
    """Encode a Python value as JSON text.

    Raises:
        EncodeError: If the value (or a nested value) has an unsupported type.
    """
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, float):
        return _encode_float(value)
    if isinstance(value, str):
        return '"' + _encode_str(value) + '"'
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(encode(item) for item in value) + "]"
    if isinstance(value, dict):
        if is_array_like(value):
            return "[" + ",".join(encode(value[i]) for i in range(1, len(value) + 1)) + "]"
        parts = [
            encode(key) + ":" + encode(item)
            for key, item in value.items()
            if isinstance(key, str)
        ]
        return "{" + ",".join(parts) + "}"
    raise EncodeError(f"Cannot encode type: {type(value).__name__}")


def is_array_like(mapping: dict[Any, Any]) -> bool:
    """True when the keys are exactly the integers 1..N with N >= 1."""
    if not mapping:
        return False
    keys = mapping.keys()
    if not all(type(k) is int for k in keys):
        return False
    return min(keys) == 1 and max(keys) == len(mapping)


def _encode_str(value: str) -> str:
    escaped = value.translate(_ESCAPES)
    return _SURROGATE.sub(lambda m: f"\\u{ord(m.group()):04x}", escaped)


def _encode_float(value: float) -> str:
    if math.isnan(value):
        return "null"
    if math.isinf(value):
        return "1e308" if value > 0 else "-1e308"
    return repr(value)


# --- Decoding ---


def decode(text: str | bytes, *, strict: bool = False) -> Any:
    """Decode JSON text into Python values.

    Args:
        text: JSON text, or UTF-8 encoded bytes.
        strict: Reject non-whitespace content after the top-level value.
            Off by default: trailing content is ignored.

    Raises:
        ParseError: If the text violates the grammar or nests deeper
            than MAX_DEPTH.
    """
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError("Invalid UTF-8 in JSON text", e.start, "") from e

    parser = _Parser(text)
    try:
        result = parser.parse_value()
    except RecursionError:
        parser.fail("Nesting too deep")
    parser.skip_whitespace()
    if strict and parser.pos < len(text):
        parser.fail("Unexpected trailing content")
    return result


class _Parser:
    """Cursor over one JSON document."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.depth = 0

    def fail(self, message: str) -> NoReturn:
        offset = len(self.text[: self.pos].encode("utf-8", "surrogatepass"))
        raise ParseError(message, offset, self.text[self.pos : self.pos + _SNIPPET_LEN])

    def peek(self) -> str:
        return self.text[self.pos : self.pos + 1]

    def skip_whitespace(self) -> None:
        self.pos = _WHITESPACE.match(self.text, self.pos).end()

    def parse_value(self) -> Any:
        self.skip_whitespace()
        c = self.peek()
        if c == '"':
            return self.parse_string()
        if c == "{" or c == "[":
            self.depth += 1
            if self.depth > MAX_DEPTH:
                self.fail(f"Nesting too deep (max {MAX_DEPTH})")
            value = self.parse_object() if c == "{" else self.parse_array()
            self.depth -= 1
            return value
        if c == "t":
            return self.parse_literal("true", True)
        if c == "f":
            return self.parse_literal("false", False)
        if c == "n":
            return self.parse_literal("null", None)
        if c == "-" or "0" <= c <= "9":
            return self.parse_number()
        self.fail("Invalid JSON")

    def parse_literal(self, word: str, value: Any) -> Any:
        if not self.text.startswith(word, self.pos):
            self.fail("Invalid JSON")
        self.pos += len(word)
        return value

    def parse_string(self) -> str:
        start = self.pos
        self.pos += 1  # opening quote
        parts: list[str] = []
        text = self.text
        while True:
            end = _STRING_CHUNK.match(text, self.pos).end()
            parts.append(text[self.pos : end])
            self.pos = end
            c = self.peek()
            if c == '"':
                self.pos += 1
                return "".join(parts)
            if not c:
                self.pos = start
                self.fail("Unterminated string")
            # backslash
            esc = text[self.pos + 1 : self.pos + 2]
            if esc in _UNESCAPES:
                parts.append(_UNESCAPES[esc])
                self.pos += 2
            elif esc == "u":
                hex_digits = text[self.pos + 2 : self.pos + 6]
                if not _HEX4.fullmatch(hex_digits):
                    self.fail("Invalid unicode escape")
                code = int(hex_digits, 16)
                self.pos += 6
                if 0xD800 <= code <= 0xDBFF:
                    code = self.combine_low_surrogate(code)
                parts.append(chr(code))
            elif not esc:
                self.pos = start
                self.fail("Unterminated string")
            else:
                self.fail("Invalid escape")

    def combine_low_surrogate(self, high: int) -> int:
        """Merge a following \\uDC00-\\uDFFF escape into ``high``, if present."""
        if not self.text.startswith("\\u", self.pos):
            return high
        low_digits = self.text[self.pos + 2 : self.pos + 6]
        if not _HEX4.fullmatch(low_digits):
            return high
        low = int(low_digits, 16)
        if not 0xDC00 <= low <= 0xDFFF:
            return high
        self.pos += 6
        return 0x10000 + ((high - 0xD800) << 10) + (low - 0xDC00)

    def parse_number(self) -> int | float:
        match = _NUMBER.match(self.text, self.pos)
        literal = match.group(0)
        try:
            if match.group(1) is None and match.group(2) is None:
                try:
                    value: int | float = int(literal)
                except ValueError:
                    # past the interpreter's integer digit limit
                    value = float(literal)
            else:
                value = float(literal)
        except ValueError:
            self.fail("Invalid number")
        self.pos = match.end()
        return value

    def parse_array(self) -> list[Any]:
        self.pos += 1  # [
        result: list[Any] = []
        self.skip_whitespace()
        if self.peek() == "]":
            self.pos += 1
            return result

        while True:
            result.append(self.parse_value())
            self.skip_whitespace()
            c = self.peek()
            if c == "]":
                self.pos += 1
                return result
            if c == ",":
                self.pos += 1
            else:
                self.fail("Expected ',' or ']' in array")

    def parse_object(self) -> dict[str, Any]:
        self.pos += 1  # {
        result: dict[str, Any] = {}
        self.skip_whitespace()
        if self.peek() == "}":
            self.pos += 1
            return result

        while True:
            self.skip_whitespace()
            if self.peek() != '"':
                self.fail("Expected string key in object")
            key = self.parse_string()
            self.skip_whitespace()
            if self.peek() != ":":
                self.fail("Expected ':' after object key")
            self.pos += 1

            result[key] = self.parse_value()
            self.skip_whitespace()
            c = self.peek()
            if c == "}":
                self.pos += 1
                return result
            if c == ",":
                self.pos += 1
            else:
                self.fail("Expected ',' or '}' in object")
