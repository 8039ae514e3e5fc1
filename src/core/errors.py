# src/core/errors.py - v1
"""Error taxonomy for the protocol layer and the API client.

Every failure surfaced by occlaude derives from ClientError so callers can
collapse any classified error to a human-readable message with str(exc).
"""

from __future__ import annotations


class ClientError(Exception):
    """Base class for all classified occlaude errors."""


class EncodeError(ClientError):
    """Value cannot be represented as JSON."""


class ParseError(ClientError):
    """Malformed JSON text or malformed HTTP framing."""

    def __init__(self, message: str, offset: int | None = None, snippet: str = "") -> None:
        self.offset = offset
        self.snippet = snippet
        if offset is not None:
            message = f"{message} at position {offset}: {snippet!r}"
        super().__init__(message)


class ConnectError(ClientError):
    """Socket could not be opened, failed to connect, or timed out."""


class TlsError(ClientError):
    """Secure-channel negotiation failed."""


class SendError(ClientError):
    """Writing the request to the channel failed."""


class ReadError(ClientError):
    """Reading the response failed before any data arrived."""


class ReadTimeout(ReadError):
    """No data arrived within the inactivity window."""


class EmptyResponseError(ClientError):
    """Server closed the stream without sending anything."""


class ApiStatusError(ClientError):
    """Server answered with a non-200 status."""

    def __init__(self, status_code: int, status_message: str = "", detail: str | None = None) -> None:
        self.status_code = status_code
        self.status_message = status_message
        self.detail = detail
        message = f"API error {status_code}: {status_message}"
        if detail:
            message += f" - {detail}"
        super().__init__(message)


class ResponseFormatError(ClientError):
    """Response body is not valid JSON."""


class FormatError(ClientError):
    """Response JSON lacks the expected shape."""


class TransportUnavailableError(ClientError):
    """Socket or TLS capability is not usable in this environment."""


class MissingApiKeyError(ClientError):
    """No API key is configured."""


class ConversationFileError(ClientError):
    """Saved conversation could not be read or written."""
