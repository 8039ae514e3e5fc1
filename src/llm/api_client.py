# src/llm/api_client.py - v2
"""Anthropic Messages API client over the hand-rolled HTTP/1.1 stack.

One call to send_message is one exchange on a fresh connection:
connect -> TLS upgrade -> write request -> read until close -> parse.
The channel is closed on every exit path. Nothing is retried here.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from occlaude.codec.json_codec import decode, encode
from occlaude.config.settings import Settings
from occlaude.core.errors import (
    ApiStatusError,
    EmptyResponseError,
    EncodeError,
    FormatError,
    MissingApiKeyError,
    ParseError,
    ReadError,
    ReadTimeout,
    ResponseFormatError,
    SendError,
    TransportUnavailableError,
)
from occlaude.core.models import ChatRequest, ChatResult, Message
from occlaude.http.messages import HttpRequest
from occlaude.http.parser import parse_response
from occlaude.logging.context import set_exchange_context, set_phase
from occlaude.transport.base import ChannelClosed, SecureChannel, SocketProvider, TlsProvider
from occlaude.transport.connector import connect, upgrade_to_secure

logger = logging.getLogger(__name__)

API_HOST = "api.anthropic.com"
API_PORT = 443
API_PATH = "/v1/messages"
API_VERSION = "2023-06-01"
ALPN_PROTOCOL = "http/1.1"

DEFAULT_MAX_TOKENS = 4096


class ClaudeApiClient:
    """Single-attempt client for POST /v1/messages."""

    def __init__(
        self,
        sockets: SocketProvider | None = None,
        tls: TlsProvider | None = None,
        *,
        host: str = API_HOST,
        port: int = API_PORT,
        path: str = API_PATH,
        api_version: str = API_VERSION,
        connect_timeout: float = 30.0,
        read_timeout: float = 120.0,
        poll_interval: float = 0.1,
    ) -> None:
        if sockets is None:
            from occlaude.transport.stdlib_socket import StdlibSocketProvider

            sockets = StdlibSocketProvider()
        if tls is None:
            from occlaude.transport.stdlib_tls import StdlibTlsProvider

            tls = StdlibTlsProvider(handshake_timeout=connect_timeout, poll_interval=poll_interval)

        self._sockets = sockets
        self._tls = tls
        self._host = host
        self._port = port
        self._path = path
        self._api_version = api_version
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._poll_interval = poll_interval

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        sockets: SocketProvider | None = None,
        tls: TlsProvider | None = None,
    ) -> ClaudeApiClient:
        return cls(
            sockets,
            tls,
            host=settings.api_host,
            port=settings.api_port,
            path=settings.api_path,
            api_version=settings.api_version,
            connect_timeout=settings.connect_timeout_s,
            read_timeout=settings.read_timeout_s,
            poll_interval=settings.poll_interval_s,
        )

    # --- Public API ---

    def check_transport(self) -> None:
        """Raise TransportUnavailableError if sockets or TLS cannot be used."""
        if not self._sockets.available():
            raise TransportUnavailableError("No network socket capability available.")
        if not self._tls.available():
            raise TransportUnavailableError("No TLS capability available.")

    async def send_message(
        self,
        api_key: str,
        model: str,
        messages: Sequence[Message | dict[str, Any]],
        system_prompt: str | None = None,
        max_tokens: int | None = None,
    ) -> Any:
        """Send one chat request and return the decoded JSON response.

        Raises:
            EncodeError: If the request cannot be built.
            ConnectError, TlsError, SendError, ReadError, ReadTimeout:
                Transport failures.
            EmptyResponseError: If the server sent nothing.
            ParseError: If the HTTP framing is malformed.
            ApiStatusError: On any non-200 status.
            ResponseFormatError: If the 200 body is not JSON.
        """
        request_bytes = self._build_request(api_key, model, messages, system_prompt, max_tokens)

        exchange_id = uuid.uuid4().hex[:12]
        set_exchange_context(exchange_id, self._host)
        start = time.monotonic()
        try:
            set_phase("connect")
            sock = await connect(
                self._sockets, self._host, self._port,
                timeout=self._connect_timeout, poll_interval=self._poll_interval,
            )
            set_phase("tls")
            channel = await upgrade_to_secure(self._tls, sock, self._host, ALPN_PROTOCOL)

            try:
                set_phase("send")
                await self._send(channel, request_bytes)
                set_phase("read")
                data = await self._read_all(channel)
            finally:
                channel.close()

            set_phase("parse")
            result = self._handle_response(data)
            logger.info(
                "Exchange complete: %d bytes in %dms",
                len(data), int((time.monotonic() - start) * 1000),
            )
            return result
        finally:
            set_phase(None)

    @staticmethod
    def extract_content(response: Any) -> str:
        """Join the text blocks of a Messages API response with newlines.

        Raises:
            FormatError: If the response has no content list.
        """
        if not isinstance(response, dict) or not isinstance(response.get("content"), list):
            raise FormatError("Invalid response format")

        parts = [
            block["text"]
            for block in response["content"]
            if isinstance(block, dict)
            and block.get("type") == "text"
            and isinstance(block.get("text"), str)
        ]
        return "\n".join(parts)

    async def chat(self, config: Any, messages: Sequence[Message | dict[str, Any]]) -> ChatResult:
        """Full flow used by the chat loop.

        Args:
            config: Object exposing api_key, model, max_tokens, system_prompt
                (normally Settings).
            messages: Conversation so far, ending with the user turn.

        Raises:
            TransportUnavailableError: If the transport cannot be used.
            MissingApiKeyError: If no API key is configured.
            ClientError: Any error raised by send_message or extract_content.
        """
        self.check_transport()

        api_key = (getattr(config, "api_key", "") or "").strip()
        if not api_key:
            raise MissingApiKeyError("API key not configured. Run 'occlaude config set api_key <key>' first.")

        raw = await self.send_message(
            api_key,
            config.model,
            messages,
            getattr(config, "system_prompt", None),
            getattr(config, "max_tokens", None),
        )
        return ChatResult(text=self.extract_content(raw), raw=raw)

    # --- Internal helpers ---

    def _build_request(
        self,
        api_key: str,
        model: str,
        messages: Sequence[Message | dict[str, Any]],
        system_prompt: str | None,
        max_tokens: int | None,
    ) -> bytes:
        try:
            chat_request = ChatRequest(
                model=model,
                max_tokens=max_tokens or DEFAULT_MAX_TOKENS,
                messages=list(messages),
                system=system_prompt,
            )
        except ValidationError as e:
            raise EncodeError(f"Invalid chat request: {e}") from e

        headers = {
            "Content-Type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": self._api_version,
        }
        request = HttpRequest(
            method="POST",
            path=self._path,
            host=self._host,
            headers=headers,
            body=encode(chat_request.to_payload()).encode("utf-8"),
        )
        try:
            return request.to_bytes()
        except UnicodeEncodeError as e:
            raise EncodeError(f"Request headers must be latin-1 text: {e.reason}") from e

    async def _send(self, channel: SecureChannel, request_bytes: bytes) -> None:
        try:
            await channel.write(request_bytes)
        except OSError as e:
            raise SendError(f"Failed to send request: {e}") from e
        logger.debug("Request sent (%d bytes)", len(request_bytes))

    async def _read_all(self, channel: SecureChannel) -> bytes:
        """Read until the peer closes, timing out on inactivity.

        A read error after some data has arrived ends the stream normally;
        the bytes already received are returned.
        """
        chunks: list[bytes] = []
        received = 0
        last_data = time.monotonic()

        while True:
            try:
                chunk = channel.read()
            except ChannelClosed:
                break
            except OSError as e:
                if not chunks:
                    raise ReadError(f"Read error: {e}") from e
                logger.warning("Read error after %d bytes, treating as end of stream: %s", received, e)
                break

            if chunk:
                chunks.append(chunk)
                received += len(chunk)
                last_data = time.monotonic()
                continue
            if chunk == b"":
                break

            if time.monotonic() - last_data > self._read_timeout:
                raise ReadTimeout(f"Read timeout after {self._read_timeout:g}s without data")
            await asyncio.sleep(self._poll_interval)

        return b"".join(chunks)

    def _handle_response(self, data: bytes) -> Any:
        if not data:
            raise EmptyResponseError("Empty response from server")

        response = parse_response(data)
        if response.status_code != 200:
            error = ApiStatusError(
                response.status_code,
                response.status_message,
                _error_detail(response.body),
            )
            logger.warning("%s", error)
            raise error

        try:
            return decode(response.body)
        except ParseError as e:
            raise ResponseFormatError(f"Failed to parse response: {e}") from e


def _error_detail(body: bytes) -> str | None:
    """Pull error.message (or error.type) out of an error body, if it is JSON."""
    try:
        data = decode(body)
    except ParseError:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("error"), dict):
        return None
    detail = data["error"].get("message") or data["error"].get("type")
    return str(detail) if detail is not None else None
