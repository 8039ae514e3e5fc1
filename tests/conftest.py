# tests/conftest.py - v3
"""Shared test fixtures for all unit and integration tests.

Provides scripted fake sockets, fake TLS capabilities and HTTP response
builders. No network access: every byte stream is simulated.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any

import pytest

from occlaude.codec.json_codec import encode
from occlaude.llm.api_client import ClaudeApiClient
from occlaude.transport.base import (
    ChannelClosed,
    RawSocket,
    SecureChannel,
    SocketProvider,
    TlsProvider,
)


# === Fakes: transport capabilities ===


class FakeSocket(RawSocket):
    """Raw socket whose connect finishes after a number of polls.

    connect_after=None never connects; fail_with raises on the first poll.
    """

    def __init__(self, connect_after: int | None = 0, fail_with: OSError | None = None) -> None:
        self.connect_after = connect_after
        self.fail_with = fail_with
        self.polls = 0
        self.close_count = 0

    def finish_connect(self) -> bool:
        self.polls += 1
        if self.fail_with is not None:
            raise self.fail_with
        return self.connect_after is not None and self.polls > self.connect_after

    def write(self, data: bytes) -> int:
        return len(data)

    def read(self) -> bytes | None:
        return None

    def close(self) -> None:
        self.close_count += 1


class FakeSocketProvider(SocketProvider):
    def __init__(
        self,
        sock: FakeSocket | None = None,
        open_error: OSError | None = None,
        is_available: bool = True,
        address: str | None = None,
        resolve_error: OSError | None = None,
        resolve_delay: float = 0.0,
    ) -> None:
        self.sock = sock or FakeSocket()
        self.open_error = open_error
        self.is_available = is_available
        self.address = address
        self.resolve_error = resolve_error
        self.resolve_delay = resolve_delay
        self.opened: list[tuple[str, int]] = []

    async def resolve(self, host: str, port: int) -> str:
        if self.resolve_delay:
            await asyncio.sleep(self.resolve_delay)
        if self.resolve_error is not None:
            raise self.resolve_error
        return self.address or host

    def open(self, host: str, port: int) -> FakeSocket:
        self.opened.append((host, port))
        if self.open_error is not None:
            raise self.open_error
        return self.sock

    def available(self) -> bool:
        return self.is_available


class ScriptedChannel(SecureChannel):
    """Secure channel replaying a read script.

    Script items are bytes (returned), None (nothing available yet) or
    exceptions (raised). When the script runs out the channel reports an
    orderly close, or keeps returning None if idle_when_done is set.
    """

    def __init__(
        self,
        script: list[Any] | None = None,
        write_error: OSError | None = None,
        idle_when_done: bool = False,
    ) -> None:
        self.script = list(script or [])
        self.write_error = write_error
        self.idle_when_done = idle_when_done
        self.written = b""
        self.close_count = 0

    async def write(self, data: bytes) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.written += data

    def read(self) -> bytes | None:
        if not self.script:
            if self.idle_when_done:
                return None
            raise ChannelClosed("close_notify")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self.close_count += 1

    @property
    def request_body(self) -> bytes:
        return self.written.split(b"\r\n\r\n", 1)[1]


class FakeTlsProvider(TlsProvider):
    def __init__(
        self,
        channel: SecureChannel | None = None,
        error: Exception | None = None,
        is_available: bool = True,
    ) -> None:
        self.channel = channel or ScriptedChannel()
        self.error = error
        self.is_available = is_available
        self.upgrades: list[tuple[RawSocket, str, str | None]] = []

    async def upgrade(self, sock: RawSocket, server_name: str, alpn_protocol: str | None = None) -> SecureChannel:
        self.upgrades.append((sock, server_name, alpn_protocol))
        if self.error is not None:
            raise self.error
        return self.channel

    def available(self) -> bool:
        return self.is_available


# === Helpers: HTTP responses ===


def make_http_response(
    status: int = 200,
    reason: str = "OK",
    body: bytes | str | Any = b"",
    headers: dict[str, str] | None = None,
    chunked: bool = False,
) -> bytes:
    """Build raw response bytes; dict/list bodies are JSON-encoded."""
    if isinstance(body, (dict, list)):
        body = encode(body)
    if isinstance(body, str):
        body = body.encode("utf-8")

    lines = [f"HTTP/1.1 {status} {reason}"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    if chunked:
        lines.append("Transfer-Encoding: chunked")
        half = len(body) // 2
        parts = [p for p in (body[:half], body[half:]) if p]
        body = b"".join(b"%x\r\n%s\r\n" % (len(p), p) for p in parts) + b"0\r\n\r\n"
    else:
        lines.append(f"Content-Length: {len(body)}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body


SAMPLE_RESPONSE: dict[str, Any] = {
    "id": "msg_01",
    "type": "message",
    "role": "assistant",
    "model": "claude-sonnet-4-20250514",
    "content": [{"type": "text", "text": "Hello from Claude"}],
    "stop_reason": "end_turn",
    "usage": {"input_tokens": 12, "output_tokens": 5},
}


# === FIXTURES ===


@pytest.fixture
def http_response():
    """Factory building raw HTTP response bytes."""
    return make_http_response


@pytest.fixture
def sample_response() -> dict[str, Any]:
    return {**SAMPLE_RESPONSE, "content": list(SAMPLE_RESPONSE["content"])}


@pytest.fixture
def make_exchange():
    """Factory: (script, **channel_kwargs) -> (client, sockets, tls, channel).

    The client uses short timeouts so idle scripts fail fast.
    """

    def _make(
        script: list[Any] | None = None,
        *,
        read_timeout: float = 0.2,
        **channel_kwargs: Any,
    ) -> tuple[ClaudeApiClient, FakeSocketProvider, FakeTlsProvider, ScriptedChannel]:
        channel = ScriptedChannel(script, **channel_kwargs)
        sockets = FakeSocketProvider(FakeSocket())
        tls = FakeTlsProvider(channel)
        client = ClaudeApiClient(
            sockets,
            tls,
            connect_timeout=0.2,
            read_timeout=read_timeout,
            poll_interval=0.01,
        )
        return client, sockets, tls, channel

    return _make


@pytest.fixture
def fakes() -> SimpleNamespace:
    """Fake capability classes for tests that build their own scenarios."""
    return SimpleNamespace(
        Socket=FakeSocket,
        SocketProvider=FakeSocketProvider,
        Channel=ScriptedChannel,
        TlsProvider=FakeTlsProvider,
    )
