# tests/integration/llm/test_int_chat_exchange.py - v1
"""Integration tests for a full chat exchange over real sockets.

Covers: transport/stdlib_socket.py, transport/connector.py, http/*,
llm/api_client.py, llm/conversation.py.
A local asyncio server plays the API; TLS is replaced by a plaintext
channel so no certificates are needed. The live test at the bottom
talks to the real API and only runs when OCCLAUDE_API_KEY is set.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
from types import SimpleNamespace
from typing import Any

import pytest

from occlaude.codec.json_codec import decode, encode
from occlaude.config.settings import Settings
from occlaude.core.errors import ApiStatusError, ConnectError
from occlaude.llm.api_client import ClaudeApiClient
from occlaude.llm.conversation import Conversation
from occlaude.transport.base import RawSocket, SecureChannel, TlsProvider
from occlaude.transport.stdlib_socket import StdlibSocketProvider

pytestmark = pytest.mark.network


class PlainChannel(SecureChannel):
    """Passes bytes straight through the raw socket."""

    def __init__(self, sock: RawSocket) -> None:
        self._sock = sock

    async def write(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            sent = self._sock.write(view)
            view = view[sent:]
            if not sent:
                await asyncio.sleep(0.001)

    def read(self) -> bytes | None:
        return self._sock.read()

    def close(self) -> None:
        self._sock.close()


class PlainTlsProvider(TlsProvider):
    def __init__(self) -> None:
        self.server_names: list[str] = []

    async def upgrade(self, sock: RawSocket, server_name: str, alpn_protocol: str | None = None) -> SecureChannel:
        self.server_names.append(server_name)
        return PlainChannel(sock)


class FakeApiServer:
    """Answers each request with a canned response, split into small writes."""

    def __init__(self, status: int = 200, reason: str = "OK", body: Any = None, chunked: bool = True) -> None:
        self.status = status
        self.reason = reason
        self.body = encode(body if body is not None else {}).encode("utf-8")
        self.chunked = chunked
        self.requests: list[tuple[bytes, bytes]] = []
        self.port = 0

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        head = await reader.readuntil(b"\r\n\r\n")
        length = 0
        for line in head.split(b"\r\n"):
            name, _, value = line.partition(b":")
            if name.strip().lower() == b"content-length":
                length = int(value)
        body = await reader.readexactly(length)
        self.requests.append((head, body))

        for piece in self._response_pieces():
            writer.write(piece)
            await writer.drain()
            await asyncio.sleep(0.01)
        writer.close()
        await writer.wait_closed()

    def _response_pieces(self) -> list[bytes]:
        head = f"HTTP/1.1 {self.status} {self.reason}\r\nContent-Type: application/json\r\n"
        if not self.chunked:
            head += f"Content-Length: {len(self.body)}\r\n\r\n"
            return [head.encode("latin-1"), self.body]
        head += "Transfer-Encoding: chunked\r\n\r\n"
        third = max(1, len(self.body) // 3)
        parts = [self.body[i:i + third] for i in range(0, len(self.body), third)]
        pieces = [head.encode("latin-1")]
        pieces += [b"%x\r\n%s\r\n" % (len(p), p) for p in parts]
        pieces.append(b"0\r\n\r\n")
        return pieces


@contextlib.asynccontextmanager
async def running(server: FakeApiServer):
    srv = await asyncio.start_server(server.handle, "127.0.0.1", 0)
    server.port = srv.sockets[0].getsockname()[1]
    try:
        yield server
    finally:
        srv.close()
        await srv.wait_closed()


def _client(port: int, tls: TlsProvider | None = None) -> ClaudeApiClient:
    return ClaudeApiClient(
        StdlibSocketProvider(),
        tls or PlainTlsProvider(),
        host="127.0.0.1",
        port=port,
        connect_timeout=2.0,
        read_timeout=2.0,
        poll_interval=0.005,
    )


CONFIG = SimpleNamespace(api_key="sk-int", model="claude-test", max_tokens=50, system_prompt="Be terse.")


class TestChatExchange:
    @pytest.mark.asyncio
    async def test_chunked_reply(self, sample_response):
        async with running(FakeApiServer(body=sample_response)) as server:
            tls = PlainTlsProvider()
            result = await _client(server.port, tls).chat(CONFIG, [{"role": "user", "content": "Hi"}])

        assert result.text == "Hello from Claude"
        assert tls.server_names == ["127.0.0.1"]
        head, body = server.requests[0]
        assert head.startswith(b"POST /v1/messages HTTP/1.1\r\n")
        assert b"x-api-key: sk-int" in head
        assert decode(body) == {
            "model": "claude-test",
            "max_tokens": 50,
            "messages": [{"role": "user", "content": "Hi"}],
            "system": "Be terse.",
        }

    @pytest.mark.asyncio
    async def test_content_length_reply(self, sample_response):
        async with running(FakeApiServer(body=sample_response, chunked=False)) as server:
            result = await _client(server.port).send_message("k", "m", [{"role": "user", "content": "x"}])
        assert result == sample_response

    @pytest.mark.asyncio
    async def test_error_status(self):
        body = {"type": "error", "error": {"type": "invalid_request_error", "message": "bad model"}}
        async with running(FakeApiServer(400, "Bad Request", body=body)) as server:
            with pytest.raises(ApiStatusError) as exc_info:
                await _client(server.port).send_message("k", "m", [{"role": "user", "content": "x"}])
        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "bad model"

    @pytest.mark.asyncio
    async def test_conversation_over_two_exchanges(self, sample_response):
        async with running(FakeApiServer(body=sample_response)) as server:
            client = _client(server.port)
            conversation = Conversation()
            await conversation.send(client, CONFIG, "one")
            await conversation.send(client, CONFIG, "two")

        assert len(conversation) == 4
        second = decode(server.requests[1][1])
        assert [m["content"] for m in second["messages"]] == ["one", "Hello from Claude", "two"]

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        async with running(FakeApiServer()) as server:
            port = server.port
        with pytest.raises(ConnectError):
            await _client(port).send_message("k", "m", [{"role": "user", "content": "x"}])


@pytest.mark.live
@pytest.mark.skipif(not os.environ.get("OCCLAUDE_API_KEY"), reason="OCCLAUDE_API_KEY not set")
class TestLiveApi:
    @pytest.mark.asyncio
    async def test_real_exchange(self):
        settings = Settings(_env_file=None, max_tokens=32)
        client = ClaudeApiClient.from_settings(settings)
        result = await client.chat(settings, [{"role": "user", "content": "Reply with the word pong."}])
        assert result.text
        assert result.stop_reason in ("end_turn", "max_tokens")
