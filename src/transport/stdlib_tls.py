# src/transport/stdlib_tls.py - v1
"""TLS capability backed by the standard ssl module.

The handshake runs on a non-blocking socket and is polled cooperatively
with asyncio.sleep, so a slow peer never blocks the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import ssl
import time

from occlaude.transport.base import ChannelClosed, RawSocket, SecureChannel, TlsProvider
from occlaude.transport.stdlib_socket import StdlibSocket

logger = logging.getLogger(__name__)

_RECV_SIZE = 16384
_WANT_IO = (ssl.SSLWantReadError, ssl.SSLWantWriteError, BlockingIOError)


class SslChannel(SecureChannel):
    """Secure channel over an ssl.SSLSocket in non-blocking mode."""

    def __init__(
        self,
        ssl_sock: ssl.SSLSocket,
        poll_interval: float = 0.1,
        write_timeout: float = 30.0,
    ) -> None:
        self._sock = ssl_sock
        self._poll_interval = poll_interval
        self._write_timeout = write_timeout
        self._closed = False

    @property
    def negotiated_protocol(self) -> str | None:
        return self._sock.selected_alpn_protocol()

    async def write(self, data: bytes) -> None:
        view = memoryview(data)
        deadline = time.monotonic() + self._write_timeout
        while view:
            try:
                sent = self._sock.send(view)
            except _WANT_IO:
                sent = 0
            if sent:
                view = view[sent:]
                deadline = time.monotonic() + self._write_timeout
                continue
            if time.monotonic() > deadline:
                raise TimeoutError("Write timeout")
            await asyncio.sleep(self._poll_interval)

    def read(self) -> bytes | None:
        try:
            return self._sock.recv(_RECV_SIZE)
        except _WANT_IO:
            return None
        except ssl.SSLZeroReturnError as e:
            raise ChannelClosed("TLS close_notify received") from e

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._sock.close()


class StdlibTlsProvider(TlsProvider):
    """Wraps StdlibSocket instances with an SSLContext."""

    def __init__(
        self,
        context: ssl.SSLContext | None = None,
        handshake_timeout: float = 30.0,
        poll_interval: float = 0.1,
    ) -> None:
        self._context = context or ssl.create_default_context()
        self._handshake_timeout = handshake_timeout
        self._poll_interval = poll_interval

    def available(self) -> bool:
        return ssl.HAS_SNI

    async def upgrade(
        self,
        sock: RawSocket,
        server_name: str,
        alpn_protocol: str | None = None,
    ) -> SslChannel:
        if not isinstance(sock, StdlibSocket):
            raise TypeError(f"Unsupported socket type: {type(sock).__name__}")

        if alpn_protocol and ssl.HAS_ALPN:
            self._context.set_alpn_protocols([alpn_protocol])

        ssl_sock = self._context.wrap_socket(
            sock.sock,
            server_hostname=server_name,
            do_handshake_on_connect=False,
        )
        try:
            await self._handshake(ssl_sock)
        except BaseException:
            ssl_sock.close()
            raise

        logger.debug(
            "TLS established with %s (%s, alpn=%s)",
            server_name, ssl_sock.version(), ssl_sock.selected_alpn_protocol(),
        )
        return SslChannel(
            ssl_sock,
            poll_interval=self._poll_interval,
            write_timeout=self._handshake_timeout,
        )

    async def _handshake(self, ssl_sock: ssl.SSLSocket) -> None:
        deadline = time.monotonic() + self._handshake_timeout
        while True:
            try:
                ssl_sock.do_handshake()
                return
            except (ssl.SSLWantReadError, ssl.SSLWantWriteError):
                if time.monotonic() > deadline:
                    raise TimeoutError("TLS handshake timeout") from None
                await asyncio.sleep(self._poll_interval)
