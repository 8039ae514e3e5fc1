# src/transport/stdlib_socket.py - v2
"""Non-blocking TCP sockets built on the standard socket module."""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import select
import socket

from occlaude.transport.base import RawSocket, SocketProvider

logger = logging.getLogger(__name__)

_RECV_SIZE = 16384


class StdlibSocket(RawSocket):
    """Wraps a non-blocking socket.socket whose connect is in flight."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self._closed = False

    def finish_connect(self) -> bool:
        _, writable, _ = select.select([], [self.sock], [], 0)
        if not writable:
            return False
        err = self.sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        if err:
            raise OSError(err, os.strerror(err))
        return True

    def write(self, data: bytes) -> int:
        try:
            return self.sock.send(data)
        except BlockingIOError:
            return 0

    def read(self) -> bytes | None:
        try:
            return self.sock.recv(_RECV_SIZE)
        except BlockingIOError:
            return None

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self.sock.close()

    @property
    def closed(self) -> bool:
        return self._closed


class StdlibSocketProvider(SocketProvider):
    """Opens IPv4/IPv6 TCP sockets without blocking on the handshake."""

    async def resolve(self, host: str, port: int) -> str:
        loop = asyncio.get_running_loop()
        infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        if not infos:
            raise OSError(f"No address found for {host}")
        return infos[0][4][0]

    def open(self, host: str, port: int) -> StdlibSocket:
        # numeric after resolve(), so no DNS round trip here
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        family, type_, proto, _, address = infos[0]
        sock = socket.socket(family, type_, proto)
        sock.setblocking(False)
        err = sock.connect_ex(address)
        if err not in (0, errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EALREADY):
            sock.close()
            raise OSError(err, os.strerror(err))
        logger.debug("Socket opened to %s:%d (%s)", host, port, address[0])
        return StdlibSocket(sock)
