# src/transport/base.py - v2
"""Abstract socket and TLS capabilities consumed by the connector.

A capability pair (SocketProvider + TlsProvider) is injected into the API
client so the protocol layer never touches a concrete network stack.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ChannelClosed(Exception):
    """Peer closed the stream in an orderly way (close alert / EOF)."""


class RawSocket(ABC):
    """Plain byte stream opened without waiting for the connect to finish."""

    @abstractmethod
    def finish_connect(self) -> bool:
        """Poll the pending connect.

        Returns:
            True once connected, False while still pending.

        Raises:
            OSError: If the connect definitely failed.
        """

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write as much of data as possible, return the count written."""

    @abstractmethod
    def read(self) -> bytes | None:
        """Return available bytes, or None if nothing is ready yet."""

    @abstractmethod
    def close(self) -> None:
        """Release the socket. Safe to call more than once."""


class SocketProvider(ABC):
    """Opens raw sockets."""

    async def resolve(self, host: str, port: int) -> str:
        """Resolve host to the address handed to open().

        The default passes the name through unchanged. Providers whose
        open() would block on a name lookup resolve here instead, off the
        event loop.

        Raises:
            OSError: If the name cannot be resolved.
        """
        return host

    @abstractmethod
    def open(self, host: str, port: int) -> RawSocket:
        """Start a connection to host:port.

        Raises:
            OSError: If the socket cannot be created.
        """

    def available(self) -> bool:
        """Whether this environment can open sockets at all."""
        return True


class SecureChannel(ABC):
    """Encrypted stream returned by a TLS upgrade."""

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Write all of data.

        Raises:
            OSError: On write failure.
        """

    @abstractmethod
    def read(self) -> bytes | None:
        """Non-blocking read.

        Returns:
            Received bytes, ``None`` if nothing is available yet, or ``b""``
            when the peer signalled end of stream.

        Raises:
            ChannelClosed: On an orderly close alert.
            OSError: On any other read failure.
        """

    @abstractmethod
    def close(self) -> None:
        """Close the channel and its underlying socket."""


class TlsProvider(ABC):
    """Upgrades a connected raw socket to a secure channel."""

    @abstractmethod
    async def upgrade(
        self,
        sock: RawSocket,
        server_name: str,
        alpn_protocol: str | None = None,
    ) -> SecureChannel:
        """Negotiate TLS over sock.

        Raises:
            Exception: Any failure; the connector classifies it as TlsError.
        """

    def available(self) -> bool:
        """Whether secure channels can be negotiated in this environment."""
        return True
