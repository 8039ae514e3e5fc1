# src/transport/connector.py - v2
"""Connection lifecycle: open, wait for the connect, upgrade to TLS.

Single attempt only. Retry policy, if any, belongs to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time

from occlaude.core.errors import ConnectError, TlsError
from occlaude.transport.base import RawSocket, SecureChannel, SocketProvider, TlsProvider

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT_S = 30.0
DEFAULT_POLL_INTERVAL_S = 0.1


async def connect(
    provider: SocketProvider,
    host: str,
    port: int,
    timeout: float = DEFAULT_CONNECT_TIMEOUT_S,
    poll_interval: float = DEFAULT_POLL_INTERVAL_S,
) -> RawSocket:
    """Resolve host, open a socket and poll until it is connected.

    Args:
        provider: Socket capability.
        host: Remote host name.
        port: Remote port.
        timeout: Seconds allowed for name resolution plus the connect.
        poll_interval: Seconds to yield between polls.

    Returns:
        Connected RawSocket.

    Raises:
        ConnectError: If the name cannot be resolved, the socket cannot be
            created, the connect fails, or the timeout elapses. The socket
            is closed in every case.
    """
    start = time.monotonic()
    try:
        address = await asyncio.wait_for(provider.resolve(host, port), timeout)
    except asyncio.TimeoutError as e:
        raise ConnectError(f"Connection timeout after {timeout:g}s resolving {host}") from e
    except OSError as e:
        raise ConnectError(f"Failed to create socket: cannot resolve {host}: {e}") from e

    try:
        sock = provider.open(address, port)
    except OSError as e:
        raise ConnectError(f"Failed to create socket: {e}") from e

    while True:
        try:
            if sock.finish_connect():
                logger.debug("Connected to %s:%d in %.2fs", host, port, time.monotonic() - start)
                return sock
        except OSError as e:
            sock.close()
            raise ConnectError(f"Connection failed: {e}") from e

        if time.monotonic() - start > timeout:
            sock.close()
            raise ConnectError(f"Connection timeout after {timeout:g}s to {host}:{port}")
        await asyncio.sleep(poll_interval)


async def upgrade_to_secure(
    tls: TlsProvider,
    sock: RawSocket,
    server_name: str,
    alpn_protocol: str | None = "http/1.1",
) -> SecureChannel:
    """Wrap a connected socket in a secure channel.

    The raw socket must not be reused after a failure: it is closed before
    TlsError propagates.

    Raises:
        TlsError: If negotiation fails for any reason.
    """
    try:
        return await tls.upgrade(sock, server_name, alpn_protocol)
    except asyncio.CancelledError:
        sock.close()
        raise
    except Exception as e:
        sock.close()
        raise TlsError(f"TLS handshake failed: {e}") from e
