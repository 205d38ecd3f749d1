"""
=============================================================================
TRANSPORT ADAPTER
=============================================================================

One byte-stream API over an accepted connection, whether it is plain TCP or
TLS-terminated:

    ┌──────────────────┐        ┌───────────────┐        ┌────────────────┐
    │ socket.socket    │ ─────► │               │        │                │
    └──────────────────┘        │   Transport   │ ─────► │  Connection    │
    ┌──────────────────┐        │               │        │  (HTTP layer)  │
    │ ssl.SSLSocket    │ ─────► │               │        │                │
    └──────────────────┘        └───────────────┘        └────────────────┘

    read(buffer)    → bytes read, 0 at end of stream, OSError on failure
    write(data)     → bytes written, OSError on failure
    write_all(data) → everything or OSError
    flush()         → no-op, sockets do not buffer writes
    shutdown()      → TLS close_notify (if TLS), then half-close (FIN)
    peer_address()  → (host, port, ...) or None once disconnected

=============================================================================
DEFERRED TLS HANDSHAKE
=============================================================================

The listener wraps accepted sockets with do_handshake_on_connect=False, so
accept() never blocks on a slow or hostile client. The handshake runs in the
worker thread via handshake():

    success → connection proceeds to HTTP
    failure → logged at WARNING, connection dropped, listener unaffected

ssl.SSLError is a subclass of OSError, so callers that already handle
socket errors handle TLS record errors too.

=============================================================================
"""

import logging
import socket
import ssl
from typing import Optional, Union


logger = logging.getLogger(__name__)


class Transport:
    """
    Uniform stream over a plain or TLS socket.

    Args:
        sock: An accepted socket. An ssl.SSLSocket enables the TLS paths.
    """

    def __init__(self, sock: socket.socket):
        self._sock = sock
        self._handshake_done = not self.is_tls

    def __repr__(self) -> str:
        kind = "tls" if self.is_tls else "plain"
        return f"Transport({kind}, peer={self.peer_address()})"

    @property
    def socket(self) -> socket.socket:
        """The wrapped socket (for timeouts and fileno)."""
        return self._sock

    @property
    def is_tls(self) -> bool:
        return isinstance(self._sock, ssl.SSLSocket)

    def settimeout(self, timeout: Optional[float]) -> None:
        self._sock.settimeout(timeout)

    def handshake(self) -> bool:
        """
        Complete the TLS handshake.

        Returns:
            True when the connection may be used (always for plain TCP),
            False when negotiation failed and the caller should drop it.
        """
        if self._handshake_done:
            return True

        try:
            self._sock.do_handshake()
        except (ssl.SSLError, OSError) as e:
            logger.warning(f"TLS handshake failed with {self.peer_address()}: {e}")
            return False

        self._handshake_done = True
        logger.debug(f"TLS handshake with {self.peer_address()}: {self._sock.version()}")
        return True

    def read(self, buffer: Union[bytearray, memoryview]) -> int:
        """Read into buffer; 0 means the peer closed the stream."""
        return self._sock.recv_into(buffer)

    def write(self, data: bytes) -> int:
        return self._sock.send(data)

    def write_all(self, data: bytes) -> None:
        self._sock.sendall(data)

    def flush(self) -> None:
        """Writes go straight to the kernel; nothing to flush."""

    def shutdown(self) -> None:
        """
        Stop sending.

        For TLS, unwrap() sends close_notify first; the socket it returns
        is the same object with TLS switched off.

        Raises:
            OSError: The peer is already gone.
        """
        sock = self._sock
        if self.is_tls and self._handshake_done:
            sock = sock.unwrap()
        sock.shutdown(socket.SHUT_WR)

    def peer_address(self) -> Optional[tuple]:
        try:
            return self._sock.getpeername()
        except OSError:
            return None

    def close(self) -> None:
        self._sock.close()
