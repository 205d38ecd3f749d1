"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

One accepted client, plain or TLS, seen through a Transport and read one
HTTP request at a time.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

A request can arrive in any number of pieces:

    First read:   "GET /css/si"
    Second read:  "te.css HTTP/1.1\r\nHost: ..."
    Third read:   "...\r\n\r\n"

So bytes are buffered until the blank line (\r\n\r\n) that ends the
headers shows up. Anything after the request (a pipelined second request)
stays in the buffer for the next call.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► HANDSHAKE ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE
     │          │            │                           │            │
     │          ▼            ▼                           ▼            │
     └──────► CLOSING ◄──────┴───────────────────────────┴────────────┘
                 │
                 ▼
               CLOSED

HANDSHAKE is a no-op for plain TCP.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Iterable, Optional
import uuid

from .transport import Transport


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states (for logging and cleanup)."""
    NEW = "new"
    HANDSHAKE = "handshake"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │  1. TLS HANDSHAKE      deferred from accept() to the worker thread   │
    │  2. BUFFERED READING   until a complete request is available        │
    │  3. TIMEOUTS           30s for the first request, 5s keep-alive      │
    │  4. WRITING            whole responses or streamed chunks            │
    │  5. GRACEFUL CLOSE     close_notify/FIN, drain, release the fd      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        transport: Byte stream over the client socket.
        address: Client's address tuple (host, port[, flow, scope]).
        id: Short connection identifier for log lines.
        requests_handled: Requests read on this connection so far.
    """

    transport: Transport
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.transport.socket.setblocking(True)
        if self.timeout:
            self.transport.settimeout(self.timeout)

    @classmethod
    def from_socket(cls, sock: socket.socket, address: tuple, **kwargs) -> "Connection":
        """Wrap an accepted (possibly TLS) socket."""
        return cls(transport=Transport(sock), address=address, **kwargs)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def is_tls(self) -> bool:
        return self.transport.is_tls

    @property
    def idle_time(self) -> float:
        return time.time() - self.last_activity

    # =========================================================================
    # HANDSHAKE
    # =========================================================================

    def handshake(self) -> bool:
        """
        Finish the TLS handshake (bounded by the connection timeout).

        Returns:
            False when the client failed it; the connection should be
            closed without any HTTP traffic.
        """
        self.state = ConnectionState.HANDSHAKE
        return self.transport.handshake()

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request.

        ┌─────────────────────────────────────────────────────────────────┐
        │   keep-alive? ──► shorter timeout                               │
        │   while no \\r\\n\\r\\n: read → buffer                              │
        │   Content-Length ──► read the rest of the body                  │
        │   cut the request off the buffer, keep what follows             │
        └─────────────────────────────────────────────────────────────────┘

        Returns:
            Request bytes, or None if the client closed (or went idle on
            a keep-alive connection).

        Raises:
            TimeoutError: No first request within the timeout.
            ValueError: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.transport.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None

                self._buffer += chunk

                if len(self._buffer) > self.max_request_size:
                    raise ValueError(f"Request too large: {len(self._buffer)} bytes")

            header_end = self._buffer.find(b"\r\n\r\n")
            header_section = self._buffer[:header_end]
            body_start = header_end + 4

            content_length = self._parse_content_length(header_section)
            if body_start + content_length > self.max_request_size:
                raise ValueError(f"Request too large: {body_start + content_length} bytes")

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break  # Closed mid-body
                self._buffer += chunk

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.last_activity = time.time()

            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.transport.settimeout(self.timeout)

    def _recv(self) -> bytes:
        """One transport read; b"" when the client is gone."""
        buffer = bytearray(self.buffer_size)
        try:
            count = self.transport.read(buffer)
        except (ConnectionResetError, BrokenPipeError):
            return b""
        self.last_activity = time.time()
        return bytes(buffer[:count])

    def _parse_content_length(self, headers: bytes) -> int:
        """Content-Length from raw headers, 0 if absent or malformed."""
        try:
            header_str = headers.decode("latin-1").lower()
            for line in header_str.split("\r\n"):
                if line.startswith("content-length:"):
                    return max(0, int(line.split(":", 1)[1].strip()))
        except ValueError:
            pass
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send a complete response.

        Returns:
            True if everything was written, False if the client is gone.
        """
        return self.send_chunks((data,))

    def send_chunks(self, chunks: Iterable[bytes]) -> bool:
        """
        Write chunks in order, stopping at the first failure.

        The iterable is consumed lazily, so a streamed file is never held
        in memory as a whole.

        Returns:
            True if every chunk was written, False if the client is gone.
        """
        self.state = ConnectionState.WRITING

        try:
            for chunk in chunks:
                if chunk:
                    self.transport.write_all(chunk)
                    self.last_activity = time.time()
            self.transport.flush()
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

            1. shutdown()  close_notify (TLS), then FIN
            2. drain       read whatever the client still sends
            3. close()     release the file descriptor

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.transport.shutdown()
        except OSError:
            pass  # Peer already gone

        try:
            self.transport.socket.settimeout(0.5)
            while self.transport.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.transport.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def set_keep_alive(self):
        """Mark connection as waiting for the next request."""
        self.state = ConnectionState.KEEP_ALIVE

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
