"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket: create, bind, listen, accept, close.

    1. socket()    IPv4 or IPv6, picked from the listen address
    2. bind()      fails fast (address in use, permission denied)
    3. listen()    backlog from the config
    4. accept()    loop with a 1s timeout so shutdown() is noticed
    5. close()     on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    │   (optionally TLS)    │
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │Connection │         │Connection │         │Connection │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
TLS
=============================================================================

With an SSLContext, every accepted socket is wrapped server-side with
do_handshake_on_connect=False. The handshake then happens in the worker
(Connection.handshake), so one client that never finishes it cannot stall
the accept loop.

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd) trigger shutdown().
Python only allows installing handlers from the main thread; when the
server runs in any other thread (tests, embedding) that step is skipped
and the owner calls shutdown() itself.

=============================================================================
"""

import socket
import signal
import ssl
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        server = SocketServer(config, ssl_context=None)
        server.bind()                      # optional: bind before start()
        server.start(handle_connection)    # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig, ssl_context: Optional[ssl.SSLContext] = None):
        self.config = config
        self.ssl_context = ssl_context

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port), or the configured one before binding.

        With port 0 in the config this is where the real port shows up.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return host, port
        return self.config.host, self.config.port

    def _create_socket(self) -> socket.socket:
        """Create the listening socket with its options set."""
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)

        # Rebind immediately after a restart (TIME_WAIT)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Only the exact address family asked for
        if family == socket.AF_INET6:
            try:
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
            except (AttributeError, OSError):
                pass

        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # Periodic wakeup to check _running
        sock.settimeout(1.0)

        return sock

    def bind(self):
        """
        Create, bind and listen.

        Raises:
            OSError: The address cannot be bound.
        """
        if self._socket is not None:
            return

        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.listen}: {e}")
            raise

        sock.listen(self.config.backlog)
        self._socket = sock

        host, port = self.address
        logger.debug(f"Bound to {host}:{port}")

    def _setup_signals(self):
        """Route SIGTERM and SIGINT to shutdown() (main thread only)."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() is called.

        Args:
            connection_handler: Receives each accepted Connection. Must not
                block; the HTTP server hands it to its thread pool.
        """
        self.bind()

        self._running = True
        self._setup_signals()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        ┌─────────────────────────────────────────────────────────────────┐
        │   while running:                                                │
        │       accept()           (1s timeout → re-check running)        │
        │       wrap in TLS        (handshake deferred)                   │
        │       Connection(...)    (buffering, timeouts, state)           │
        │       connection_handler(conn)                                  │
        └─────────────────────────────────────────────────────────────────┘

        A failure on one accepted socket never stops the loop.
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                # EMFILE, ECONNABORTED and friends: keep listening
                logger.error(f"Accept error: {e}")
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                if self.ssl_context is not None:
                    client_socket = self.ssl_context.wrap_socket(
                        client_socket,
                        server_side=True,
                        do_handshake_on_connect=False,
                    )

                conn = Connection.from_socket(
                    client_socket,
                    client_address,
                    buffer_size=self.config.buffer_size,
                    timeout=self.config.timeout,
                    keep_alive_timeout=self.config.keep_alive_timeout,
                    max_request_size=self.config.max_request_size,
                )
            except OSError as e:
                logger.warning(f"Dropping connection from {client_address[0]}: {e}")
                client_socket.close()
                continue

            connection_handler(conn)

    def shutdown(self):
        """Stop the accept loop. Idempotent and thread-safe."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        logger.info("Socket server stopped")

