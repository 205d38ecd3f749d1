"""
=============================================================================
STATIC HTTP SERVER
=============================================================================

Ties the components together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐         │
    │    │ SocketServer │    │  ThreadPool  │    │    Router    │         │
    │    │  (+ TLS)     │    │              │    │ GET/HEAD /*  │         │
    │    └──────┬───────┘    └──────┬───────┘    └──────┬───────┘         │
    │           ▼                   ▼                   ▼                 │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐         │
    │    │  Connection  │    │ keep-alive   │    │StaticHandler │         │
    │    │  Transport   │    │    loop      │    │  → Resolver  │         │
    │    └──────────────┘    └──────────────┘    └──────────────┘         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
STARTUP ORDER
=============================================================================

Everything that can fail on bad input happens BEFORE the port is bound:

    1. validate config            ValueError
    2. build the resolver         OSError (memory mode: the whole preload)
    3. load TLS key/certificate   OSError / ssl.SSLError
    4. bind + listen              OSError
    5. "Listening on https://[::1]:8080"

=============================================================================
REQUEST LIFECYCLE (worker thread)
=============================================================================

    1. TLS handshake (failures: WARNING, drop, listener keeps going)
    2. read request → parse → middleware → router → StaticHandler
    3. write head, then the body chunk by chunk (nothing for HEAD)
    4. close the body stream, whatever happened while writing
    5. keep-alive: back to 2, else close

=============================================================================
"""

import logging
import threading
from typing import Iterator, Optional, Callable

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool, tls_context_from_config
from .handlers import StaticHandler
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, Router,
    error_response, internal_error, service_unavailable,
)
from .middleware import MiddlewarePipeline, Middleware, LoggingMiddleware
from .resolvers import MemoryResolver, Resolver, create_resolver


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Static content server.

    Usage:
        server = HTTPServer(ServerConfig(root="./public", in_memory=True))
        server.run()        # blocks until SIGINT/SIGTERM or stop()

    Embedding (tests, other programs):
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5.0)
        ... server.url ...
        server.stop()

    Args:
        config: Server configuration (defaults if omitted).
        resolver: A ready resolver. When omitted, one is built from the
            config at startup.
    """

    def __init__(self, config: Optional[ServerConfig] = None, resolver: Optional[Resolver] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._resolver = resolver
        self._socket_server: Optional[SocketServer] = None

        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._router = Router()

        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))

        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._running = False
        self._ready = threading.Event()

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware inside the access log. Call before run()."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def resolver(self) -> Optional[Resolver]:
        return self._resolver

    @property
    def address(self) -> tuple:
        """Bound (host, port) once listening, configured one before."""
        if self._socket_server is not None:
            return self._socket_server.address
        return self.config.host, self.config.port

    @property
    def url(self) -> str:
        """Base URL of the bound socket, e.g. https://[::1]:8443."""
        host, port = self.address
        if ":" in host:
            host = f"[{host}]"
        return f"{self.config.scheme}://{host}:{port}"

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def setup(self):
        """
        Build the resolver, load TLS material, bind.

        Idempotent; run() calls it. Raises on any startup failure, before
        or at bind time.
        """
        if self._socket_server is not None:
            return

        if self._resolver is None:
            self._resolver = create_resolver(self.config)

        ssl_context = tls_context_from_config(self.config)

        static = StaticHandler(self._resolver)
        self._router.route("/", methods=["GET", "HEAD"], name="root")(static.handle)
        self._router.route("/*path", methods=["GET", "HEAD"], name="static")(static.handle)
        self._handler = self._middleware.wrap(self._router.handle)

        socket_server = SocketServer(self.config, ssl_context=ssl_context)
        socket_server.bind()
        self._socket_server = socket_server

    def run(self):
        """Start serving (blocking)."""
        self._setup_logging()
        self.setup()

        self._thread_pool.start()
        self._running = True

        self._print_startup_line()
        logger.info(
            f"Serving {self.config.root} with {self.config.min_workers}-"
            f"{self.config.max_workers} workers"
        )
        self._ready.set()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self):
        """Ask a running server to stop (thread-safe)."""
        if self._socket_server is not None:
            self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until run() is accepting connections."""
        return self._ready.wait(timeout)

    def _print_startup_line(self):
        # An injected resolver decides the mode, not the in_memory flag
        if isinstance(self._resolver, MemoryResolver):
            print(f"Listening in memory on {self.url}", flush=True)
        else:
            print(f"Listening on {self.url}", flush=True)

    def _setup_logging(self):
        """Configure logging from the config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("httpstatic").setLevel(level)

    def _shutdown(self):
        """Stop accepting, let in-flight connections finish, stop workers."""
        logger.info("Shutting down server...")
        self._running = False
        self._ready.clear()

        self._thread_pool.shutdown(wait=True, timeout=self.config.keep_alive_timeout + 5.0)

        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand a new connection to the pool (accept thread, never blocks)."""
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            block=False,
        )

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            if not conn.is_tls:
                # A TLS client would need a handshake first; just drop it
                conn.send_response(service_unavailable().to_bytes(self.config.server_name))
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        The keep-alive loop of one connection (worker thread).

        ┌─────────────────────────────────────────────────────────────────┐
        │   handshake ── fail ──► drop                                    │
        │       │                                                         │
        │       ▼                                                         │
        │   read ──► parse ──► handler ──► write ──► keep-alive? ─┐       │
        │     ▲                                                   │       │
        │     └───────────────────────────────────────────────────┘       │
        └─────────────────────────────────────────────────────────────────┘
        """
        with conn:
            if not conn.handshake():
                return

            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
                    break
                except ValueError as e:
                    logger.warning(f"[{conn.id}] {e}")
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE)
                    break
                except OSError as e:
                    logger.debug(f"[{conn.id}] Read failed: {e}")
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Bad request: {e}")
                    self._send_error(conn, e.status_code, str(e))
                    break

                conn.state = ConnectionState.PROCESSING

                try:
                    response = self._handler(request)
                except Exception as e:
                    logger.exception(f"[{conn.id}] Handler error: {e}")
                    response = internal_error()

                keep_alive = (
                    request.is_keep_alive
                    and self.config.keep_alive
                    and response.content_length is not None
                )

                try:
                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault(
                            "Keep-Alive",
                            f"timeout={int(self.config.keep_alive_timeout)}"
                        )
                    else:
                        response.headers["Connection"] = "close"

                    sent = conn.send_chunks(self._iter_response(response))
                finally:
                    response.close()

                if not sent or not keep_alive:
                    break

                conn.set_keep_alive()

    def _iter_response(self, response: HTTPResponse) -> Iterator[bytes]:
        yield response.serialize_head(self.config.server_name)
        yield from response.iter_body(self.config.chunk_size)

    def _send_error(self, conn: Connection, status: int, message: Optional[str] = None):
        """Plain-text error for failures before a handler ran; closes after."""
        response = error_response(status, message)
        response.headers["Connection"] = "close"
        conn.send_response(response.to_bytes(self.config.server_name))


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """Factory for a server instance."""
    return HTTPServer(config)
