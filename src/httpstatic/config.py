"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything the server needs to know, in one dataclass, loaded once at
startup and read-only afterwards.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   1. Command-line flags      python -m httpstatic --root ./public   │
    │   2. Environment variables   HTTP_ROOT=./public (from_env only)     │
    │   3. Defaults below                                                  │
    └─────────────────────────────────────────────────────────────────────┘

The CLI builds a ServerConfig from flags. from_env() exists for embedding
the server in other programs; the serving engines never read the
environment themselves.

=============================================================================
FAIL FAST
=============================================================================

validate() runs before anything is bound or loaded. A bad listen address or
half-configured TLS stops the process with a clear message instead of a
server that starts and then misbehaves.

=============================================================================
"""

import ipaddress
import os
from dataclasses import dataclass
from typing import Optional, Tuple


DEFAULT_LISTEN = "[::1]:8080"


def parse_listen_address(address: str) -> Tuple[str, int]:
    """
    Split a listen address into (host, port).

    IPv6 hosts are written in brackets, like in a URL.

    Args:
        address: "127.0.0.1:8080", "0.0.0.0:80" or "[::1]:8080".

    Returns:
        (host, port) with brackets removed, e.g. ("::1", 8080).

    Raises:
        ValueError: Not an IP literal with a port in 0-65535.

    Examples:
        >>> parse_listen_address("[::1]:8080")
        ('::1', 8080)
        >>> parse_listen_address("127.0.0.1:3000")
        ('127.0.0.1', 3000)
    """
    host, sep, port_text = address.rpartition(":")
    if not sep or not host or not port_text.isdigit():
        raise ValueError(f"Invalid address: {address!r} (expected HOST:PORT)")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
        if ipaddress.ip_address(host).version != 6:
            raise ValueError(f"Invalid address: {address!r} (brackets are for IPv6)")
    else:
        try:
            version = ipaddress.ip_address(host).version
        except ValueError:
            raise ValueError(f"Invalid address: {address!r} (host must be an IP address)") from None
        if version != 4:
            raise ValueError(f"Invalid address: {address!r} (write IPv6 as [host]:port)")

    port = int(port_text)
    if not 0 <= port < 65536:
        raise ValueError(f"Invalid port: {port}. Must be 0-65535.")

    return host, port


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     listen, backlog, buffer_size, timeout
    HTTP        keep_alive, keep_alive_timeout, max_request_size
    THREADS     min_workers, max_workers
    SERVING     root, index, default, in_memory, chunk_size
    TLS         tls_key, tls_cert
    LOGGING     log_level, log_format

    =========================================================================
    EXAMPLES
    =========================================================================

        # Serve ./public from disk on localhost
        ServerConfig(listen="127.0.0.1:8080", root="./public")

        # Single-page app: unknown paths get the app shell, all in memory
        ServerConfig(root="dist", default="dist/index.html", in_memory=True)

        # HTTPS
        ServerConfig(listen="[::]:8443", tls_key="key.pem", tls_cert="cert.pem")

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    listen: str = DEFAULT_LISTEN
    """Bind address, HOST:PORT with IPv6 hosts in brackets."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Bytes read from a connection at once."""

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds (also bounds the TLS handshake)."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024  # GET requests carry no body

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads created at startup (also the preload fan-out)."""

    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # SERVING
    # ─────────────────────────────────────────────────────────────────────

    root: str = "."
    """Directory whose contents are served."""

    index: str = "index.html"
    """File name served for a directory path."""

    default: Optional[str] = "index.html"
    """
    File served when nothing else matches, relative to the working
    directory (NOT to root). None means a plain 404.
    """

    in_memory: bool = False
    """Preload the whole root at startup instead of reading per request."""

    chunk_size: int = 64 * 1024
    """Bytes per write when streaming a file from disk."""

    # ─────────────────────────────────────────────────────────────────────
    # TLS
    # ─────────────────────────────────────────────────────────────────────

    tls_key: Optional[str] = None
    """PEM private key. Requires tls_cert."""

    tls_cert: Optional[str] = None
    """PEM certificate chain. Requires tls_key."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' or 'json'."""

    server_name: str = "httpstatic/1.0"

    @property
    def host(self) -> str:
        return parse_listen_address(self.listen)[0]

    @property
    def port(self) -> int:
        return parse_listen_address(self.listen)[1]

    @property
    def tls_enabled(self) -> bool:
        return bool(self.tls_key and self.tls_cert)

    @property
    def scheme(self) -> str:
        return "https" if self.tls_enabled else "http"

    @property
    def url(self) -> str:
        """Base URL for log lines, e.g. http://[::1]:8080."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_LISTEN     Bind address (default: [::1]:8080)
        HTTP_ROOT       Served directory (default: .)
        HTTP_INDEX      Directory index file (default: index.html)
        HTTP_DEFAULT    Fallback file (default: index.html, "" disables)
        HTTP_IN_MEMORY  "1"/"true"/"yes" to preload (default: off)
        HTTP_TLS_KEY    PEM private key
        HTTP_TLS_CERT   PEM certificate chain
        HTTP_WORKERS    Minimum worker threads, max is twice that (default: 4)
        HTTP_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================
        """
        default = os.getenv("HTTP_DEFAULT", "index.html")
        workers = int(os.getenv("HTTP_WORKERS", "4"))

        return cls(
            listen=os.getenv("HTTP_LISTEN", DEFAULT_LISTEN),
            root=os.getenv("HTTP_ROOT", "."),
            index=os.getenv("HTTP_INDEX", "index.html"),
            default=default or None,
            in_memory=os.getenv("HTTP_IN_MEMORY", "").lower() in ("1", "true", "yes"),
            tls_key=os.getenv("HTTP_TLS_KEY"),
            tls_cert=os.getenv("HTTP_TLS_CERT"),
            min_workers=workers,
            max_workers=workers * 2,
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid setting.
        """
        parse_listen_address(self.listen)

        if bool(self.tls_key) != bool(self.tls_cert):
            raise ValueError("tls_key and tls_cert must be given together")

        if not self.index or "/" in self.index:
            raise ValueError(f"index must be a plain file name, got {self.index!r}")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")
