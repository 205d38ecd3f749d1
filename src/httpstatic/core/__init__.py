"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the HTTP layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SOCKET SERVER   binds the listen address, accepts, wraps in TLS    │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ new connections
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  THREAD POOL     one task per connection (and preload fan-out)      │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  CONNECTION      handshake, buffered request reads, writes, close   │
    │     └── TRANSPORT  one stream API for plain TCP and TLS             │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool
from .transport import Transport
from .tls import create_tls_context, tls_context_from_config

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
    "Transport",
    "create_tls_context",
    "tls_context_from_config",
]
