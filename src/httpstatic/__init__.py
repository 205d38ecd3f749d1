"""
=============================================================================
HTTPSTATIC - Static Content HTTP/HTTPS Server
=============================================================================

Serves one directory over HTTP/1.1, optionally TLS-terminated, in one of two
modes:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  DISK MODE (default)                                                │
    │     every request stats/opens the file, bodies are streamed         │
    │                                                                     │
    │  MEMORY MODE (--in_memory)                                          │
    │     the whole root is read once at startup, requests are           │
    │     dictionary lookups and never touch the disk                     │
    └─────────────────────────────────────────────────────────────────────┘

Both modes resolve a path the same way:

    exact file → directory index → default resource → 404 Not Found

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httpstatic/
    ├── __main__.py          # CLI (python -m httpstatic)
    ├── server.py            # HTTPServer: wiring, keep-alive loop
    ├── config.py            # ServerConfig, listen address parsing
    ├── core/                # sockets, TLS, transport, threads
    ├── http/                # parser, response, router, status, MIME
    ├── middleware/          # pipeline + access logging
    ├── handlers/            # StaticHandler (resolver → response)
    └── resolvers/           # DiskResolver, MemoryResolver, path rules

=============================================================================
QUICK START
=============================================================================

    from httpstatic import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(listen="127.0.0.1:8080", root="public"))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig, parse_listen_address
from .resolvers import (
    DiskResolver,
    MemoryResolver,
    ResolvedContent,
    ResolverKind,
    create_resolver,
)

__all__ = [
    "HTTPServer",
    "create_app",
    "ServerConfig",
    "parse_listen_address",
    "DiskResolver",
    "MemoryResolver",
    "ResolvedContent",
    "ResolverKind",
    "create_resolver",
    "__version__",
]
