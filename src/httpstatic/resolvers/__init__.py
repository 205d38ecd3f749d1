"""
=============================================================================
RESOLVERS
=============================================================================

A resolver maps a request path to content:

    resolve(request_path) -> ResolvedContent(body, mime, status, length)

Two engines implement it:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ DiskResolver                                                        │
    │   • stat/open per request, streams the file                        │
    │   • always serves what is on disk right now                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │ MemoryResolver                                                      │
    │   • walks the root once at startup, keeps every file in memory     │
    │   • lookups are pure dict hits; changes on disk are not picked up  │
    └─────────────────────────────────────────────────────────────────────┘

Both follow the same fallback chain:

    exact file → directory index → default resource → 404 Not Found

The engine is chosen once at startup (ResolverKind) and the HTTP layer only
ever calls resolve(). The two classes share no base class; they agree on
the method and on ResolvedContent.

=============================================================================
"""

import logging
from enum import Enum
from typing import Union

from ..config import ServerConfig
from .content import NOT_FOUND, ResolvedContent, normalize_request_path
from .disk import DiskResolver
from .memory import CacheTable, MemoryResolver, build_cache_table


logger = logging.getLogger(__name__)


Resolver = Union[DiskResolver, MemoryResolver]


class ResolverKind(Enum):
    """Which serving engine to run."""
    DISK = "disk"
    MEMORY = "memory"

    @classmethod
    def from_config(cls, config: ServerConfig) -> "ResolverKind":
        return cls.MEMORY if config.in_memory else cls.DISK


def create_resolver(config: ServerConfig) -> Resolver:
    """
    Build the resolver selected by the configuration.

    For the memory engine this performs the full preload, so it can take a
    while and any OSError it raises is a fatal startup error.
    """
    kind = ResolverKind.from_config(config)
    logger.debug(f"Creating {kind.value} resolver for {config.root}")

    if kind is ResolverKind.MEMORY:
        return MemoryResolver.load(
            config.root,
            index=config.index,
            default=config.default,
            workers=config.min_workers,
        )

    return DiskResolver(config.root, index=config.index, default=config.default)


__all__ = [
    "Resolver",
    "ResolverKind",
    "create_resolver",
    "DiskResolver",
    "MemoryResolver",
    "CacheTable",
    "build_cache_table",
    "ResolvedContent",
    "NOT_FOUND",
    "normalize_request_path",
]
