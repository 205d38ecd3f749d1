"""
=============================================================================
DISK RESOLVER
=============================================================================

Serves every request straight from the filesystem. Nothing is cached: a file
edited on disk is served in its new form on the very next request.

=============================================================================
THE FALLBACK CHAIN
=============================================================================

    GET /docs
        │
        ▼
    normalize "/docs" → "docs"  ──── escapes root? ─────────────┐
        │                                                        │
        ▼                                                        │
    stat root/docs                                               │
        ├── regular file → open it ─────────────► 200 (its type) │
        ├── directory    → open root/docs/index.html             │
        │                      ├── ok ──────────► 200 (html)     │
        │                      └── fails ──┐                     │
        └── missing / error ───────────────┤                     │
                                           ▼                     ▼
                                  open the default file  ◄───────┘
                                       ├── ok ──────────► 200 (its type)
                                       └── fails ───────► 404 Not Found

At most three open attempts happen per request and they run one after the
other. A failed attempt is final for that step; nothing is retried.

=============================================================================
ERROR POLICY
=============================================================================

Filesystem errors (missing file, permission denied, I/O errors) never turn
into a 5xx. They are logged at DEBUG and the chain moves on. A broken site
therefore degrades to the default page or a 404, never to a server error.

=============================================================================
"""

import logging
import os
import stat
from pathlib import Path
from typing import Optional, Union

from ..http.mime_types import get_mime_type
from .content import NOT_FOUND, ResolvedContent, normalize_request_path


logger = logging.getLogger(__name__)


class DiskResolver:
    """
    Resolve request paths with on-demand filesystem lookups.

    Holds only configuration, so one instance is safely shared by every
    worker thread.

    Usage:
        resolver = DiskResolver("./public", index="index.html",
                                default="./public/404.html")
        content = resolver.resolve("/docs/")
        try:
            send(content.status, content.mime, content.chunks())
        finally:
            content.close()
    """

    def __init__(
        self,
        root: Union[str, Path],
        index: str = "index.html",
        default: Optional[Union[str, Path]] = "index.html",
    ):
        """
        Args:
            root: Directory to serve.
            index: File name served for a directory path.
            default: File served when nothing matches, relative to the
                     working directory. None disables it.
        """
        self.root = Path(root)
        self.index = index
        self.default = Path(default) if default is not None else None

    def resolve(self, request_path: str) -> ResolvedContent:
        """
        Map a request path to content.

        Args:
            request_path: Decoded URL path ("/", "/docs/", "/app.js").

        Returns:
            Stream-backed content (status 200) for a hit or the default
            resource, otherwise NOT_FOUND. Never raises for I/O errors.
        """
        relative = normalize_request_path(request_path)

        if relative is None:
            logger.warning(f"Rejected path outside root: {request_path!r}")
        else:
            content = self._resolve_candidate(self.root / relative if relative else self.root)
            if content is not None:
                return content

        return self._resolve_default()

    def _resolve_candidate(self, candidate: Path) -> Optional[ResolvedContent]:
        """Try the candidate path, then its directory index."""
        try:
            mode = candidate.stat().st_mode
        except (OSError, ValueError) as e:
            logger.debug(f"Miss {candidate}: {e}")
            return None

        if stat.S_ISDIR(mode):
            return self._open(candidate / self.index)

        return self._open(candidate)

    def _resolve_default(self) -> ResolvedContent:
        if self.default is not None:
            content = self._open(self.default)
            if content is not None:
                return content
        return NOT_FOUND

    def _open(self, path: Path) -> Optional[ResolvedContent]:
        """
        Open a regular file for streaming.

        The path is checked before opening (opening a FIFO would block) and
        the handle again after (fstat), so a file swapped in between is
        still refused.
        """
        try:
            if not stat.S_ISREG(path.stat().st_mode):
                logger.debug(f"Miss {path}: not a regular file")
                return None
            handle = open(path, "rb")
        except (OSError, ValueError) as e:
            logger.debug(f"Miss {path}: {e}")
            return None

        try:
            info = os.fstat(handle.fileno())
        except OSError as e:
            handle.close()
            logger.debug(f"Miss {path}: {e}")
            return None

        if not stat.S_ISREG(info.st_mode):
            handle.close()
            logger.debug(f"Miss {path}: not a regular file")
            return None

        return ResolvedContent(
            body=handle,
            mime=get_mime_type(path),
            status=200,
            length=info.st_size,
        )
