"""
=============================================================================
RESOLVED CONTENT & PATH NORMALIZATION
=============================================================================

The pieces shared by both serving engines:

    ResolvedContent           What every resolver returns
    NOT_FOUND                 The synthetic 404 used when nothing matches
    normalize_request_path    URL path → key relative to the served root

=============================================================================
THE KEY SPACE
=============================================================================

Both resolvers agree on ONE way to turn a request path into a location
below the root directory:

    Request path              Key
    ─────────────             ─────────────
    /                         ""              (the root itself)
    /docs                     "docs"
    /docs/                    "docs"
    //docs//guide.html        "docs/guide.html"
    /docs/./guide.html        "docs/guide.html"
    /docs/../app.js           "app.js"
    /../../etc/passwd         None            (escapes the root!)

A None key is a lookup failure. It flows into the normal fallback chain
(default resource, then 404) and is never handed to the filesystem.

The normalization is purely lexical. Symbolic links placed inside the root
by the operator are trusted and followed by both engines alike.

=============================================================================
"""

import posixpath
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional, Union


# Body read size for stream-backed content (64 KB).
DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class ResolvedContent:
    """
    The result of resolving a request path.

    The body is either:

    - bytes: preloaded content (memory mode, synthetic 404). Immutable, so
      one instance can be shared by any number of concurrent responses.
    - a binary file object: an open handle (disk mode). The response owns
      it and MUST call close() once the body was sent or abandoned.

    Attributes:
        body: Content bytes or an open binary stream.
        mime: Media type for the Content-Type header.
        status: HTTP status code (200 or 404).
        length: Body size in bytes (computed for bytes bodies).
    """

    body: Union[bytes, BinaryIO]
    mime: str
    status: int = 200
    length: Optional[int] = None

    def __post_init__(self):
        if self.length is None and isinstance(self.body, bytes):
            # frozen=True blocks normal assignment
            object.__setattr__(self, "length", len(self.body))

    def __repr__(self) -> str:
        return f"ResolvedContent(type: {self.mime}, len: {self.length}, status: {self.status})"

    @property
    def is_stream(self) -> bool:
        """True when the body is an open file handle."""
        return not isinstance(self.body, bytes)

    def chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """
        Yield the body in chunks.

        Bytes bodies are yielded whole; streams are read until EOF.
        """
        if not self.is_stream:
            if self.body:
                yield self.body
            return

        while True:
            chunk = self.body.read(chunk_size)
            if not chunk:
                return
            yield chunk

    def read(self) -> bytes:
        """Read the whole body and release the handle."""
        try:
            return b"".join(self.chunks())
        finally:
            self.close()

    def close(self) -> None:
        """Release the file handle (no-op for bytes bodies)."""
        if self.is_stream:
            self.body.close()


NOT_FOUND = ResolvedContent(body=b"Not Found", mime="text/plain", status=404)


def normalize_request_path(request_path: str) -> Optional[str]:
    """
    Normalize a URL path into a key relative to the served root.

    Args:
        request_path: Decoded request path, e.g. "/docs/".

    Returns:
        The "/"-separated relative key ("" for the root), or None if the
        path escapes the root or cannot name a file.

    Examples:
        >>> normalize_request_path("/")
        ''
        >>> normalize_request_path("/docs/")
        'docs'
        >>> normalize_request_path("/a/../../secret") is None
        True
    """
    if "\x00" in request_path:
        return None

    # Backslashes are separators on Windows; never let them smuggle "..".
    relative = request_path.replace("\\", "/").strip("/")
    if not relative:
        return ""

    normalized = posixpath.normpath(relative)
    if normalized == ".":
        return ""
    if normalized == ".." or normalized.startswith("../") or normalized.startswith("/"):
        return None

    return normalized
