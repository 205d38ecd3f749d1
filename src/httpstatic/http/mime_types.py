"""
=============================================================================
MIME TYPE INFERENCE
=============================================================================

Maps a file path to the media type sent in the Content-Type header.

Both serving engines infer the type from the PATH THEY RESOLVED, not from
the URL the client asked for:

    GET /docs          →  docs/index.html   →  text/html
    GET /app.js        →  app.js            →  text/javascript
    GET /missing       →  default file      →  type of the default file

Only the final suffix matters and the lookup is case-insensitive, so
"photo.JPG" and "photo.jpg" get the same type. Unknown suffixes (and files
without a suffix) are served as application/octet-stream, which browsers
treat as an opaque download.

=============================================================================
"""

from pathlib import PurePath
from typing import Optional, Union


DEFAULT_MIME_TYPE = "application/octet-stream"


# Lowercase suffix (with the dot) → media type.
MIME_TYPES = {
    # Documents and text
    ".html": "text/html",
    ".htm": "text/html",
    ".xhtml": "application/xhtml+xml",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".map": "application/json",
    ".webmanifest": "application/manifest+json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
    ".pdf": "application/pdf",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".eot": "application/vnd.ms-fontobject",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
    ".flac": "audio/flac",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",

    # Archives and binaries
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".7z": "application/x-7z-compressed",
    ".wasm": "application/wasm",
}


def get_mime_type(path: Union[str, PurePath], default: Optional[str] = None) -> str:
    """
    Infer the media type of a file from its suffix.

    Args:
        path: File path or bare file name.
        default: Type returned for unknown suffixes
                 (application/octet-stream if not given).

    Returns:
        The media type string, e.g. "text/html".

    Examples:
        >>> get_mime_type("docs/index.html")
        'text/html'

        >>> get_mime_type("LOGO.PNG")
        'image/png'

        >>> get_mime_type("Makefile")
        'application/octet-stream'
    """
    suffix = PurePath(path).suffix.lower()
    return MIME_TYPES.get(suffix, default or DEFAULT_MIME_TYPE)
