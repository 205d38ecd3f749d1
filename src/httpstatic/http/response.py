"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses (RFC 7230) whose body is either bytes or an open
binary file that is streamed.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\r\n                        ← status line           │
    │  Content-Type: text/css\r\n                 ← headers               │
    │  Content-Length: 5123\r\n                                           │
    │  Date: Wed, 01 Jan 2026 12:00:00 GMT\r\n                            │
    │  Server: httpstatic/1.0\r\n                                         │
    │  \r\n                                       ← separator             │
    │  body.{color:#333}...                       ← body (not for HEAD)   │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BYTES VS. STREAMED BODIES
=============================================================================

    body=b"..."           in-memory (preloaded files, error messages)
                          Content-Length = len(body)

    body=<open file>      disk files, sent in chunk_size pieces
                          Content-Length = length (from fstat)

The connection writes serialize_head() and then each piece of iter_body(),
so a large file never sits in memory as a whole. Streams must be released
with close() once the response is written, whether or not that succeeded.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Iterator, Optional, Union

from .status_codes import HTTPStatus


DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass
class HTTPResponse:
    """
    An HTTP response.

        Handler returns        serialize_head()          Connection writes
        HTTPResponse   ─────►  + iter_body()    ─────►   head, chunk, chunk...

    Attributes:
        status: Status code.
        headers: Header name → value (names as written on the wire).
        body: Bytes, or a binary stream read from its current position.
        version: Protocol version for the status line.
        length: Byte count of a streamed body (ignored for bytes).
        omit_body: Send headers only (HEAD), Content-Length unchanged.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: Union[bytes, BinaryIO] = b""
    version: str = "HTTP/1.1"
    length: Optional[int] = None
    omit_body: bool = False

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK"."""
        status = HTTPStatus(self.status)
        return f"{self.version} {int(status)} {status.phrase}"

    @property
    def is_stream(self) -> bool:
        return not isinstance(self.body, (bytes, bytearray))

    @property
    def content_length(self) -> Optional[int]:
        """Body size in bytes, or None for a stream of unknown length."""
        if self.is_stream:
            return self.length
        return len(self.body)

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header; returns self for chaining."""
        self.headers[name] = value
        return self

    def serialize_head(self, server_name: str = "httpstatic/1.0") -> bytes:
        """
        Status line and headers, up to and including the blank line.

        Content-Length, Date and Server are added unless already set. A
        stream of unknown length gets "Connection: close" instead of a
        Content-Length, since closing is then the only end-of-body marker.
        """
        response_headers = dict(self.headers)

        length = self.content_length
        if "Content-Length" not in response_headers:
            if length is not None:
                response_headers["Content-Length"] = str(length)
            else:
                response_headers["Connection"] = "close"

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        return "\r\n".join(lines).encode("latin-1") + b"\r\n"

    def iter_body(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """
        The body in pieces of at most chunk_size bytes.

        Nothing for omit_body. A stream is read until EOF or until
        length bytes are out, whichever is first, so a file that grows
        while it is sent cannot overrun the announced Content-Length.
        """
        if self.omit_body:
            return

        if not self.is_stream:
            if self.body:
                yield bytes(self.body)
            return

        remaining = self.length
        while remaining is None or remaining > 0:
            size = chunk_size if remaining is None else min(chunk_size, remaining)
            chunk = self.body.read(size)
            if not chunk:
                break
            if remaining is not None:
                remaining -= len(chunk)
            yield chunk

    def to_bytes(self, server_name: str = "httpstatic/1.0") -> bytes:
        """The whole response at once (reads and closes a stream)."""
        try:
            return self.serialize_head(server_name) + b"".join(self.iter_body())
        finally:
            self.close()

    def close(self) -> None:
        """Release a streamed body. Bytes bodies need nothing."""
        if self.is_stream:
            self.body.close()


class ResponseBuilder:
    """
    Fluent builder for responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("text/css")
            .stream(handle, length=5123)
            .build())

    Every method except build() and to_bytes() returns self.
    """

    def __init__(self, server_name: str = "httpstatic/1.0"):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: Union[bytes, BinaryIO] = b""
        self._length: Optional[int] = None
        self._omit_body = False
        self._server_name = server_name

    def status(self, status: Union[HTTPStatus, int]) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set an in-memory body (str is UTF-8 encoded)."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self._length = None
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self.content_type(content_type)
        return self.body(text)

    def stream(self, handle: BinaryIO, length: Optional[int] = None) -> "ResponseBuilder":
        """
        Set a streamed body.

        Args:
            handle: Open binary file positioned at the first byte to send.
            length: Bytes to send; None means "until EOF" (closes after).
        """
        self._body = handle
        self._length = length
        return self

    def head_only(self, omit: bool = True) -> "ResponseBuilder":
        """Answer a HEAD request: same headers, no body."""
        self._omit_body = omit
        return self

    def keep_alive(self, timeout: int = 5, max_requests: int = 100) -> "ResponseBuilder":
        self._headers["Connection"] = "keep-alive"
        self._headers["Keep-Alive"] = f"timeout={timeout}, max={max_requests}"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
            length=self._length,
            omit_body=self._omit_body,
        )

    def to_bytes(self) -> bytes:
        """build() and serialize in one step."""
        return self.build().to_bytes(self._server_name)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231), always GMT.

    Example: Wed, 01 Jan 2026 12:00:00 GMT
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# Plain-text error responses for the server and router:
#
#     return not_found()
#     return method_not_allowed(["GET", "HEAD"])
#
# =============================================================================

def error_response(status: Union[HTTPStatus, int], message: Optional[str] = None) -> HTTPResponse:
    """A text/plain response whose body is the message (or the phrase)."""
    status = HTTPStatus(status)
    return ResponseBuilder().status(status).text(message or status.phrase).build()


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return error_response(HTTPStatus.BAD_REQUEST, message)


def not_found(message: str = "Not Found") -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """
    405 with the Allow header (required by RFC 7231).

    Args:
        allowed_methods: Methods the path does accept.
    """
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .text("Method Not Allowed")
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500. Keep the message generic; details go to the log."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def service_unavailable(message: str = "Server busy, please retry") -> HTTPResponse:
    return (ResponseBuilder()
        .status(HTTPStatus.SERVICE_UNAVAILABLE)
        .header("Retry-After", "1")
        .text(message)
        .build())
