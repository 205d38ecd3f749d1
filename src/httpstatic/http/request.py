"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into HTTPRequest objects (RFC 7230).

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /css/site.css?v=3 HTTP/1.1\r\n        ← request line           │
    │  Host: localhost:8080\r\n                  ← headers                │
    │  Connection: keep-alive\r\n                                         │
    │  \r\n                                      ← end of headers         │
    └─────────────────────────────────────────────────────────────────────┘

                                │ RequestParser.parse()
                                ▼

    HTTPRequest(method="GET", path="/css/site.css",
                query_params={"v": ["3"]}, headers={"host": ..., ...})

=============================================================================
WHAT THE PARSER DOES NOT DO
=============================================================================

The path is percent-decoded but not otherwise judged. "/../etc/passwd"
parses fine; confining paths to the served root is the resolvers' job
(normalize_request_path), which turns escapes into the normal fallback
response rather than a 400.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import parse_qs, urlparse, unquote
import re


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the status code to answer with:

        400 Bad Request                 malformed syntax
        413 Payload Too Large           over the size limit
        501 Not Implemented             unknown method
        505 HTTP Version Not Supported  not HTTP/1.0 or HTTP/1.1
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         "GET", "HEAD", ...
        path:           Percent-decoded path without the query string
        version:        "HTTP/1.0" or "HTTP/1.1"
        headers:        Lowercase header names → values
        query_params:   "?a=1&a=2" → {"a": ["1", "2"]}
        body:           Raw body bytes (static requests normally have none)
        path_params:    Values captured by the router (":name", "*name")
        client_address: The peer's address tuple
        raw:            The unparsed request bytes
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: tuple = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    @property
    def content_length(self) -> int:
        """Content-Length as an int, 0 if missing or invalid."""
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_head(self) -> bool:
        """HEAD requests get GET's headers without a body."""
        return self.method == "HEAD"

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the connection stays open after this request.

            HTTP/1.1   open unless "Connection: close"
            HTTP/1.0   closed unless "Connection: keep-alive"
        """
        connection = self.headers.get("connection", "").lower()

        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        values = self.query_params.get(name, [])
        return values[0] if values else default


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    Usage:
        parser = RequestParser(max_request_size=1024 * 1024)
        request = parser.parse(data, client_address=("127.0.0.1", 51234))
    """

    # Methods we recognise. Which of them a path accepts is the router's
    # business (405), anything else is 501.
    VALID_METHODS = {
        "GET",
        "HEAD",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "OPTIONS",
        "TRACE",
        "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(self, data: bytes, client_address: tuple = ("", 0)) -> HTTPRequest:
        """
        Parse one complete request.

        1. Size check
        2. Split headers and body at \\r\\n\\r\\n
        3. Request line, then headers
        4. Body cut to Content-Length

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length: {headers['content-length']!r}") from None

        if content_length < 0:
            raise HTTPParseError(f"Invalid Content-Length: {content_length}")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, Dict[str, list[str]], str]:
        """
        METHOD SP REQUEST-URI SP HTTP-VERSION

        Returns:
            (method, path, query_params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=501)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        if uri.startswith("/"):
            # Origin-form. Not urlparse: "//x/y" would lose "x" as a netloc.
            raw_path, _, query = uri.partition("?")
        else:
            # Absolute-form ("http://host/x"); "*" and the like end up as "/"
            parsed = urlparse(uri)
            raw_path, query = parsed.path, parsed.query

        path = unquote(raw_path) or "/"
        if not path.startswith("/"):
            path = "/" + path
        query_params = parse_qs(query, keep_blank_values=True)

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict.

        - Names are lowercased ("Content-Type" == "content-type").
        - Lines starting with whitespace continue the previous header.
        - Repeated headers are joined with ", ".
        - Malformed lines are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple = ("", 0),
    max_size: int = 1024 * 1024,
) -> HTTPRequest:
    """Parse a request with a one-off RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
