"""
Unit tests for HTTP request parsing.
"""

import pytest

from httpstatic.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/docs/guide.html"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        """Test that headers are parsed correctly."""
        request = parse_request(sample_get_request)

        assert request.host == "localhost:8080"
        assert request.user_agent == "pytest"
        assert request.headers["accept"] == "text/html"
        assert request.is_keep_alive is True

    def test_parse_query_params(self, sample_get_request: bytes):
        """Query strings are split off the path and parsed."""
        request = parse_request(sample_get_request)

        assert request.get_query("v") == "3"
        assert request.get_query("lang") == "en"
        assert request.get_query("missing") is None
        assert request.get_query("missing", "default") == "default"

    def test_parse_head(self, sample_head_request: bytes):
        request = parse_request(sample_head_request)

        assert request.method == "HEAD"
        assert request.is_head is True
        assert request.is_keep_alive is False

    def test_parse_percent_encoded_path(self):
        """Test URL-encoded path parsing."""
        raw = b"GET /my%20file.txt?q=hello%20world HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/my file.txt"
        assert request.get_query("q") == "hello world"

    def test_parse_double_slash_path_keeps_segments(self):
        """"//docs/guide.html" is a path, not a host."""
        raw = b"GET //docs/guide.html HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "//docs/guide.html"

    def test_parse_absolute_form(self):
        raw = b"GET http://example.com/app.js?x=1 HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/app.js"
        assert request.get_query("x") == "1"

    def test_parse_traversal_is_left_to_resolvers(self):
        """The parser does not judge ".."; the resolvers confine paths."""
        raw = b"GET /../../../etc/passwd HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/../../../etc/passwd"

    def test_parse_unknown_method(self):
        """Unknown methods are not implemented."""
        raw = b"BREW /pot HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 501

    def test_parse_known_non_get_method(self):
        """POST parses; rejecting it with 405 is the router's job."""
        raw = b"POST /form HTTP/1.1\r\nContent-Length: 2\r\n\r\nhi"
        request = parse_request(raw)

        assert request.method == "POST"
        assert request.body == b"hi"

    def test_parse_unsupported_version(self):
        raw = b"GET / HTTP/2.0\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 505

    def test_parse_invalid_request_line(self):
        """Test handling of malformed request line."""
        raw = b"GET\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_parse_incomplete_request(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n")

    def test_parse_missing_headers(self):
        """Test parsing request with no headers."""
        raw = b"GET / HTTP/1.1\r\n\r\n"
        request = parse_request(raw)

        assert request.method == "GET"
        assert request.path == "/"
        assert len(request.headers) == 0

    def test_parse_request_too_large(self):
        """Test that oversized requests are rejected."""
        parser = RequestParser(max_request_size=100)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 413

    def test_http_version_parsing(self):
        """Test HTTP/1.0 and HTTP/1.1 version handling."""
        # HTTP/1.0 (Connection: close by default)
        request_10 = parse_request(b"GET / HTTP/1.0\r\nHost: test\r\n\r\n")
        assert request_10.version == "HTTP/1.0"
        assert request_10.is_keep_alive is False

        request_10_ka = parse_request(b"GET / HTTP/1.0\r\nConnection: Keep-Alive\r\n\r\n")
        assert request_10_ka.is_keep_alive is True

        # HTTP/1.1 (keep-alive by default)
        request_11 = parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n\r\n")
        assert request_11.version == "HTTP/1.1"
        assert request_11.is_keep_alive is True

    def test_invalid_content_length(self):
        raw = b"GET / HTTP/1.1\r\nContent-Length: lots\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_case_insensitive_headers(self):
        """Test that header names are case-insensitive."""
        raw = b"GET / HTTP/1.1\r\nACCEPT: text/html\r\n\r\n"
        request = parse_request(raw)

        assert request.get_header("Accept") == "text/html"
        assert request.get_header("accept") == "text/html"

    def test_repeated_headers_are_joined(self):
        raw = b"GET / HTTP/1.1\r\nAccept: text/html\r\nAccept: text/css\r\n\r\n"
        request = parse_request(raw)

        assert request.get_header("accept") == "text/html, text/css"


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_get_header_default(self):
        """Test get_header with default value."""
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("X-Missing") == ""
        assert request.get_header("X-Missing", "default") == "default"

    def test_query_first_value(self):
        request = HTTPRequest(
            method="GET",
            path="/",
            query_params={"tags": ["python", "http", "server"]},
        )

        assert request.get_query("tags") == "python"

    def test_content_length_invalid_is_zero(self):
        request = HTTPRequest(method="GET", path="/", headers={"content-length": "x"})
        assert request.content_length == 0
