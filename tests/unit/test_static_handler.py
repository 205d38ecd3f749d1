"""
Unit tests for the static content handler.
"""

from pathlib import Path

import pytest

from httpstatic.handlers import StaticHandler
from httpstatic.http import HTTPRequest, HTTPStatus
from httpstatic.resolvers import DiskResolver, MemoryResolver


@pytest.fixture(params=["disk", "memory"])
def handler(request, site: Path) -> StaticHandler:
    if request.param == "memory":
        return StaticHandler(MemoryResolver.load(site, default=None))
    return StaticHandler(DiskResolver(site, default=None))


def get(handler: StaticHandler, path: str, method: str = "GET"):
    return handler.handle(HTTPRequest(method=method, path=path))


class TestStaticHandler:
    """Tests for StaticHandler.handle."""

    def test_hit(self, handler):
        response = get(handler, "/style.css")
        try:
            assert response.status == HTTPStatus.OK
            assert response.headers["Content-Type"] == "text/css"
            assert response.content_length == len(b"body { color: #333; }")
            assert b"".join(response.iter_body()) == b"body { color: #333; }"
        finally:
            response.close()

    def test_miss(self, handler):
        response = get(handler, "/missing.js")

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.headers["Content-Type"] == "text/plain"
        assert b"".join(response.iter_body()) == b"Not Found"

    def test_head_keeps_headers(self, handler):
        response = get(handler, "/app.js", method="HEAD")
        try:
            head = response.serialize_head()

            assert response.omit_body is True
            assert b"Content-Length: 19\r\n" in head
            assert b"Content-Type: text/javascript\r\n" in head
            assert list(response.iter_body()) == []
        finally:
            response.close()

    def test_large_file_is_chunked(self, site: Path):
        data = bytes(range(256)) * 1024
        (site / "big.bin").write_bytes(data)
        response = get(StaticHandler(DiskResolver(site, default=None)), "/big.bin")
        try:
            chunks = list(response.iter_body(chunk_size=64 * 1024))

            assert response.is_stream
            assert len(chunks) == 4
            assert b"".join(chunks) == data
        finally:
            response.close()

    def test_disk_stream_is_closed(self, site: Path):
        response = get(StaticHandler(DiskResolver(site, default=None)), "/app.js")
        handle = response.body

        response.close()
        assert handle.closed

    def test_repr(self, site: Path):
        handler = StaticHandler(DiskResolver(site))
        assert repr(handler).startswith("StaticHandler(")
