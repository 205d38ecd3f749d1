"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Callable, Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpstatic import HTTPServer, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /docs/guide.html?v=3&lang=en HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_head_request() -> bytes:
    """Sample HTTP HEAD request."""
    return (
        b"HEAD /app.js HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Connection: close\r\n"
        b"\r\n"
    )


# ─────────────────────────────────────────────────────────────────────────────
# SITE TREES
# ─────────────────────────────────────────────────────────────────────────────

SITE_FILES = {
    "index.html": b"<h1>home</h1>",
    "app.js": b"console.log('app');",
    "style.css": b"body { color: #333; }",
    "docs/index.html": b"<h1>docs</h1>",
    "docs/guide.html": b"<h1>guide</h1>",
    "img/logo.png": b"\x89PNG\r\n\x1a\n" + bytes(range(256)),
    "data/report": b"no extension",
}


@pytest.fixture
def site_files() -> dict:
    """Relative path → contents of every file in the site fixture."""
    return dict(SITE_FILES)


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """
    A small site under tmp_path/site, plus two files next to it:

        tmp_path/
        ├── fallback.html        ← used as the default resource
        ├── secret.txt           ← outside the root, must never be served
        └── site/
            ├── index.html
            ├── app.js
            ├── style.css
            ├── docs/{index,guide}.html
            ├── img/logo.png
            └── data/report
    """
    root = tmp_path / "site"
    for relative, data in SITE_FILES.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    (tmp_path / "fallback.html").write_bytes(b"<h1>fallback</h1>")
    (tmp_path / "secret.txt").write_bytes(b"top secret")
    return root


@pytest.fixture
def fallback(site: Path) -> Path:
    return site.parent / "fallback.html"


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


# ─────────────────────────────────────────────────────────────────────────────
# RUNNING SERVERS
# ─────────────────────────────────────────────────────────────────────────────

class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def host(self) -> str:
        return self.server.address[0]

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.stop()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


def make_config(site: Path, fallback: Path, **overrides) -> ServerConfig:
    """Config bound to an OS-chosen port on 127.0.0.1."""
    settings = dict(
        listen="127.0.0.1:0",
        root=str(site),
        default=str(fallback),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )
    settings.update(overrides)
    return ServerConfig(**settings)


@pytest.fixture(params=["disk", "memory"])
def test_server(request, site: Path, fallback: Path) -> Generator[TestServer, None, None]:
    """A running server, once per serving mode."""
    config = make_config(site, fallback, in_memory=request.param == "memory")

    test_srv = TestServer(HTTPServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def server_factory(site: Path, fallback: Path) -> Generator[Callable[..., TestServer], None, None]:
    """
    Start servers with custom settings; all are stopped afterwards.

        srv = server_factory(in_memory=True, default=None)
    """
    started = []

    def start(**overrides) -> TestServer:
        test_srv = TestServer(HTTPServer(make_config(site, fallback, **overrides)))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield start

    for test_srv in started:
        test_srv.stop()
