"""
Unit tests for the transport adapter and connection I/O.
"""

import logging
import socket
import ssl
import threading
from typing import Generator, Tuple

import pytest

from httpstatic.core import Connection, ConnectionState, Transport


@pytest.fixture
def socket_pair() -> Generator[Tuple[socket.socket, socket.socket], None, None]:
    """(server side, client side) of a connected stream pair."""
    server_side, client_side = socket.socketpair()
    server_side.settimeout(5.0)
    client_side.settimeout(5.0)

    yield server_side, client_side

    server_side.close()
    client_side.close()


@pytest.fixture
def tcp_pair() -> Generator[Tuple[socket.socket, socket.socket], None, None]:
    """(accepted, client) over real loopback TCP."""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)

    client = socket.create_connection(listener.getsockname(), timeout=5.0)
    accepted, _ = listener.accept()
    accepted.settimeout(5.0)
    listener.close()

    yield accepted, client

    accepted.close()
    client.close()


class TestTransport:
    """Tests for Transport over plain sockets."""

    def test_read_write(self, socket_pair):
        server_side, client_side = socket_pair
        transport = Transport(server_side)

        client_side.sendall(b"hello")
        buffer = bytearray(16)
        count = transport.read(buffer)

        assert bytes(buffer[:count]) == b"hello"

        transport.write_all(b"world")
        assert client_side.recv(16) == b"world"

    def test_write_returns_count(self, socket_pair):
        server_side, client_side = socket_pair
        transport = Transport(server_side)

        assert transport.write(b"abc") == 3
        assert client_side.recv(16) == b"abc"

    def test_read_end_of_stream(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.shutdown(socket.SHUT_WR)

        assert Transport(server_side).read(bytearray(16)) == 0

    def test_flush_is_noop(self, socket_pair):
        Transport(socket_pair[0]).flush()

    def test_plain_handshake_succeeds(self, socket_pair):
        transport = Transport(socket_pair[0])

        assert transport.is_tls is False
        assert transport.handshake() is True

    def test_shutdown_half_closes(self, socket_pair):
        server_side, client_side = socket_pair
        transport = Transport(server_side)

        transport.write_all(b"bye")
        transport.shutdown()

        assert client_side.recv(16) == b"bye"
        assert client_side.recv(16) == b""

    def test_peer_address(self, tcp_pair):
        accepted, client = tcp_pair
        transport = Transport(accepted)

        assert transport.peer_address() == client.getsockname()

        transport.close()
        assert transport.peer_address() is None


class TestTLSHandshake:
    """A failed handshake is reported, never raised."""

    def test_plaintext_client_fails_handshake(self, tcp_pair, caplog):
        accepted, client = tcp_pair
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        wrapped = context.wrap_socket(accepted, server_side=True, do_handshake_on_connect=False)

        client.sendall(b"GET / HTTP/1.1\r\nHost: x\r\n\r\n")
        transport = Transport(wrapped)

        with caplog.at_level(logging.WARNING, logger="httpstatic.core.transport"):
            assert transport.is_tls is True
            assert transport.handshake() is False

        assert "TLS handshake failed" in caplog.text

    def test_client_hangs_up_during_handshake(self, tcp_pair):
        accepted, client = tcp_pair
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        wrapped = context.wrap_socket(accepted, server_side=True, do_handshake_on_connect=False)

        client.close()

        assert Transport(wrapped).handshake() is False


class TestConnection:
    """Tests for Connection reading and writing."""

    def make_connection(self, sock: socket.socket, **kwargs) -> Connection:
        settings = dict(timeout=2.0, keep_alive_timeout=0.5)
        settings.update(kwargs)
        return Connection.from_socket(sock, ("127.0.0.1", 50000), **settings)

    def test_read_request(self, socket_pair):
        server_side, client_side = socket_pair
        conn = self.make_connection(server_side)

        client_side.sendall(b"GET / HTTP/1.1\r\nHost: x\r\n\r\n")

        assert conn.read_request() == b"GET / HTTP/1.1\r\nHost: x\r\n\r\n"
        assert conn.requests_handled == 1

    def test_pipelined_requests_are_split(self, socket_pair):
        server_side, client_side = socket_pair
        conn = self.make_connection(server_side)

        client_side.sendall(b"GET /a HTTP/1.1\r\n\r\nGET /b HTTP/1.1\r\n\r\n")

        assert conn.read_request() == b"GET /a HTTP/1.1\r\n\r\n"
        assert conn.read_request() == b"GET /b HTTP/1.1\r\n\r\n"

    def test_request_with_body(self, socket_pair):
        server_side, client_side = socket_pair
        conn = self.make_connection(server_side)

        client_side.sendall(b"POST / HTTP/1.1\r\nContent-Length: 3\r\n\r\nabc")

        assert conn.read_request().endswith(b"\r\n\r\nabc")

    def test_client_closed(self, socket_pair):
        server_side, client_side = socket_pair
        conn = self.make_connection(server_side)

        client_side.shutdown(socket.SHUT_WR)
        assert conn.read_request() is None

    def test_first_request_timeout(self, socket_pair):
        conn = self.make_connection(socket_pair[0], timeout=0.2)

        with pytest.raises(TimeoutError):
            conn.read_request()

    def test_keep_alive_timeout_is_quiet(self, socket_pair):
        server_side, client_side = socket_pair
        conn = self.make_connection(server_side, keep_alive_timeout=0.2)

        client_side.sendall(b"GET / HTTP/1.1\r\n\r\n")
        conn.read_request()

        assert conn.read_request() is None

    def test_request_too_large(self, socket_pair):
        server_side, client_side = socket_pair
        conn = self.make_connection(server_side, max_request_size=1024)

        client_side.sendall(b"GET / HTTP/1.1\r\nX-Big: " + b"a" * 2048)

        with pytest.raises(ValueError):
            conn.read_request()

    def test_send_chunks(self, socket_pair):
        server_side, client_side = socket_pair
        conn = self.make_connection(server_side)

        assert conn.send_chunks(iter([b"head", b"", b"body"])) is True
        conn.close()

        received = b""
        while True:
            data = client_side.recv(1024)
            if not data:
                break
            received += data
        assert received == b"headbody"

    def test_send_to_closed_peer(self, socket_pair):
        server_side, client_side = socket_pair
        conn = self.make_connection(server_side)
        client_side.close()

        assert conn.send_chunks(b"x" * 65536 for _ in range(64)) is False

    def test_close_is_idempotent(self, socket_pair):
        conn = self.make_connection(socket_pair[0])

        with conn:
            pass
        conn.close()

        assert conn.state == ConnectionState.CLOSED

    def test_handshake_state(self, socket_pair):
        conn = self.make_connection(socket_pair[0])

        assert conn.is_tls is False
        assert conn.handshake() is True
        assert conn.state == ConnectionState.HANDSHAKE


class TestServesConcurrently:
    """One transport per thread, no shared state."""

    def test_parallel_echo(self):
        pairs = [socket.socketpair() for _ in range(8)]
        results = []

        def echo(server_side):
            transport = Transport(server_side)
            buffer = bytearray(64)
            count = transport.read(buffer)
            transport.write_all(bytes(buffer[:count]).upper())

        threads = [threading.Thread(target=echo, args=(s,)) for s, _ in pairs]
        for thread in threads:
            thread.start()

        for i, (_, client_side) in enumerate(pairs):
            client_side.sendall(f"msg{i}".encode())
        for _, client_side in pairs:
            client_side.settimeout(5.0)
            results.append(client_side.recv(64))

        for thread in threads:
            thread.join(timeout=5.0)
        for server_side, client_side in pairs:
            server_side.close()
            client_side.close()

        assert results == [f"MSG{i}".encode() for i in range(8)]
