"""
Unit tests for configuration and TLS material loading.
"""

import ssl

import pytest

from httpstatic.config import DEFAULT_LISTEN, ServerConfig, parse_listen_address
from httpstatic.core import create_tls_context, tls_context_from_config


class TestParseListenAddress:
    """Tests for parse_listen_address."""

    @pytest.mark.parametrize("address, expected", [
        ("[::1]:8080", ("::1", 8080)),
        ("[::]:443", ("::", 443)),
        ("127.0.0.1:3000", ("127.0.0.1", 3000)),
        ("0.0.0.0:0", ("0.0.0.0", 0)),
    ])
    def test_valid(self, address, expected):
        assert parse_listen_address(address) == expected

    @pytest.mark.parametrize("address", [
        "",
        "8080",
        "127.0.0.1",
        "localhost:8080",
        "::1:8080",
        "[127.0.0.1]:80",
        "[nothost]:80",
        "127.0.0.1:http",
        "127.0.0.1:65536",
        "127.0.0.1:-1",
    ])
    def test_invalid(self, address):
        with pytest.raises(ValueError):
            parse_listen_address(address)


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.listen == DEFAULT_LISTEN == "[::1]:8080"
        assert config.root == "."
        assert config.index == "index.html"
        assert config.default == "index.html"
        assert config.in_memory is False
        assert config.tls_enabled is False
        config.validate()

    def test_host_port_url(self):
        config = ServerConfig(listen="[::1]:8443", tls_key="key.pem", tls_cert="cert.pem")

        assert config.host == "::1"
        assert config.port == 8443
        assert config.scheme == "https"
        assert config.url == "https://[::1]:8443"

    def test_ipv4_url(self):
        assert ServerConfig(listen="127.0.0.1:80").url == "http://127.0.0.1:80"

    @pytest.mark.parametrize("overrides", [
        {"listen": "nowhere"},
        {"tls_key": "key.pem"},
        {"tls_cert": "cert.pem"},
        {"index": ""},
        {"index": "docs/index.html"},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"buffer_size": 10},
        {"chunk_size": 0},
        {"timeout": 0},
        {"log_format": "xml"},
    ])
    def test_validate_rejects(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HTTP_LISTEN", "127.0.0.1:9000")
        monkeypatch.setenv("HTTP_ROOT", "/srv/www")
        monkeypatch.setenv("HTTP_DEFAULT", "")
        monkeypatch.setenv("HTTP_IN_MEMORY", "true")
        monkeypatch.setenv("HTTP_WORKERS", "32")

        config = ServerConfig.from_env()

        assert config.port == 9000
        assert config.root == "/srv/www"
        assert config.default is None
        assert config.in_memory is True
        assert (config.min_workers, config.max_workers) == (32, 64)

    def test_from_env_small_worker_count(self, monkeypatch):
        for name in ("HTTP_LISTEN", "HTTP_INDEX", "HTTP_TLS_KEY", "HTTP_TLS_CERT"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("HTTP_WORKERS", "2")

        config = ServerConfig.from_env()
        config.validate()

        assert (config.min_workers, config.max_workers) == (2, 4)

    def test_from_env_defaults(self, monkeypatch):
        for name in ("HTTP_LISTEN", "HTTP_DEFAULT", "HTTP_IN_MEMORY", "HTTP_TLS_KEY", "HTTP_WORKERS"):
            monkeypatch.delenv(name, raising=False)

        config = ServerConfig.from_env()

        assert config.listen == DEFAULT_LISTEN
        assert config.default == "index.html"
        assert config.in_memory is False
        assert (config.min_workers, config.max_workers) == (4, 8)


class TestTLSMaterial:
    """Broken key/certificate files fail at startup."""

    def test_tls_off(self):
        assert tls_context_from_config(ServerConfig()) is None

    def test_missing_files(self, tmp_path):
        with pytest.raises(OSError):
            create_tls_context(str(tmp_path / "cert.pem"), str(tmp_path / "key.pem"))

    def test_unparsable_files(self, tmp_path):
        cert = tmp_path / "cert.pem"
        key = tmp_path / "key.pem"
        cert.write_text("-----BEGIN CERTIFICATE-----\nnot a cert\n-----END CERTIFICATE-----\n")
        key.write_text("garbage")

        with pytest.raises(ssl.SSLError):
            create_tls_context(str(cert), str(key))

    def test_from_config_loads(self, tmp_path):
        config = ServerConfig(
            tls_key=str(tmp_path / "key.pem"),
            tls_cert=str(tmp_path / "cert.pem"),
        )

        with pytest.raises(OSError):
            tls_context_from_config(config)
