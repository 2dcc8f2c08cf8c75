"""
Unit tests for configuration and address handling.
"""

import signal

import pytest

from httprint.config import ServerConfig
from httprint.core import SocketServer, format_address, parse_address
from httprint.errors import BindError


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.address == "127.0.0.1:8000"
        assert config.timeout is None
        assert config.log_level == "WARNING"
        config.validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HTTPRINT_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("HTTPRINT_TIMEOUT", "2.5")
        monkeypatch.setenv("HTTPRINT_BACKLOG", "16")

        config = ServerConfig.from_env(address="0.0.0.0:9000")

        assert config.address == "0.0.0.0:9000"
        assert config.log_level == "DEBUG"
        assert config.timeout == 2.5
        assert config.backlog == 16

    def test_from_env_defaults(self, monkeypatch):
        for name in ("HTTPRINT_LOG_LEVEL", "HTTPRINT_TIMEOUT", "HTTPRINT_BACKLOG",
                     "HTTPRINT_BUFFER_SIZE"):
            monkeypatch.delenv(name, raising=False)

        assert ServerConfig.from_env() == ServerConfig()

    @pytest.mark.parametrize("overrides", [
        {"backlog": 0},
        {"buffer_size": 10},
        {"timeout": 0},
        {"max_header_size": 100},
        {"log_level": "LOUD"},
    ])
    def test_validate_rejects(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()


class TestAddress:
    """Tests for parse_address and format_address."""

    @pytest.mark.parametrize("text, expected", [
        ("127.0.0.1:8000", ("127.0.0.1", 8000)),
        ("localhost:0", ("localhost", 0)),
        ("[::1]:8080", ("::1", 8080)),
        ("0.0.0.0:65535", ("0.0.0.0", 65535)),
    ])
    def test_parse(self, text, expected):
        assert parse_address(text) == expected

    @pytest.mark.parametrize("text", [
        "8000",
        ":8000",
        "localhost",
        "localhost:http",
        "localhost:70000",
        "",
    ])
    def test_parse_invalid(self, text):
        with pytest.raises(BindError):
            parse_address(text)

    def test_format(self):
        assert format_address(("127.0.0.1", 8000)) == "127.0.0.1:8000"
        assert format_address(("::1", 8000, 0, 0)) == "[::1]:8000"


class TestBind:
    """Tests for SocketServer.bind failure handling."""

    def test_bind_reports_resolved_port(self):
        server = SocketServer(ServerConfig(address="127.0.0.1:0"))
        server.bind()
        try:
            host, port = server.server_addr.rsplit(":", 1)
            assert host == "127.0.0.1"
            assert int(port) > 0
        finally:
            server.shutdown()
            server._cleanup()

    def test_running_from_bind_until_shutdown(self):
        server = SocketServer(ServerConfig(address="127.0.0.1:0"))
        assert not server.is_running

        server.bind()
        try:
            assert server.is_running
            assert not server.wait_for_shutdown(timeout=0)

            server.shutdown()

            assert not server.is_running
            assert server.wait_for_shutdown(timeout=0)
        finally:
            server._cleanup()

    def test_shutdown_before_serving_yields_nothing(self):
        server = SocketServer(ServerConfig(address="127.0.0.1:0"))
        server.bind()
        server.shutdown()

        assert list(server.incoming_requests()) == []

    def test_bind_address_in_use(self):
        first = SocketServer(ServerConfig(address="127.0.0.1:0"))
        first.bind()
        try:
            second = SocketServer(ServerConfig(address=first.server_addr))
            with pytest.raises(BindError):
                second.bind()
        finally:
            first._cleanup()

    def test_bind_invalid_address(self):
        with pytest.raises(BindError):
            SocketServer(ServerConfig(address="not-an-address")).bind()

    def test_server_addr_requires_bind(self):
        with pytest.raises(RuntimeError):
            SocketServer(ServerConfig()).server_addr


class TestSignals:
    """Tests for SIGINT/SIGTERM handling in the listener."""

    def test_signal_when_idle_stops_gracefully(self):
        server = SocketServer(ServerConfig(address="127.0.0.1:0"))
        server.bind()
        try:
            server._handle_signal(signal.SIGTERM, None)

            assert not server.is_running
        finally:
            server._cleanup()

    def test_second_signal_interrupts(self):
        server = SocketServer(ServerConfig(address="127.0.0.1:0"))
        server.bind()
        try:
            server._handle_signal(signal.SIGINT, None)

            with pytest.raises(KeyboardInterrupt):
                server._handle_signal(signal.SIGINT, None)
        finally:
            server._cleanup()

    def test_signal_during_request_interrupts(self):
        server = SocketServer(ServerConfig(address="127.0.0.1:0"))
        server.bind()
        server._busy = True
        try:
            with pytest.raises(KeyboardInterrupt):
                server._handle_signal(signal.SIGINT, None)
        finally:
            server._cleanup()
