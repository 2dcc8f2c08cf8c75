"""
pytest configuration and fixtures.
"""

import io
import socket
import threading
import time
from typing import Generator, List, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httprint import HTTPrintServer, ServerConfig
from httprint.errors import ResponseSendError


@pytest.fixture
def sample_get_head() -> bytes:
    """Head of a simple GET request (no blank line)."""
    return (
        b"GET /status?verbose=1 HTTP/1.1\r\n"
        b"Host: example.com\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Complete POST request with a JSON body."""
    body = b'{"event": "push"}'
    return (
        b"POST /hook HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServerConfig:
    """Test configuration on an OS-assigned port."""
    return ServerConfig(address="127.0.0.1:0", timeout=5.0)


class FakeConnection:
    """Records what would have been sent to the client."""

    def __init__(self, fail_send: bool = False):
        self.fail_send = fail_send
        self.sent: List[bytes] = []
        self.closed = False

    def send_response(self, data: bytes):
        if self.fail_send:
            raise ResponseSendError("failed to send response: broken pipe")
        self.sent.append(data)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def failing_connection() -> FakeConnection:
    """Connection whose response write always fails."""
    return FakeConnection(fail_send=True)


class TestServer:
    """Inspector running in a background thread, capturing its output."""

    __test__ = False  # Not a test class, despite the name

    def __init__(self, config: ServerConfig):
        self.out = io.StringIO()
        self.err = io.StringIO()
        self.server = HTTPrintServer(config, out=self.out, err=self.err)
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return int(self.server.server_addr.rsplit(":", 1)[1])

    def start(self):
        """Bind, then serve in a background thread."""
        self.server.bind()
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        # Wait for the "Listening at" line
        for _ in range(50):  # 5 seconds max
            if "Listening at" in self.out.getvalue():
                return
            time.sleep(0.1)

        raise RuntimeError("Server failed to start")

    def send(self, raw: bytes) -> bytes:
        """Send raw bytes and return everything the server answers."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(raw)
            s.shutdown(socket.SHUT_WR)
            chunks = []
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def wait_for_output(self, text: str, timeout: float = 5.0) -> str:
        """Wait until `text` shows up on the captured stdout."""
        deadline = time.time() + timeout
        while time.time() < deadline:
            output = self.out.getvalue()
            if text in output:
                return output
            time.sleep(0.05)
        raise AssertionError(f"{text!r} not in output:\n{self.out.getvalue()}")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """Start an inspector on a free port."""
    test_srv = TestServer(config)
    test_srv.start()

    yield test_srv

    test_srv.stop()
