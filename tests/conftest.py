"""
pytest configuration and fixtures.
"""

import socket
import threading
from dataclasses import replace
from typing import Generator, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpwire import HTTPServer, ServerConfig


INDEX_HTML = b"Hello world\n"  # 12 bytes


class TrickleStream:
    """
    In-memory byte stream that hands out at most `step` bytes per read,
    the way a slow socket would.
    """

    def __init__(self, data: bytes, step: int = 1):
        self._data = data
        self._pos = 0
        self.step = step

    def read(self, size: int = -1) -> bytes:
        if size < 0:
            size = len(self._data)
        end = min(self._pos + min(size, self.step), len(self._data))
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def readline(self, limit: int = -1) -> bytes:
        newline = self._data.find(b"\n", self._pos)
        end = len(self._data) if newline < 0 else newline + 1
        if limit >= 0:
            end = min(end, self._pos + limit)
        line = self._data[self._pos:end]
        self._pos = end
        return line

    @property
    def remaining(self) -> bytes:
        return self._data[self._pos:]


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /index.html HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a JSON body."""
    body = b'{"k":"v"}'
    head = (
        b"POST /anything HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        b"Content-Length: %d\r\n"
        b"\r\n"
    ) % len(body)
    return head + body


@pytest.fixture
def root_dir(tmp_path: Path) -> Path:
    """Served directory with an index.html, a subdirectory and a binary file."""
    (tmp_path / "index.html").write_bytes(INDEX_HTML)
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "a b.txt").write_bytes(b"spaced name\n")
    (tmp_path / "data.bin").write_bytes(bytes(range(256)) * 400)  # 102400 bytes
    return tmp_path


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def exchange(self, raw_request: bytes, shut_write: bool = True) -> bytes:
        """Send raw request bytes and read the whole response until close."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(raw_request)
            if shut_write:
                s.shutdown(socket.SHUT_WR)
            chunks = []
            while True:
                data = s.recv(65536)
                if not data:
                    break
                chunks.append(data)
        return b"".join(chunks)


@pytest.fixture
def server_config(root_dir: Path) -> ServerConfig:
    """Test server configuration on an OS-assigned port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        root_dir=str(root_dir),
        default_headers={"X-Server": "httpwire-test"},
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def test_server(server_config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running HTTPServer serving `root_dir`."""
    test_srv = TestServer(HTTPServer(server_config))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def trickle():
    """Factory for TrickleStream, for tests that need a slow stream."""
    return TrickleStream


@pytest.fixture
def make_server(server_config: ServerConfig):
    """Factory for extra running servers with settings changed from `server_config`."""
    started = []

    def factory(**changes) -> TestServer:
        test_srv = TestServer(HTTPServer(replace(server_config, **changes)))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield factory

    for test_srv in started:
        test_srv.stop()
