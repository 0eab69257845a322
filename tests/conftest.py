"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from simplehttp import HTTPServer, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample GET request with a couple of headers."""
    return (
        b"GET /readme.txt HTTP/1.1\r\n"
        b"Host: localhost:5500\r\n"
        b"User-Agent: pytest\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample POST request with a body."""
    body = b'{"name": "John"}'
    return (
        b"POST /submit HTTP/2\r\n"
        b"Host: localhost:5500\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """A served root with one file and one directory."""
    (tmp_path / "readme.txt").write_text("hi", encoding="utf-8")
    (tmp_path / "somedir").mkdir()
    (tmp_path / "somedir" / "nested.txt").write_text("nested", encoding="utf-8")
    return tmp_path


@pytest.fixture
def config(site: Path) -> ServerConfig:
    """Test server configuration serving `site`."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        root_dir=str(site),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # Not a test class despite the name

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes, return everything the server wrote before closing."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as s:
            s.sendall(raw)
            s.shutdown(socket.SHUT_WR)
            chunks = []
            while True:
                try:
                    chunk = s.recv(4096)
                except ConnectionResetError:
                    break  # Server closed with our bytes still unread
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def make_server() -> Generator:
    """Factory starting a TestServer for a given config; stopped at teardown."""
    started = []

    def factory(config: ServerConfig) -> TestServer:
        test_srv = TestServer(HTTPServer(config))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield factory

    for test_srv in started:
        test_srv.stop()


@pytest.fixture(params=["pool", "sequential"])
def test_server(request, config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running server, once per dispatch mode."""
    config.dispatch = request.param
    test_srv = TestServer(HTTPServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()
