"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from typing import Callable, Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from simplehttp import HTTPServer, ServerConfig
from simplehttp.core import Connection
from simplehttp.handlers import register_examples


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request with a query and repeated headers."""
    return (
        b"GET /search?q=a%20b&page=2 HTTP/1.1\r\n"
        b"Host: example.com\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"Accept: text/plain\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    return (
        b"POST /submit HTTP/1.1\r\n"
        b"Host: example.com\r\n"
        b"Content-Type: text/plain\r\n"
        b"\r\n"
        b"name=John"
    )


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def socket_pair() -> Generator[Callable[[bytes], Connection], None, None]:
    """
    Build a Connection over socket.socketpair(), preloaded with request data.

    The client side sends the data and shuts down its write half, so the
    connection sees EOF after the request. Use the read_reply fixture to read
    what the server side wrote.
    """
    clients = []

    def make(data: bytes, buffer_size: int = 1024) -> Connection:
        server_sock, client_sock = socket.socketpair()
        client_sock.settimeout(5.0)
        if data:
            client_sock.sendall(data)
        client_sock.shutdown(socket.SHUT_WR)
        clients.append(client_sock)
        conn = Connection(socket=server_sock, address=("127.0.0.1", 50000),
                          buffer_size=buffer_size)
        conn.client_socket = client_sock
        return conn

    yield make

    for sock in clients:
        sock.close()


def read_all(sock: socket.socket) -> bytes:
    """Read from sock until the peer closes."""
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


class TestServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self.host, self.port = server.server_address
        self._thread: Optional[threading.Thread] = None

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        # The socket is already listening; wait for the accept loop itself
        for _ in range(50):  # 5 seconds max
            if self.server.is_running:
                return
            time.sleep(0.1)

        raise RuntimeError("Server failed to start")

    def request(self, data: bytes) -> bytes:
        """Send raw bytes and return everything the server sends back."""
        with socket.create_connection((self.host, self.port), timeout=5.0) as sock:
            if data:
                sock.sendall(data)
            sock.shutdown(socket.SHUT_WR)
            return read_all(sock)

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def serve() -> Generator[Callable[[HTTPServer], TestServer], None, None]:
    """Start an HTTPServer in a background thread; stopped at teardown."""
    started = []

    def start(server: HTTPServer) -> TestServer:
        test_srv = TestServer(server)
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield start

    for test_srv in started:
        test_srv.stop()


@pytest.fixture
def test_server(config: ServerConfig, serve) -> TestServer:
    """A running server with the example routes plus a failing one."""
    server = HTTPServer(config)
    register_examples(server)

    @server.route("^/boom$")
    def boom(request):
        raise RuntimeError("handler exploded")

    return serve(server)


@pytest.fixture
def read_reply() -> Callable[[Connection], bytes]:
    """Read everything the server side of a socket_pair connection wrote."""
    return lambda conn: read_all(conn.client_socket)
