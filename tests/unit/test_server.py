"""
End-to-end tests against a running server.
"""

import errno
import socket

import pytest

from simplehttp import HTTPServer, ServerConfig, create_app
from simplehttp.errors import BindError, RouterFrozenError
from simplehttp.handlers import register_examples
from simplehttp.http.response import ok


ECHO_REQUEST = b"GET /echo HTTP/1.1\r\nHost: example.com\r\n\r\n"


class TestExampleRoutes:

    def test_echo_host(self, test_server):
        assert test_server.request(ECHO_REQUEST) == b"HTTP/1.1 200 OK\r\n\r\nexample.com"

    def test_echo_host_strips_quotes(self, test_server):
        reply = test_server.request(b'GET /echo HTTP/1.1\r\nHost: "bar.com"\r\n\r\n')
        assert reply == b"HTTP/1.1 200 OK\r\n\r\nbar.com"

    @pytest.mark.parametrize("path", [b"/foo", b"/bar"])
    def test_echo_path(self, test_server, path):
        reply = test_server.request(b"GET " + path + b" HTTP/1.1\r\n\r\n")
        assert reply == b"HTTP/1.1 200 OK\r\n\r\n" + path

    def test_hello(self, test_server):
        reply = test_server.request(b"GET /test HTTP/1.1\r\n\r\n")
        assert reply == b"HTTP/1.1 200 OK\r\n\r\nHello, world!"

    def test_unknown_path(self, test_server):
        reply = test_server.request(b"GET /nowhere HTTP/1.1\r\n\r\n")
        assert reply == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_first_registered_route_wins(self, test_server):
        # "/echo" is registered before "/(foo|bar)", and both patterns
        # occur in this path
        reply = test_server.request(b"GET /echo/foo HTTP/1.1\r\nHost: h\r\n\r\n")
        assert reply == b"HTTP/1.1 200 OK\r\n\r\nh"


class TestFailuresDontStopTheServer:

    def test_handler_error_then_next_request(self, test_server):
        assert test_server.request(b"GET /boom HTTP/1.1\r\n\r\n") == (
            b"HTTP/1.1 500 Internal Server Error\r\n\r\n"
        )
        assert test_server.request(ECHO_REQUEST).endswith(b"example.com")

    def test_garbage_then_next_request(self, test_server):
        assert test_server.request(b"\x16\x03\x01 not http") == b"HTTP/1.1 400 Bad Request\r\n\r\n"
        assert test_server.request(ECHO_REQUEST).endswith(b"example.com")

    def test_client_disconnects_without_sending(self, test_server):
        assert test_server.request(b"") == b""
        assert test_server.request(ECHO_REQUEST).endswith(b"example.com")

    def test_one_request_per_connection(self, test_server):
        with socket.create_connection((test_server.host, test_server.port), timeout=5.0) as sock:
            sock.sendall(ECHO_REQUEST)
            reply = b""
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                reply += chunk

        # The server closed the connection after one response
        assert reply == b"HTTP/1.1 200 OK\r\n\r\nexample.com"


class TestAcceptErrors:

    def test_aborted_accept_does_not_stop_server(self, config, serve):
        server = HTTPServer(config)
        register_examples(server)
        listener = AbortOnceListener(server._socket_server._socket)
        server._socket_server._socket = listener

        running = serve(server)

        assert running.request(ECHO_REQUEST) == b"HTTP/1.1 200 OK\r\n\r\nexample.com"
        assert listener.aborted
        assert server.is_running


class AbortOnceListener:
    """Listening socket whose first accept() fails as if the client aborted."""

    def __init__(self, sock):
        self._sock = sock
        self.aborted = False

    def accept(self):
        if not self.aborted:
            self.aborted = True
            raise ConnectionAbortedError(errno.ECONNABORTED, "Software caused connection abort")
        return self._sock.accept()

    def __getattr__(self, name):
        return getattr(self._sock, name)


class TestLifecycle:

    def test_routes_frozen_while_running(self, test_server):
        with pytest.raises(RouterFrozenError):
            test_server.server.add_route("/late", lambda request: ok())

    def test_shutdown_stops_run(self, test_server):
        test_server.server.shutdown()
        assert test_server.server.wait_for_shutdown(timeout=5.0)
        assert not test_server.server.is_running

    def test_port_in_use(self, test_server):
        host, port = test_server.server.server_address
        with pytest.raises(BindError) as exc_info:
            HTTPServer(ServerConfig(host=host, port=port))
        assert exc_info.value.address == (host, port)

    def test_bind_address_string(self):
        with HTTPServer("127.0.0.1:0") as server:
            host, port = server.server_address
            assert host == "127.0.0.1"
            assert port > 0

    @pytest.mark.parametrize("address", ["nohost", "127.0.0.1:notaport"])
    def test_malformed_bind_address(self, address):
        with pytest.raises(BindError):
            HTTPServer(address)

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            HTTPServer(ServerConfig(port=0, buffer_size=1))

    def test_add_handler_alias(self, config):
        with HTTPServer(config) as server:
            route = server.add_handler("/x", lambda request: ok("x"))
            assert server.router.routes() == [route]

    def test_create_app_with_examples(self, config):
        with create_app(config, examples=True) as app:
            assert [r.pattern for r in app.router.routes()] == ["/echo", "/(foo|bar)", "/test"]

    def test_create_app_without_examples(self, config):
        with create_app(config) as app:
            assert len(app.router) == 0
