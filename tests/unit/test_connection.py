"""
Unit tests for the client connection wrapper.
"""

import socket
import time

import pytest

from simplehttp.core.connection import MAX_DRAIN_BYTES, Connection, ConnectionState
from simplehttp.errors import TransportError


class FakeSocket:
    """Socket stand-in with scripted recv()/send() behaviour."""

    def __init__(self, incoming=b"", send_limits=None, recv_error=None, send_error_after=None):
        self.incoming = incoming
        self.send_limits = list(send_limits or [])
        self.recv_error = recv_error
        self.send_error_after = send_error_after
        self.sent = b""
        self.recv_sizes = []
        self.timeouts = []
        self.shut_down = False
        self.closed = False

    def settimeout(self, timeout):
        self.timeouts.append(timeout)

    def recv(self, size):
        if self.recv_error:
            raise self.recv_error
        self.recv_sizes.append(size)
        data, self.incoming = self.incoming[:size], self.incoming[size:]
        return data

    def send(self, data):
        if self.send_error_after is not None and len(self.sent) >= self.send_error_after:
            raise BrokenPipeError("peer went away")
        limit = self.send_limits.pop(0) if self.send_limits else len(data)
        chunk = bytes(data[:limit])
        self.sent += chunk
        return len(chunk)

    def shutdown(self, how):
        self.shut_down = True

    def close(self):
        self.closed = True


class TestReading:

    def test_single_read_of_buffer_size(self):
        sock = FakeSocket(incoming=b"GET / HTTP/1.1\r\n\r\n")
        conn = Connection(socket=sock, buffer_size=1024)

        assert conn.read_request() == b"GET / HTTP/1.1\r\n\r\n"
        assert sock.recv_sizes == [1024]
        assert conn.state == ConnectionState.READING

    def test_large_request_is_truncated(self):
        sock = FakeSocket(incoming=b"x" * 3000)
        conn = Connection(socket=sock, buffer_size=1024)

        data = conn.read_request()
        assert len(data) == 1024
        assert conn.bytes_read == 1024

    def test_read_error_becomes_transport_error(self):
        conn = Connection(socket=FakeSocket(recv_error=ConnectionResetError("reset")))

        with pytest.raises(TransportError):
            conn.read_request()

    def test_read_timeout_becomes_transport_error(self):
        conn = Connection(socket=FakeSocket(recv_error=socket.timeout("timed out")), timeout=0.1)

        with pytest.raises(TransportError, match="timed out"):
            conn.read_request()

    def test_timeout_applied_to_socket(self):
        sock = FakeSocket()
        Connection(socket=sock, timeout=2.5)
        assert sock.timeouts == [2.5]


class TestWriting:

    def test_full_write(self):
        sock = FakeSocket()
        conn = Connection(socket=sock)

        assert conn.send_response(b"HTTP/1.1 200 OK\r\n\r\n") == 19
        assert sock.sent == b"HTTP/1.1 200 OK\r\n\r\n"
        assert conn.state == ConnectionState.WRITING

    def test_short_sends_are_continued(self):
        sock = FakeSocket(send_limits=[3, 4, 100])
        conn = Connection(socket=sock)

        assert conn.send_response(b"0123456789") == 10
        assert sock.sent == b"0123456789"

    def test_partial_write_reports_bytes_sent(self):
        sock = FakeSocket(send_limits=[4], send_error_after=4)
        conn = Connection(socket=sock)

        assert conn.send_response(b"0123456789") == 4
        assert conn.bytes_written == 4

    def test_nothing_written(self):
        conn = Connection(socket=FakeSocket(send_error_after=0))
        assert conn.send_response(b"data") == 0

    def test_zero_length_send_stops(self):
        conn = Connection(socket=FakeSocket(send_limits=[0]))
        assert conn.send_response(b"data") == 0


class TestClosing:

    def test_close_shuts_down_and_closes(self):
        sock = FakeSocket(incoming=b"leftover")
        conn = Connection(socket=sock)
        conn.close()

        assert sock.shut_down
        assert sock.closed
        assert sock.incoming == b""  # drained
        assert conn.state == ConnectionState.CLOSED

    def test_drain_is_bounded(self):
        """A client that never stops sending can't hold close() open."""
        sock = FakeSocket(incoming=b"x" * (MAX_DRAIN_BYTES * 4))
        conn = Connection(socket=sock)
        conn.close()

        assert sock.closed
        assert len(sock.incoming) >= MAX_DRAIN_BYTES * 2
        assert conn.state == ConnectionState.CLOSED

    def test_drain_is_time_limited(self):
        sock = TricklingSocket()
        conn = Connection(socket=sock)

        started = time.monotonic()
        conn.close()

        assert time.monotonic() - started < 2.0
        assert sock.closed

    def test_close_is_idempotent(self):
        sock = FakeSocket()
        conn = Connection(socket=sock)
        conn.close()
        sock.closed = False
        conn.close()

        assert not sock.closed

    def test_context_manager_closes(self):
        sock = FakeSocket()
        with Connection(socket=sock) as conn:
            pass

        assert sock.closed
        assert conn.state == ConnectionState.CLOSED

    def test_client_label(self):
        assert Connection(socket=FakeSocket(), address=("10.0.0.1", 5000)).client == "10.0.0.1:5000"
        assert Connection(socket=FakeSocket()).client == "-"

    def test_works_over_socketpair(self):
        server_sock, client_sock = socket.socketpair()
        try:
            client_sock.sendall(b"ping")
            client_sock.shutdown(socket.SHUT_WR)

            with Connection(socket=server_sock) as conn:
                assert conn.read_request() == b"ping"
                assert conn.send_response(b"pong") == 4

            client_sock.settimeout(5.0)
            assert client_sock.recv(16) == b"pong"
        finally:
            client_sock.close()


class TricklingSocket(FakeSocket):
    """A client that sends one byte every 0.1 seconds, forever."""

    def recv(self, size):
        time.sleep(0.1)
        return b"x"
