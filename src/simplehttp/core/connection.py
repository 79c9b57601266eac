"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the small API the connection
pipeline needs: read the request buffer, write the response bytes, close.

=============================================================================
ONE READ, ONE WRITE, ONE CLOSE
=============================================================================

Every connection serves exactly one request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept()                                                           │
    │      │                                                               │
    │      ▼                                                               │
    │   read_request()     ONE recv(buffer_size)                           │
    │      │               Whatever arrived in that call is the request.   │
    │      │               Bytes after buffer_size are never read.         │
    │      ▼                                                               │
    │   ... parse, route, handle, serialize ...                            │
    │      │                                                               │
    │      ▼                                                               │
    │   send_response()    send() until done or the peer goes away.        │
    │      │               Returns how many bytes actually went out.       │
    │      ▼                                                               │
    │   close()            FIN, drain, release the descriptor.             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There is no keep-alive, no pipelining and no Content-Length framing. A
request larger than buffer_size is truncated; the parser copes with a
request that stops mid-headers.

=============================================================================
SOCKET-LIKE OBJECTS
=============================================================================

Connection only calls recv(), send(), shutdown(), settimeout() and close(),
so anything exposing those works: a real accepted socket, one end of
socket.socketpair() in tests, or a hand-written fake.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple
import logging
import socket
import time
import uuid

from ..errors import TransportError


logger = logging.getLogger(__name__)


# Limits on draining unread client data in close()
DRAIN_TIMEOUT = 0.5         # seconds per recv and in total
MAX_DRAIN_BYTES = 64 * 1024


class ConnectionState(Enum):
    """
    Connection lifecycle states.

        NEW → READING → PARSING → ROUTING → HANDLING → SERIALIZING → WRITING
                 │         │                    │            │          │
                 └─────────┴────────────────────┴────────────┴──────────┴─► CLOSED

    Strictly forward. A failure in any state jumps straight to CLOSED
    (after the error response, where there is one). Nothing ever goes
    back to READING.
    """
    NEW = "new"                  # Just accepted, nothing read yet
    READING = "reading"          # Waiting on recv()
    PARSING = "parsing"          # Turning bytes into an HTTPRequest
    ROUTING = "routing"          # Looking up the handler
    HANDLING = "handling"        # Handler is running
    SERIALIZING = "serializing"  # Turning the HTTPResponse into bytes
    WRITING = "writing"          # Sending bytes to the client
    CLOSED = "closed"            # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket (or any socket-like object).
        address: Client's (ip, port) tuple. Empty for socketpair ends.
        id: Short identifier used to correlate log lines.
        state: Current ConnectionState.
        created_at: Timestamp when the connection was accepted.
        buffer_size: Size of the single recv() that reads the request.
        timeout: Socket timeout in seconds; None blocks indefinitely.
        bytes_read: Length of the buffer read_request() returned.
        bytes_written: Bytes send_response() got onto the wire.
    """

    # Required parameters
    socket: Any
    address: Tuple = ()

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    # Configuration (passed from ServerConfig)
    buffer_size: int = 1024
    timeout: Optional[float] = None

    # Counters, filled in as the connection progresses
    bytes_read: int = 0
    bytes_written: int = 0

    def __post_init__(self):
        # Accepted sockets inherit the listener's accept timeout on some
        # platforms; reset to what this connection was configured with.
        self.socket.settimeout(self.timeout)

    @property
    def client(self) -> str:
        """Client address as "ip:port", or "-" when there isn't one."""
        if len(self.address) >= 2:
            return f"{self.address[0]}:{self.address[1]}"
        return "-"

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> bytes:
        """
        Read the request with a single recv() of buffer_size bytes.

        Returns:
            The bytes received. An empty result means the client closed
            the connection without sending anything.

        Raises:
            TransportError: If the socket read fails or times out.
        """
        self.state = ConnectionState.READING

        try:
            data = self.socket.recv(self.buffer_size)
        except socket.timeout as e:
            raise TransportError(f"Read timed out after {self.timeout}s") from e
        except OSError as e:
            raise TransportError(f"Read failed: {e}") from e

        self.bytes_read = len(data)
        if len(data) == self.buffer_size:
            logger.debug(f"[{self.id}] Read filled the {self.buffer_size}-byte buffer; "
                         f"anything after it is ignored")
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> int:
        """
        Send response data to the client.

        Loops on send() rather than using sendall() so a peer that goes
        away halfway through leaves an exact count of what was sent.

        Args:
            data: Response bytes to send.

        Returns:
            Number of bytes written. Less than len(data) means the write
            failed partway; the failure is logged, not raised.
        """
        self.state = ConnectionState.WRITING

        view = memoryview(data)
        while self.bytes_written < len(data):
            try:
                sent = self.socket.send(view[self.bytes_written:])
            except OSError as e:
                logger.warning(
                    f"[{self.id}] Send failed after {self.bytes_written}/"
                    f"{len(data)} bytes: {e}"
                )
                break
            if sent == 0:
                logger.warning(f"[{self.id}] Peer stopped accepting data after "
                               f"{self.bytes_written}/{len(data)} bytes")
                break
            self.bytes_written += sent

        return self.bytes_written

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN so the client sees end-of-body
        2. Drain whatever the client sent that was never read
        3. close(): release the descriptor

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        self._drain()

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def _drain(self):
        """
        Discard unread client data, so close() doesn't turn into a reset.

        Bounded by DRAIN_TIMEOUT and MAX_DRAIN_BYTES: a client that keeps
        trickling data can't hold the connection open.
        """
        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0
        try:
            self.socket.settimeout(DRAIN_TIMEOUT)
            while drained < MAX_DRAIN_BYTES and time.monotonic() < deadline:
                chunk = self.socket.recv(1024)
                if not chunk:
                    return
                drained += len(chunk)
        except OSError:
            return  # Includes socket.timeout

        logger.debug(f"[{self.id}] Stopped draining after {drained} bytes")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows using Connection with a 'with' statement:

            with Connection(sock, addr) as conn:
                data = conn.read_request()
                conn.send_response(response)
            # Connection closed here, even if the body raised
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
