"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Drives one accepted connection from first byte to close:

    READING → PARSING → ROUTING → HANDLING → SERIALIZING → WRITING → CLOSED

=============================================================================
FAILURE POLICY
=============================================================================

Nothing that goes wrong inside one connection escapes handle(). Each
failure is contained in the state where it happened:

    ┌──────────────┬───────────────────────────┬──────────────────────────┐
    │  Fails in    │  What the client gets     │  Logged as               │
    ├──────────────┼───────────────────────────┼──────────────────────────┤
    │  READING     │  nothing, socket closed   │  WARNING                 │
    │  PARSING     │  400 (or 413), empty body │  WARNING                 │
    │  HANDLING    │  500, empty body          │  ERROR with traceback    │
    │  SERIALIZING │  nothing, socket closed   │  ERROR with traceback    │
    │  WRITING     │  whatever got through     │  WARNING                 │
    └──────────────┴───────────────────────────┴──────────────────────────┘

A client that connects and closes without sending anything is not an
error; it ends in READING with no error attached.

Every connection, successful or not, ends with one access log line and a
ConnectionResult for the caller.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional
import logging
import time

from ..access_log import AccessLogger, RequestLog
from ..errors import HTTPParseError, ReasonPhraseLookupError, TransportError
from ..http.request import HTTPRequest, RequestParser
from ..http.response import HTTPResponse, bad_request, internal_error
from ..http.router import Router
from .connection import Connection, ConnectionState


logger = logging.getLogger(__name__)


@dataclass
class ConnectionResult:
    """
    What happened on one connection.

    Attributes:
        connection_id: Connection.id, for correlating with log lines.
        client: "ip:port" of the peer.
        state: Final connection state (CLOSED once handle() returns).
        failed_in: The state the pipeline failed in, None on success.
        request: The parsed request, None if reading or parsing failed.
        response: The response that was serialized and written, including
            synthesized 400/500 responses. None if nothing was written.
        bytes_written: Bytes that reached the socket.
        bytes_expected: Size of the serialized response.
        error: The exception behind failed_in, if there was one.
        duration_ms: Time from start of handling to close.
    """

    connection_id: str
    client: str
    state: ConnectionState = ConnectionState.NEW
    failed_in: Optional[ConnectionState] = None
    request: Optional[HTTPRequest] = None
    response: Optional[HTTPResponse] = None
    bytes_written: int = 0
    bytes_expected: int = 0
    error: Optional[BaseException] = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        """True if the handler's response went out in full."""
        return self.failed_in is None and self.bytes_written == self.bytes_expected

    @property
    def outcome(self) -> str:
        if self.failed_in is None:
            return "ok"
        return f"{self.failed_in.value}-failed"


class ConnectionHandler:
    """
    Runs the request pipeline for one connection at a time.

    Holds no per-connection state, so one instance serves every
    connection the server accepts.

    Usage:
        handler = ConnectionHandler(router)
        result = handler.handle(Connection(sock, addr))
        if not result.ok:
            ...
    """

    def __init__(
        self,
        router: Router,
        parser: Optional[RequestParser] = None,
        access_logger: Optional[AccessLogger] = None,
    ):
        self.router = router
        self.parser = parser or RequestParser()
        self.access_logger = access_logger or AccessLogger()

    def handle(self, conn: Connection) -> ConnectionResult:
        """
        Process a connection and close it.

        Args:
            conn: A freshly accepted connection.

        Returns:
            A ConnectionResult describing the outcome. Never raises for
            failures of the request itself.
        """
        result = ConnectionResult(connection_id=conn.id, client=conn.client)
        start_time = time.time()

        with conn:  # Context manager ensures connection is closed
            self._process(conn, result)

        result.state = conn.state
        result.duration_ms = (time.time() - start_time) * 1000
        self._log_access(result)
        return result

    def _process(self, conn: Connection, result: ConnectionResult):
        # ─────────────────────────────────────────────────────────────────
        # READ
        # ─────────────────────────────────────────────────────────────────
        try:
            raw_request = conn.read_request()
        except TransportError as e:
            logger.warning(f"[{conn.id}] {e}")
            result.failed_in, result.error = ConnectionState.READING, e
            return

        if not raw_request:
            logger.debug(f"[{conn.id}] Client closed without sending a request")
            result.failed_in = ConnectionState.READING
            return

        # ─────────────────────────────────────────────────────────────────
        # PARSE
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.PARSING
        try:
            request = self.parser.parse(raw_request)
        except HTTPParseError as e:
            logger.warning(f"[{conn.id}] Rejecting request from {conn.client}: {e}")
            result.failed_in, result.error = ConnectionState.PARSING, e
            self._write(conn, result, bad_request(e.status_code))
            return
        result.request = request

        # ─────────────────────────────────────────────────────────────────
        # ROUTE
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.ROUTING
        handler = self.router.handler_for(request.path)

        # ─────────────────────────────────────────────────────────────────
        # HANDLE
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.HANDLING
        try:
            response = handler(request)
            if not isinstance(response, HTTPResponse):
                raise TypeError(
                    f"Handler {getattr(handler, '__name__', handler)!r} returned "
                    f"{type(response).__name__}, expected HTTPResponse"
                )
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error on {request.method} {request.path}: {e}")
            result.failed_in, result.error = ConnectionState.HANDLING, e
            self._write(conn, result, internal_error())
            return

        self._write(conn, result, response)

    def _write(self, conn: Connection, result: ConnectionResult, response: HTTPResponse):
        """Serialize and send a response, recording the outcome on result."""
        conn.state = ConnectionState.SERIALIZING
        try:
            response_bytes = response.to_bytes()
        except ReasonPhraseLookupError as e:
            logger.error(f"[{conn.id}] Cannot serialize response: {e}", exc_info=True)
            self._serialize_failed(result, e)
            return
        except Exception as e:
            # Malformed response: non-str header values, a status that isn't an int
            logger.exception(f"[{conn.id}] Cannot serialize response: {e}")
            self._serialize_failed(result, e)
            return

        result.response = response
        result.bytes_expected = len(response_bytes)
        result.bytes_written = conn.send_response(response_bytes)

        if result.bytes_written < result.bytes_expected and result.failed_in is None:
            result.failed_in = ConnectionState.WRITING

    def _serialize_failed(self, result: ConnectionResult, error: Exception):
        if result.failed_in is None:
            result.failed_in, result.error = ConnectionState.SERIALIZING, error

    def _log_access(self, result: ConnectionResult):
        request = result.request
        self.access_logger.log(RequestLog(
            connection_id=result.connection_id,
            client=result.client,
            method=request.method if request else "-",
            path=request.path if request else "-",
            status_code=int(result.response.status) if result.response else None,
            bytes_written=result.bytes_written,
            bytes_expected=result.bytes_expected,
            duration_ms=result.duration_ms,
            outcome=result.outcome,
            error=type(result.error).__name__ if result.error else None,
        ))
