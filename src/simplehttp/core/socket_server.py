"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket and the accept loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    bind()            socket() → setsockopt() → bind() → listen()     │
    │        │             Failure here is a BindError; nothing runs.      │
    │        ▼                                                             │
    │    serve_forever()                                                   │
    │        │                                                             │
    │        └──► while running:                                           │
    │                accept()              one client                      │
    │                Connection(...)       wrap it                         │
    │                connection_handler()  run it to completion            │
    │                                      THEN accept the next one        │
    │                                                                      │
    │    shutdown()        flag the loop; it notices within a second       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ONE CONNECTION AT A TIME
=============================================================================

There is no thread pool. A connection is fully processed (read, handled,
written, closed) before accept() is called again; further clients wait in
the kernel's listen backlog. A slow handler therefore delays everyone,
which is the price of a route table and handler set that never need
locking.

=============================================================================
INTERRUPTIBLE ACCEPT
=============================================================================

The listening socket has a 1 second timeout, so accept() regularly comes
back with socket.timeout and the loop gets a chance to look at the running
flag:

    while running:
        try:
            accept()      # Blocks for 1 second max
        except timeout:
            continue      # Check running flag, loop again


Any other accept() error (a client that aborted while still queued,
running out of descriptors) is logged and the loop carries on. It only
stops once shutdown() has been called or the listening socket is gone.

SIGINT and SIGTERM call shutdown() when the loop runs in the main thread.
Signal handlers can only be installed from there, so a server run from a
background thread (as in tests) relies on shutdown() alone.

=============================================================================
"""

import errno
import logging
import signal
import socket
import threading
import time
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from ..errors import BindError
from .connection import Connection


logger = logging.getLogger(__name__)


# Out of descriptors: back off before accepting again
FD_EXHAUSTED = (errno.EMFILE, errno.ENFILE)
ACCEPT_BACKOFF = 0.1


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.bind()                           # May raise BindError
        server.serve_forever(handle_connection) # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        Args:
            config: Server configuration containing host, port, backlog, etc.

        Nothing is bound until bind() is called.
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._server_address: Optional[Tuple[str, int]] = None

        self._running = False

        # Set when the accept loop has exited and the socket is closed
        self._stopped_event = threading.Event()

        # Restored on exit, in case we're embedded in a larger app
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_bound(self) -> bool:
        return self._socket is not None

    @property
    def server_address(self) -> Tuple[str, int]:
        """
        The (host, port) actually bound.

        Differs from the configured port when the config asked for port 0.
        """
        if self._server_address is None:
            raise RuntimeError("Socket server is not bound")
        return self._server_address

    def _create_socket(self) -> socket.socket:
        """Create the listening socket with the options the server relies on."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind immediately after a restart instead of waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Responses go out in one write; don't hold them back
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second to check the running flag
        sock.settimeout(1.0)

        return sock

    def bind(self):
        """
        Create, bind and listen on the configured address.

        Raises:
            BindError: If the socket can't be created or bound, e.g. the
                address is in use or isn't a valid local address.
        """
        if self._socket is not None:
            return

        address = (self.config.host, self.config.port)
        try:
            sock = self._create_socket()
        except OSError as e:
            raise BindError(f"Failed to create socket: {e}", address=address) from e

        try:
            sock.bind(address)
            sock.listen(self.config.backlog)
        except (OSError, OverflowError) as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise BindError(
                f"Failed to bind to {self.config.host}:{self.config.port}: {e}",
                address=address,
            ) from e

        self._socket = sock
        self._server_address = sock.getsockname()[:2]
        logger.debug(f"Bound to {self._server_address[0]}:{self._server_address[1]}")

    def _setup_signals(self):
        """Route SIGINT/SIGTERM to shutdown(). Main thread only."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in the main thread; signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def serve_forever(self, connection_handler: Callable[[Connection], object]):
        """
        Accept and handle connections until shutdown() is called.

        Binds first if bind() hasn't been called yet.

        Args:
            connection_handler: Called with each accepted Connection. It
                must close the connection; the loop only closes it itself
                when the handler raises.
        """
        self.bind()

        self._running = True
        self._stopped_event.clear()
        self._setup_signals()

        host, port = self.server_address
        logger.info(f"Server listening on {host}:{port}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], object]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                # Socket closed under us, usually during shutdown
                if not self._running or self._socket is None or self._socket.fileno() == -1:
                    break
                # One client failing in the backlog (ECONNABORTED, EMFILE, ...)
                # must not stop the server
                logger.error(f"Accept error: {e}")
                if e.errno in FD_EXHAUSTED:
                    time.sleep(ACCEPT_BACKOFF)
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
            )

            # Per-request failures are contained by the handler; this only
            # catches bugs in the handler itself
            try:
                connection_handler(conn)
            except Exception as e:
                logger.exception(f"[{conn.id}] Unhandled error on connection from {conn.client}: {e}")
                conn.close()

    def shutdown(self):
        """
        Ask the accept loop to stop.

        Safe to call from a signal handler or another thread, and more than
        once. The loop exits within about a second.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def close(self):
        """Release the listening socket without serving (e.g. bound, never run)."""
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

    def _cleanup(self):
        self._restore_signals()
        self.close()
        self._stopped_event.set()
        logger.info("Socket server stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the accept loop to exit and the socket to be released.

        Returns:
            True if the server stopped, False on timeout.
        """
        return self._stopped_event.wait(timeout)
