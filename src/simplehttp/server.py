"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together into the object applications use:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────────┐   ┌──────────────┐     │
    │    │ SocketServer │───►│ConnectionHandler │──►│    Router    │     │
    │    │ bind, accept │    │ one connection   │   │ pattern →    │     │
    │    └──────────────┘    └──────────────────┘   │ handler      │     │
    │                                               └──────────────┘     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LIFECYCLE
=============================================================================

    server = HTTPServer("127.0.0.1:7878")   # binds now; BindError if not
    server.add_route("/echo", echo_host)     # register, in order
    server.run()                             # freeze routes, serve, block
    ...
    server.shutdown()                        # from another thread or a signal

Routes can only be added before run(). Once the server is accepting
connections the route table is frozen, and add_route() raises
RouterFrozenError.

=============================================================================
"""

import logging
from typing import Callable, Optional, Tuple, Union

from .access_log import AccessLogger
from .config import ServerConfig
from .core import ConnectionHandler, SocketServer
from .handlers import register_examples
from .http import Handler, RequestParser, Route, Router


logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging for a standalone server.

    Libraries embedding the server usually configure logging themselves
    and should not call this.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("simplehttp").setLevel(log_level)


class HTTPServer:
    """
    Minimal embeddable HTTP/1.1 server.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=7878))

        @server.route("/echo")
        def echo(request):
            return ok(extract_header(request, "Host"))

        server.add_route("/(foo|bar)", lambda request: ok(request.path))

        server.run()

    =========================================================================
    WHAT IT DOES NOT DO
    =========================================================================

    - Keep-alive: every connection carries exactly one request
    - Concurrency: one connection is handled at a time
    - Request bodies beyond one read: a request is whatever the first
      recv(buffer_size) returns

    =========================================================================
    """

    def __init__(self, config: Union[ServerConfig, str, None] = None):
        """
        Create the server and bind its listening socket.

        Args:
            config: A ServerConfig, or a "host:port" bind address string.
                Defaults to ServerConfig().

        Raises:
            BindError: If the address is malformed or can't be bound.
            ValueError: If the configuration is invalid.
        """
        if isinstance(config, str):
            config = ServerConfig.from_address(config)
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._router = Router()
        self._connection_handler = ConnectionHandler(
            self._router,
            parser=RequestParser(max_request_size=self.config.max_request_size),
            access_logger=AccessLogger(log_format=self.config.log_format),
        )

        self._socket_server = SocketServer(self.config)
        self._socket_server.bind()

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    @property
    def router(self) -> Router:
        return self._router

    def add_route(self, pattern: str, handler: Handler) -> Route:
        """
        Register a handler for paths matching a regular expression.

        Routes are tried in the order they were added; the first pattern
        found anywhere in the path wins.

        Raises:
            PatternCompileError: If pattern isn't a valid regex.
            RouterFrozenError: If the server is already running.
        """
        return self._router.add_route(pattern, handler)

    # Alias
    add_handler = add_route

    def route(self, pattern: str) -> Callable[[Handler], Handler]:
        """Decorator form of add_route()."""
        return self._router.route(pattern)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    @property
    def server_address(self) -> Tuple[str, int]:
        """The bound (host, port); useful when the config asked for port 0."""
        return self._socket_server.server_address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    def run(self):
        """
        Serve connections until shutdown() (blocking).

        Freezes the route table first. From the main thread, SIGINT and
        SIGTERM also stop the server.
        """
        self._router.freeze()

        host, port = self.server_address
        logger.info(f"Starting HTTP server on {host}:{port}")
        if len(self._router):
            logger.info(f"Routes (first match wins):\n{self._router.describe()}")
        else:
            logger.warning("No routes registered; every request will get 404")

        try:
            self._socket_server.serve_forever(self._connection_handler.handle)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def shutdown(self):
        """Stop the accept loop. Safe to call from any thread."""
        self._socket_server.shutdown()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until run() has returned; False on timeout."""
        return self._socket_server.wait_for_shutdown(timeout)

    def close(self):
        """Release the listening socket of a server that was never run."""
        self._socket_server.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        self.close()
        return False


def create_app(config: Union[ServerConfig, str, None] = None, examples: bool = False) -> HTTPServer:
    """
    Create an HTTP server application.

    Args:
        config: Server configuration or "host:port" string.
        examples: Also register the example routes (/echo, /(foo|bar), /test).

    Returns:
        A bound, not yet running, HTTPServer.

    Example:
        app = create_app(ServerConfig(port=3000), examples=True)
        app.run()
    """
    server = HTTPServer(config)
    if examples:
        register_examples(server)
    return server
