"""
=============================================================================
SIMPLEHTTP - A Minimal Embeddable HTTP Server
=============================================================================

Accepts TCP connections, parses each request, dispatches it to the first
handler whose regular expression matches the path, and writes the
handler's response back.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    simplehttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m simplehttp)
    ├── server.py            # HTTPServer, configure_logging, create_app
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # Exception taxonomy
    ├── access_log.py        # One log line per connection
    ├── core/                # Transport
    │   ├── socket_server.py # Listening socket, accept loop
    │   ├── connection.py    # Client socket wrapper
    │   └── pipeline.py      # Per-connection request pipeline
    ├── http/                # Protocol
    │   ├── request.py       # Request parsing
    │   ├── headers.py       # Header lookup and quoting
    │   ├── response.py      # Response building and serialization
    │   ├── router.py        # Ordered regex routing
    │   └── status_codes.py  # Status codes and reason phrases
    └── handlers/            # Default and example handlers

=============================================================================
QUICK START
=============================================================================

    from simplehttp import HTTPServer, extract_header, ok

    server = HTTPServer("127.0.0.1:7878")

    @server.route("/echo")
    def echo(request):
        return ok(extract_header(request, "Host"))

    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .errors import (
    BindError,
    HeaderMissingError,
    HTTPParseError,
    PatternCompileError,
    ReasonPhraseLookupError,
    RouterFrozenError,
    SimpleHTTPError,
    TransportError,
)
from .http import (
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    ResponseBuilder,
    Router,
    decode_query,
    extract_header,
    ok,
)
from .server import HTTPServer, configure_logging, create_app

__all__ = [
    "__version__",
    "HTTPServer",
    "ServerConfig",
    "configure_logging",
    "create_app",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "ResponseBuilder",
    "Router",
    "decode_query",
    "extract_header",
    "ok",
    "SimpleHTTPError",
    "BindError",
    "PatternCompileError",
    "RouterFrozenError",
    "HTTPParseError",
    "TransportError",
    "HeaderMissingError",
    "ReasonPhraseLookupError",
]
