"""
=============================================================================
EXAMPLE HANDLERS
=============================================================================

Small handlers that show the request API and make a freshly started
server answer something:

    Pattern        Handler      Response body
    ───────────    ─────────    ─────────────────────────
    /echo          echo_host    the Host header
    /(foo|bar)     echo_path    the request path
    /test          hello        Hello, world!

Patterns are unanchored, so "/echo" also answers "/echo/anything".

=============================================================================
"""

import logging

from ..errors import HeaderMissingError
from ..http.headers import extract_header
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, bad_request, ok


logger = logging.getLogger(__name__)


def echo_host(request: HTTPRequest) -> HTTPResponse:
    """
    Respond with the Host header as the body.

    A request without a Host header gets an empty 400.
    """
    try:
        return ok(extract_header(request, "Host"))
    except HeaderMissingError:
        logger.debug("echo_host: request has no Host header")
        return bad_request()


def echo_path(request: HTTPRequest) -> HTTPResponse:
    """Respond with the request path, still percent-encoded."""
    return ok(request.path)


def hello(request: HTTPRequest) -> HTTPResponse:
    return ok("Hello, world!")


EXAMPLE_ROUTES = (
    ("/echo", echo_host),
    ("/(foo|bar)", echo_path),
    ("/test", hello),
)


def register_examples(server) -> None:
    """
    Register the example routes, in the order listed above.

    Args:
        server: An HTTPServer (or a Router; anything with add_route).
    """
    for pattern, handler in EXAMPLE_ROUTES:
        server.add_route(pattern, handler)
