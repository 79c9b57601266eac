"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Wire-level types, independent of sockets:

    request.py       bytes → HTTPRequest (RequestParser), decode_query()
    headers.py       ordered header pairs, extract_header(), quote stripping
    router.py        ordered regex route table, first match wins
    response.py      HTTPResponse → bytes, ResponseBuilder, helpers
    status_codes.py  HTTPStatus and canonical reason phrases

Message format on both sides:

    REQUEST:                          RESPONSE:
    ─────────                         ──────────
    GET /path HTTP/1.1\r\n            HTTP/1.1 200 OK\r\n
    Header: Value\r\n                 Header: Value\r\n
    \r\n                              \r\n
    [body]                            [body]

=============================================================================
"""

from .headers import HeaderPair, extract_header, strip_quoting
from .request import HTTPRequest, RequestParser, decode_query, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,              # 200, raw body
    bad_request,     # 400 (or another 4xx), empty
    not_found,       # 404, empty
    internal_error,  # 500, empty
)
from .router import Handler, Route, Router
from .status_codes import HTTPStatus, reason_phrase

__all__ = [
    # Requests
    "HTTPRequest",
    "RequestParser",
    "parse_request",
    "decode_query",

    # Headers
    "HeaderPair",
    "extract_header",
    "strip_quoting",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "bad_request",
    "not_found",
    "internal_error",

    # Routing
    "Handler",
    "Route",
    "Router",

    # Status codes
    "HTTPStatus",
    "reason_phrase",
]
