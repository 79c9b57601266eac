"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure the library can report, grouped by who has to deal with it.

    ┌──────────────────────────┬──────────────┬─────────────────────────────┐
    │  Exception               │  Raised at   │  Who handles it             │
    ├──────────────────────────┼──────────────┼─────────────────────────────┤
    │  BindError               │  startup     │  caller (process exits)     │
    │  PatternCompileError     │  add_route() │  caller (setup aborts)      │
    │  RouterFrozenError       │  add_route() │  caller (programming error) │
    │  HTTPParseError          │  per request │  ConnectionHandler (400)    │
    │  TransportError          │  per request │  ConnectionHandler (close)  │
    │  HeaderMissingError      │  in handler  │  the handler itself         │
    │  ReasonPhraseLookupError │  serializing │  ConnectionHandler (logged) │
    └──────────────────────────┴──────────────┴─────────────────────────────┘

Setup-time errors (bind, pattern, frozen router) propagate to whoever is
building the server. Per-connection errors never get past the connection
handler, so one bad client can't take the accept loop down.

Each exception also derives from the closest builtin (OSError, ValueError,
LookupError, RuntimeError) so callers that already catch those keep working.

=============================================================================
"""

from typing import Optional


class SimpleHTTPError(Exception):
    """Base class for all errors raised by simplehttp."""


class BindError(SimpleHTTPError, OSError):
    """
    The listening socket could not be created or bound.

    Typical causes: address already in use, permission denied on a
    privileged port, or a malformed "host:port" string.
    """

    def __init__(self, message: str, address: Optional[tuple] = None):
        super().__init__(message)
        self.address = address


class PatternCompileError(SimpleHTTPError, ValueError):
    """A route pattern is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid route pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class RouterFrozenError(SimpleHTTPError, RuntimeError):
    """A route was registered after the server started accepting connections."""


class HTTPParseError(SimpleHTTPError, ValueError):
    """
    Raised when HTTP request parsing fails.

    Carries the HTTP status code that should be returned to the client:

        400 Bad Request       - Malformed request line or header
        413 Payload Too Large - Buffer exceeds the parser's size limit
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class TransportError(SimpleHTTPError, OSError):
    """Reading from or writing to a client connection failed."""


class HeaderMissingError(SimpleHTTPError, LookupError):
    """The requested header is not present on the request."""

    def __init__(self, name: str):
        super().__init__(f"Header not present: {name}")
        self.name = name


class ReasonPhraseLookupError(SimpleHTTPError, LookupError):
    """
    A response used a status code with no canonical reason phrase.

    This is a programming error in the handler that produced the
    response: only registered IANA status codes can be serialized.
    """

    def __init__(self, status_code: int):
        super().__init__(f"No canonical reason phrase for status code {status_code}")
        self.status_code = status_code
